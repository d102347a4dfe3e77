"""arq worker settings module.

Import path for arq CLI: arq glit.workers.settings.WorkerSettings
"""

from __future__ import annotations

from glit.workers.scheduler import WorkerSettings

__all__ = ["WorkerSettings"]
