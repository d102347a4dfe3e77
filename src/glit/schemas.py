"""Shared pydantic base for API models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Serialises camelCase and accepts either camelCase or snake_case input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)
