"""Typed business errors with machine-readable codes.

Each error carries the HTTP status it maps to; the global error handler
renders them as ``{"detail": ..., "code": ..., **extra}``.
"""

from __future__ import annotations

from typing import Any


class RewardEngineError(Exception):
    """Base class for every engine error surfaced to callers."""

    status_code: int = 400
    code: str = "REWARD_ENGINE_ERROR"

    def __init__(self, message: str, **extra: Any) -> None:  # noqa: ANN401
        super().__init__(message)
        self.message = message
        self.extra = extra

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "code": self.code, **self.extra}


# --- Validation / anti-cheat ---


class SubmissionValidationError(RewardEngineError):
    code = "VALIDATION_ERROR"


class SubmissionTooFastError(RewardEngineError):
    code = "SUBMISSION_TOO_FAST"


class SessionExpiredError(RewardEngineError):
    code = "SESSION_EXPIRED"


class RateLimitedError(RewardEngineError):
    status_code = 429
    code = "RATE_LIMITED"

    def __init__(self, retry_after: int) -> None:
        super().__init__(
            f"Too many submissions. Retry after {retry_after} seconds.",
            retryAfter=retry_after,
        )
        self.retry_after = retry_after


# --- Ledger ---


class InsufficientBalanceError(RewardEngineError):
    code = "INSUFFICIENT_FUNDS"

    def __init__(self, balance: int, requested: int) -> None:
        super().__init__(
            f"Insufficient ML Coins: balance {balance}, requested {requested}",
            balance=balance,
            requested=requested,
        )
        self.balance = balance
        self.requested = requested


# --- Power-ups ---


class InvalidPowerUpError(RewardEngineError):
    code = "INVALID_POWERUP_TYPE"


class PowerUpNotAvailableError(RewardEngineError):
    code = "POWERUP_NOT_AVAILABLE"

    def __init__(self, powerup_type: str) -> None:
        super().__init__(f"Power-up {powerup_type} not available", powerupType=powerup_type)
        self.powerup_type = powerup_type


# --- Ranks ---


class PromotionRequirementsNotMetError(RewardEngineError):
    code = "PROMOTION_REQUIREMENTS_NOT_MET"

    def __init__(self, missing: list[str]) -> None:
        super().__init__("Promotion requirements not met", missingRequirements=missing)
        self.missing = missing


class MaxRankReachedError(RewardEngineError):
    code = "MAX_RANK_REACHED"


# --- Missions ---


class MissionNotFoundError(RewardEngineError):
    status_code = 404
    code = "MISSION_NOT_FOUND"


class MissionNotCompletedError(RewardEngineError):
    code = "MISSION_NOT_COMPLETED"


class AlreadyClaimedError(RewardEngineError):
    status_code = 409
    code = "MISSION_ALREADY_CLAIMED"


# --- Achievements ---


class AchievementNotFoundError(RewardEngineError):
    status_code = 404
    code = "ACHIEVEMENT_NOT_FOUND"


class AchievementAlreadyUnlockedError(RewardEngineError):
    status_code = 409
    code = "ACHIEVEMENT_ALREADY_UNLOCKED"


# --- Collaborators ---


class ExerciseNotFoundError(RewardEngineError):
    status_code = 404
    code = "EXERCISE_NOT_FOUND"


class ForbiddenError(RewardEngineError):
    status_code = 403
    code = "FORBIDDEN"
