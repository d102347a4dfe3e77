"""Final score and payout computation.

Pure and deterministic: identical inputs always produce identical results,
so retries and fixtures are reproducible.

    final = raw * difficulty * rank
          + perfect + no power-ups + speed + first attempt
          - 5 per power-up
    final = round(clamp(final, 0, 100))
    coins = floor(final / 100 * coin_reward)
    xp    = floor(final / 100 * xp_reward)

The streak multiplier is computed and reported but does not scale the score.
"""

from __future__ import annotations

import math
from dataclasses import dataclass

from glit.engine_config import BonusRules, EngineConfig
from glit.exercises.types import Difficulty


@dataclass(frozen=True)
class SubmissionMetadata:
    time_spent_seconds: int
    powerups_used: int
    hints_used: int = 0
    attempt_number: int = 1
    estimated_time_minutes: int | None = None


@dataclass(frozen=True)
class RewardResult:
    raw_score: float
    final_score: int
    multipliers: dict[str, float]
    bonuses: dict[str, int]
    penalties: dict[str, int]
    coins: int
    xp: int

    @property
    def is_perfect(self) -> bool:
        return self.final_score == 100


def streak_multiplier(streak_days: int, rules: BonusRules) -> float:
    """1 + 5% per streak day, capped at +50%."""
    return 1 + min(max(streak_days, 0) * rules.streak_step, rules.streak_cap)


def _bonuses(raw_score: float, meta: SubmissionMetadata, rules: BonusRules) -> dict[str, int]:
    bonuses: dict[str, int] = {}
    if raw_score >= 100:
        bonuses["perfect"] = rules.perfect
    if meta.powerups_used == 0:
        bonuses["noHints"] = rules.no_powerups
    if meta.estimated_time_minutes:
        if meta.time_spent_seconds < meta.estimated_time_minutes * 60 * rules.speed_ratio:
            bonuses["speed"] = rules.speed
    if meta.attempt_number <= 1 and raw_score >= rules.first_attempt_min_raw:
        bonuses["firstAttempt"] = rules.first_attempt
    return bonuses


def compute_reward(
    raw_score: float,
    difficulty: Difficulty,
    rank_multiplier: float,
    streak_days: int,
    meta: SubmissionMetadata,
    coin_reward: int,
    xp_reward: int,
    config: EngineConfig,
) -> RewardResult:
    """Apply multipliers, bonuses and penalties to a raw score and derive payouts."""
    rules = config.bonuses
    multipliers = {
        "difficulty": config.difficulty_multipliers[difficulty],
        "rank": rank_multiplier,
        "streak": streak_multiplier(streak_days, rules),
    }
    bonuses = _bonuses(raw_score, meta, rules)
    penalties: dict[str, int] = {}
    if meta.powerups_used > 0:
        penalties["powerups"] = meta.powerups_used * rules.per_powerup_penalty

    value = raw_score * multipliers["difficulty"] * multipliers["rank"]
    value += sum(bonuses.values())
    value -= sum(penalties.values())
    value = min(100.0, max(0.0, value))
    # Half-up rounding, not banker's rounding
    final_score = int(math.floor(value + 0.5))

    return RewardResult(
        raw_score=raw_score,
        final_score=final_score,
        multipliers=multipliers,
        bonuses=bonuses,
        penalties=penalties,
        coins=final_score * coin_reward // 100,
        xp=final_score * xp_reward // 100,
    )
