"""Maya rank ladder: order, multipliers, promotion thresholds and signing bonuses.

Ranks advance strictly in catalog order. Each entry's thresholds are the
requirements for being promoted *into* that rank.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Rank(str, Enum):
    NACOM = "nacom"
    BATAB = "batab"
    HOLCATTE = "holcatte"
    GUERRERO = "guerrero"
    MERCENARIO = "mercenario"


@dataclass(frozen=True)
class RankDefinition:
    rank: Rank
    title: str
    multiplier: float
    xp_required: int
    modules_required: int
    coins_earned_required: int
    achievements_required: int
    min_average_score: float
    signing_bonus: int


RANK_CATALOG: tuple[RankDefinition, ...] = (
    RankDefinition(Rank.NACOM, "Nacom", 1.0, 0, 0, 0, 0, 70.0, 50),
    RankDefinition(Rank.BATAB, "Batab", 1.1, 500, 1, 200, 0, 75.0, 75),
    RankDefinition(Rank.HOLCATTE, "Holcatte", 1.25, 1500, 2, 500, 3, 80.0, 100),
    RankDefinition(Rank.GUERRERO, "Guerrero", 1.5, 3000, 3, 1000, 6, 85.0, 125),
    RankDefinition(Rank.MERCENARIO, "Mercenario", 2.0, 5000, 5, 2000, 10, 90.0, 150),
)


def find_rank(catalog: tuple[RankDefinition, ...], rank: str) -> RankDefinition:
    """Look up a rank definition. Raises ValueError for unknown ranks."""
    for definition in catalog:
        if definition.rank.value == rank:
            return definition
    raise ValueError(f"Unknown rank: {rank}")


def next_rank(catalog: tuple[RankDefinition, ...], rank: str) -> RankDefinition | None:
    """The rank immediately after ``rank``, or None at the top of the ladder."""
    for i, definition in enumerate(catalog):
        if definition.rank.value == rank:
            return catalog[i + 1] if i + 1 < len(catalog) else None
    raise ValueError(f"Unknown rank: {rank}")


def rank_index(catalog: tuple[RankDefinition, ...], rank: str) -> int:
    for i, definition in enumerate(catalog):
        if definition.rank.value == rank:
            return i
    raise ValueError(f"Unknown rank: {rank}")
