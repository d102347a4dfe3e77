"""Power-up catalog: prices and per-exercise limits."""

from __future__ import annotations

from dataclasses import dataclass

from glit.exercises.types import PowerUp


@dataclass(frozen=True)
class PowerUpDefinition:
    type: PowerUp
    name: str
    description: str
    cost: int
    per_exercise_limit: int


POWERUP_CATALOG: tuple[PowerUpDefinition, ...] = (
    PowerUpDefinition(PowerUp.HINT, "Pistas Contextuales", "Reveals contextual hints for the current exercise", 15, 3),
    PowerUpDefinition(PowerUp.READING_LENS, "Vision Lectora", "Highlights key information in the text", 25, 1),
    PowerUpDefinition(PowerUp.SECOND_CHANCE, "Segunda Oportunidad", "Retry a failed exercise", 40, 1),
)

# Mission reward items that grant a power-up on claim
MISSION_ITEM_POWERUPS: dict[str, PowerUp] = {
    "power_up_hint": PowerUp.HINT,
    "power_up_vision_lectora": PowerUp.READING_LENS,
    "power_up_segunda_oportunidad": PowerUp.SECOND_CHANCE,
}
