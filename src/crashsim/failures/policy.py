"""Difficulty tiers for failure injection."""

import logging
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DifficultySettings:
    probability_multiplier: float
    recovery_chance: float
    max_failures: int


DIFFICULTY_SETTINGS = {
    'rookie': DifficultySettings(0.0, 1.0, 0),
    'amateur': DifficultySettings(0.2, 0.8, 1),
    'intermediate': DifficultySettings(0.5, 0.5, 2),
    'advanced': DifficultySettings(1.0, 0.2, 3),
    'pro': DifficultySettings(1.5, 0.1, 4),
    'devil': DifficultySettings(2.5, 0.0, 5),
}

DEFAULT_DIFFICULTY = 'intermediate'


def get_difficulty_settings(difficulty: str) -> DifficultySettings:
    """Settings for a difficulty name; unknown names fall back to intermediate."""
    key = str(difficulty).strip().lower()
    if key not in DIFFICULTY_SETTINGS:
        logger.warning("Unknown difficulty '%s', using '%s'", difficulty, DEFAULT_DIFFICULTY)
        key = DEFAULT_DIFFICULTY
    return DIFFICULTY_SETTINGS[key]
