"""Stat model - clamping, rounding and delta application for player stats.

Morale and condition are meters in [0, 1] kept to two decimals. Resources
is a non-negative integer with no upper bound.
"""

import math

from survival.config import settings
from survival.schemas.progress import PlayerStats, StatDelta
from survival.schemas.story import Choice

# Anything smaller than this is float noise from repeated addition
METER_EPSILON = 0.005

ZERO_DELTA = StatDelta()


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp_meter(value: float) -> float:
    """Clamp a meter to [0, 1] and round it to two decimals."""
    value = min(1.0, max(0.0, value))
    if abs(value) < METER_EPSILON:
        return 0.0
    return round(value, 2)


def clamp_resources(value: float) -> int:
    """Clamp resources to >= 0 and round to the nearest integer."""
    return max(0, _round_half_up(value))


def apply_delta(stats: PlayerStats, delta: StatDelta) -> PlayerStats:
    return PlayerStats(
        morale=clamp_meter(stats.morale + delta.morale),
        condition=clamp_meter(stats.condition + delta.condition),
        resources=clamp_resources(stats.resources + delta.resources),
    )


def delta_of(choice: Choice) -> StatDelta:
    return StatDelta(
        morale=choice.morale,
        condition=choice.condition,
        resources=choice.resources,
    )


def initial_stats() -> PlayerStats:
    """Stats for a fresh playthrough."""
    return PlayerStats(
        morale=settings.START_MORALE,
        condition=settings.START_CONDITION,
        resources=settings.START_RESOURCES,
    )


def to_percent(value: float) -> float | int:
    """Display a meter as a percentage.

    Values <= 1 are fractions; anything larger is assumed to be scaled already.
    """
    if value <= 1:
        return _round_half_up(value * 100)
    return value


def total_score(stats: PlayerStats) -> int:
    """Leaderboard score: meters as percentages, resources weighted 1.5."""
    return _round_half_up(
        (stats.morale * 100 + stats.condition * 100 + stats.resources * 1.5) / 3
    )
