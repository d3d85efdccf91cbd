"""Tests for the stat model - clamping, rounding and delta application."""

import itertools

import pytest

from survival.core.stats import (
    ZERO_DELTA,
    apply_delta,
    clamp_meter,
    clamp_resources,
    initial_stats,
    to_percent,
    total_score,
)
from survival.schemas.progress import PlayerStats, StatDelta


def test_initial_stats():
    stats = initial_stats()
    assert stats == PlayerStats(morale=0.8, condition=0.8, resources=65)


@pytest.mark.parametrize(
    "value, expected",
    [
        (0.5, 0.5),
        (1.7, 1.0),
        (-0.3, 0.0),
        (-0.001, 0.0),
        (0.004, 0.0),
        (0.803, 0.8),
        (0.8 - 0.1, 0.7),
        (0.1 + 0.2, 0.3),
    ],
)
def test_clamp_meter(value, expected):
    assert clamp_meter(value) == expected


@pytest.mark.parametrize(
    "value, expected",
    [(55, 55), (-10, 0), (12.4, 12), (12.5, 13), (0, 0)],
)
def test_clamp_resources(value, expected):
    assert clamp_resources(value) == expected
    assert isinstance(clamp_resources(value), int)


def test_apply_delta_example():
    """Rationing from the start leaves 0.70 morale and 55 resources."""
    stats = apply_delta(initial_stats(), StatDelta(morale=-0.1, condition=0, resources=-10))
    assert stats == PlayerStats(morale=0.7, condition=0.8, resources=55)


def test_apply_delta_always_in_bounds():
    meters = [0.0, 0.01, 0.5, 0.99, 1.0]
    meter_deltas = [-2.0, -0.3, -0.004, 0.0, 0.004, 0.3, 2.0]
    resource_deltas = [-1000, -1, 0, 1, 1000]
    for m, c, dm, dc, dr in itertools.product(
        meters, meters, meter_deltas, meter_deltas, resource_deltas
    ):
        out = apply_delta(
            PlayerStats(morale=m, condition=c, resources=10),
            StatDelta(morale=dm, condition=dc, resources=dr),
        )
        assert 0 <= out.morale <= 1
        assert 0 <= out.condition <= 1
        assert out.resources >= 0


def test_apply_zero_delta_is_idempotent():
    stats = PlayerStats(morale=0.8, condition=0.8, resources=65)
    delta = StatDelta(morale=0.1 + 0.2, condition=-0.07, resources=-3)
    once = apply_delta(stats, delta)
    assert apply_delta(once, ZERO_DELTA) == once
    assert apply_delta(stats, delta) == once


def test_repeated_small_deltas_do_not_drift():
    stats = PlayerStats(morale=0.1, condition=0.1, resources=0)
    for _ in range(10):
        stats = apply_delta(stats, StatDelta(morale=-0.01, condition=-0.01))
    assert stats.morale == 0.0
    assert stats.condition == 0.0


@pytest.mark.parametrize(
    "value, expected",
    [(0.8, 80), (0.55, 55), (1, 100), (0, 0), (65, 65), (80.0, 80.0)],
)
def test_to_percent(value, expected):
    assert to_percent(value) == expected


def test_total_score():
    # (80 + 80 + 65 * 1.5) / 3 = 85.83
    assert total_score(initial_stats()) == 86
    assert total_score(PlayerStats(morale=0, condition=0, resources=0)) == 0
