from datetime import datetime, timedelta

import pytest

from app.services.repository import BiometricSample
from app.services.trends import aggregate_trends, linear_trend


@pytest.mark.parametrize("start,step,n", [(0, 1, 5), (70.0, 0.2, 10), (-3, 0.5, 3), (5000, 250, 30)])
def test_increasing_arithmetic_sequence(start, step, n):
    result = linear_trend([start + step * i for i in range(n)])
    assert result.direction == "increasing"
    assert result.strength > 0
    assert result.slope == pytest.approx(step)


def test_constant_sequence_is_stable_with_zero_strength():
    result = linear_trend([72.4] * 12)
    assert result.direction == "stable"
    assert result.strength == 0
    assert result.slope == 0.0


def test_decreasing_and_clamped_strength():
    result = linear_trend([100, 90, 80, 70])
    assert result.direction == "decreasing"
    assert result.strength == 5.0


def test_small_slope_is_stable():
    result = linear_trend([1.0, 1.05, 1.1])
    assert result.direction == "stable"
    assert result.strength == pytest.approx(0.5)


def test_fewer_than_two_points():
    assert linear_trend([]).direction == "stable"
    one = linear_trend([3.0])
    assert (one.direction, one.strength, one.slope) == ("stable", 0.0, 0.0)


def test_aggregate_skips_families_below_three_points():
    t0 = datetime(2026, 2, 1)
    samples = [
        BiometricSample(timestamp=t0 + timedelta(days=i), activity={"steps": 4000 + 1000 * i})
        for i in range(4)
    ]
    samples += [
        BiometricSample(timestamp=t0, body_composition={"weight": {"value": 80, "unit": "kg"}}),
        BiometricSample(timestamp=t0 + timedelta(days=1), body_composition={"weight": {"value": 81, "unit": "kg"}}),
    ]
    trends = aggregate_trends(samples)
    assert set(trends) == {"activity"}
    assert trends["activity"].direction == "increasing"


def test_aggregate_sorts_chronologically():
    t0 = datetime(2026, 2, 1)
    values = [7.0, 6.5, 6.0]
    samples = [
        BiometricSample(timestamp=t0 + timedelta(days=i), sleep={"duration": v * 60})
        for i, v in enumerate(values)
    ]
    trends = aggregate_trends(list(reversed(samples)))
    assert trends["sleep"].direction == "decreasing"
