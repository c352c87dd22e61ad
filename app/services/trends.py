# app/services/trends.py
"""
Trend analysis over biometric history.

linear_trend() fits y = a + b*x over index positions with ordinary least
squares and turns the slope into a direction plus a 0-5 strength.

aggregate_trends() runs it per metric family:
    weight   -> body_composition.weight (kg)
    activity -> activity.steps
    sleep    -> sleep.duration (minutes)
A family needs at least MIN_POINTS samples; below that it is left out of the
result instead of being reported as "stable".
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence

from app.services.metrics import sample_sleep_minutes, sample_steps, sample_weight_kg
from app.services.repository import BiometricSample

SLOPE_THRESHOLD = 0.1
MAX_STRENGTH = 5.0
MIN_POINTS = 3

FAMILIES: Dict[str, Callable[[BiometricSample], Optional[float]]] = {
    "weight": sample_weight_kg,
    "activity": sample_steps,
    "sleep": sample_sleep_minutes,
}


@dataclass(frozen=True)
class TrendResult:
    direction: str  # "increasing" | "decreasing" | "stable"
    strength: float  # 0..5
    slope: float

    def to_dict(self) -> dict:
        return {"direction": self.direction, "strength": self.strength, "slope": self.slope}


STABLE = TrendResult(direction="stable", strength=0.0, slope=0.0)


def linear_trend(values: Sequence[float]) -> TrendResult:
    n = len(values)
    if n < 2:
        return STABLE

    sum_x = n * (n - 1) / 2.0
    sum_xx = (n - 1) * n * (2 * n - 1) / 6.0
    sum_y = 0.0
    sum_xy = 0.0
    for i, y in enumerate(values):
        sum_y += float(y)
        sum_xy += i * float(y)

    denom = n * sum_xx - sum_x * sum_x
    # flat series must come out at exactly 0.0
    slope = round((n * sum_xy - sum_x * sum_y) / denom, 12)

    if slope > SLOPE_THRESHOLD:
        direction = "increasing"
    elif slope < -SLOPE_THRESHOLD:
        direction = "decreasing"
    else:
        direction = "stable"

    strength = max(0.0, min(abs(slope) * 10.0, MAX_STRENGTH))
    return TrendResult(direction=direction, strength=strength, slope=slope)


def aggregate_trends(samples: Sequence[BiometricSample]) -> Dict[str, TrendResult]:
    ordered = sorted(samples, key=lambda s: s.timestamp)
    trends: Dict[str, TrendResult] = {}
    for family, extract in FAMILIES.items():
        values = [v for v in (extract(s) for s in ordered) if v is not None]
        if len(values) >= MIN_POINTS:
            trends[family] = linear_trend(values)
    return trends
