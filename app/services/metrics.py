# app/services/metrics.py
"""
Derived health indicators for the recommendation engine.

- Age: whole years, minus one when the birthday has not been reached yet
- BMI: weight_kg / height_m^2, one decimal; None when a measurement is missing
- BMR: Harris-Benedict (revised), branch on declared sex
    male:   88.362 + 13.397*w + 4.799*h - 5.677*age
    other:  447.593 + 9.247*w + 3.098*h - 4.330*age
  When true height/weight are unknown we assume 170 cm / 70 kg. This is a
  known approximation and is flagged on the profile.
- TDEE = BMR * activity multiplier (default 1.55 for unknown levels)
- Fitness level: mean of activity rank, step bucket and HRV bucket (1-5 each);
  factors without data are left out of the mean.
- Nutrition targets: goal-adjusted TDEE with a fixed 25/45/30 P/C/F split.

Everything here is pure: no I/O, no clock reads (callers pass `as_of`).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional, Sequence

from app.services.repository import BiometricSample, Measurement

DEFAULT_HEIGHT_CM = 170.0
DEFAULT_WEIGHT_KG = 70.0
DEFAULT_TDEE_MULTIPLIER = 1.55

CM_PER_FT = 30.48
CM_PER_IN = 2.54
KG_PER_LB = 0.453592

ACTIVITY_MULTIPLIERS = {
    "sedentary": 1.2,
    "lightly-active": 1.375,
    "moderately-active": 1.55,
    "very-active": 1.725,
    "extremely-active": 1.9,
}

ACTIVITY_RANKS = {
    "sedentary": 1,
    "lightly-active": 2,
    "moderately-active": 3,
    "very-active": 4,
    "extremely-active": 5,
}
UNKNOWN_ACTIVITY_RANK = 2

FITNESS_LEVELS = ("beginner", "beginner-plus", "intermediate", "advanced")

# fixed macro split used whenever calories are derived deterministically
MACRO_SPLIT = {"protein": 0.25, "carbs": 0.45, "fat": 0.30}
KCAL_PER_GRAM = {"protein": 4.0, "carbs": 4.0, "fat": 9.0}
GOAL_CALORIE_ADJUST = {"weight-loss": -500, "weight-gain": +500}

STRESS_LEVEL_SCORES = {"low": 1.0, "moderate": 2.5, "high": 4.0, "very-high": 5.0}


# ---- Data models ----

@dataclass(frozen=True)
class RecentActivity:
    average_steps: float = 0.0
    average_sleep_min: float = 0.0
    average_resting_hr: float = 0.0
    average_weight_kg: Optional[float] = None
    workout_frequency: int = 0
    consistency: float = 0.0


@dataclass(frozen=True)
class NutritionTargets:
    daily_calories: int
    protein_g: int
    carbs_g: int
    fat_g: int
    hydration_ml: int
    tdee_kcal: int
    goal_adjustment_kcal: int


# ---- Unit helpers ----

def to_cm(m: Optional[Measurement]) -> Optional[float]:
    if m is None or m.value is None or m.value <= 0:
        return None
    unit = (m.unit or "cm").lower()
    if unit == "ft":
        return m.value * CM_PER_FT
    if unit in ("in", "inch", "inches"):
        return m.value * CM_PER_IN
    if unit == "m":
        return m.value * 100.0
    return float(m.value)


def to_kg(m: Optional[Measurement]) -> Optional[float]:
    if m is None or m.value is None or m.value <= 0:
        return None
    unit = (m.unit or "kg").lower()
    if unit in ("lbs", "lb"):
        return m.value * KG_PER_LB
    return float(m.value)


def _num(v: Any) -> Optional[float]:
    if isinstance(v, bool) or v is None:
        return None
    if isinstance(v, (int, float)):
        return float(v)
    return None


def sample_weight_kg(s: BiometricSample) -> Optional[float]:
    raw = s.get("body_composition.weight")
    if isinstance(raw, dict):
        value = _num(raw.get("value"))
        if value is None:
            return None
        return to_kg(Measurement(value=value, unit=str(raw.get("unit") or "kg")))
    value = _num(raw)
    return value if value and value > 0 else None


def sample_steps(s: BiometricSample) -> Optional[float]:
    v = _num(s.get("activity.steps"))
    return v if v else None


def sample_sleep_minutes(s: BiometricSample) -> Optional[float]:
    v = _num(s.get("sleep.duration"))
    return v if v else None


def sample_hrv(s: BiometricSample) -> Optional[float]:
    raw = s.get("stress.hrv")
    if isinstance(raw, dict):
        raw = raw.get("value")
    v = _num(raw)
    return v if v else None


def sample_resting_hr(s: BiometricSample) -> Optional[float]:
    raw = s.get("vitals.heart_rate")
    if isinstance(raw, dict):
        raw = raw.get("value")
    v = _num(raw)
    return v if v else None


def mean(values: Iterable[Optional[float]]) -> Optional[float]:
    vals = [v for v in values if v is not None]
    if not vals:
        return None
    return sum(vals) / len(vals)


# ---- Calculators ----

def age(birth_date: date, as_of: date) -> int:
    if isinstance(as_of, datetime):
        as_of = as_of.date()
    return as_of.year - birth_date.year - ((as_of.month, as_of.day) < (birth_date.month, birth_date.day))


def bmi(height: Optional[Measurement], weight: Optional[Measurement]) -> Optional[float]:
    h_cm = to_cm(height)
    w_kg = to_kg(weight)
    if h_cm is None or w_kg is None:
        return None
    h_m = h_cm / 100.0
    return round(w_kg / (h_m * h_m), 1)


def bmr(age_years: int, sex: Optional[str], weight_kg: Optional[float] = None,
        height_cm: Optional[float] = None) -> float:
    w = weight_kg if weight_kg else DEFAULT_WEIGHT_KG
    h = height_cm if height_cm else DEFAULT_HEIGHT_CM
    if (sex or "").lower() == "male":
        return 88.362 + (13.397 * w) + (4.799 * h) - (5.677 * age_years)
    return 447.593 + (9.247 * w) + (3.098 * h) - (4.330 * age_years)


def tdee(bmr_kcal: float, activity_level: Optional[str]) -> float:
    return bmr_kcal * ACTIVITY_MULTIPLIERS.get((activity_level or "").lower(), DEFAULT_TDEE_MULTIPLIER)


def _step_bucket(avg_steps: float) -> int:
    if avg_steps > 10000:
        return 5
    if avg_steps > 7500:
        return 4
    if avg_steps > 5000:
        return 3
    if avg_steps > 2500:
        return 2
    return 1


def _hrv_bucket(avg_hrv: float) -> int:
    if avg_hrv > 50:
        return 5
    if avg_hrv > 35:
        return 4
    if avg_hrv > 25:
        return 3
    return 2


def fitness_score(activity_level: Optional[str], recent_steps: Optional[float],
                  hrv: Optional[float]) -> float:
    factors = [ACTIVITY_RANKS.get((activity_level or "").lower(), UNKNOWN_ACTIVITY_RANK)]
    if recent_steps is not None:
        factors.append(_step_bucket(recent_steps))
    if hrv is not None:
        factors.append(_hrv_bucket(hrv))
    return sum(factors) / len(factors)


def fitness_level(activity_level: Optional[str], recent_steps: Optional[float],
                  hrv: Optional[float]) -> str:
    score = fitness_score(activity_level, recent_steps, hrv)
    if score >= 4.5:
        return "advanced"
    if score >= 3.5:
        return "intermediate"
    if score >= 2.5:
        return "beginner-plus"
    return "beginner"


def stress_level(samples: Sequence[BiometricSample]) -> Optional[float]:
    """Mean stress on a 1-5 scale from `stress.score` (0-100) or `stress.level`."""
    per_sample: list[float] = []
    for s in samples:
        score = _num(s.get("stress.score"))
        if score is not None:
            per_sample.append(min(5.0, max(1.0, 1.0 + score / 25.0)))
            continue
        level = s.get("stress.level")
        if isinstance(level, str) and level.lower() in STRESS_LEVEL_SCORES:
            per_sample.append(STRESS_LEVEL_SCORES[level.lower()])
    avg = mean(per_sample)
    return round(avg, 2) if avg is not None else None


def _sleep_duration_bucket(minutes: float) -> int:
    if minutes >= 420:
        return 5
    if minutes >= 390:
        return 4
    if minutes >= 360:
        return 3
    if minutes >= 300:
        return 2
    return 1


def _sleep_efficiency_bucket(pct: float) -> int:
    if pct >= 90:
        return 5
    if pct >= 85:
        return 4
    if pct >= 75:
        return 3
    if pct >= 65:
        return 2
    return 1


def sleep_quality(samples: Sequence[BiometricSample]) -> Optional[float]:
    """1-5 score from average sleep duration, averaged with efficiency when recorded."""
    avg_minutes = mean(sample_sleep_minutes(s) for s in samples)
    if avg_minutes is None:
        return None
    parts = [_sleep_duration_bucket(avg_minutes)]
    avg_eff = mean(_num(s.get("sleep.efficiency")) for s in samples)
    if avg_eff is not None:
        parts.append(_sleep_efficiency_bucket(avg_eff))
    return round(sum(parts) / len(parts), 2)


def recent_activity(samples: Sequence[BiometricSample], as_of: datetime, days: int = 7) -> RecentActivity:
    cutoff = as_of - timedelta(days=days)
    recent = [s for s in samples if cutoff <= s.timestamp <= as_of]

    workout_days = set()
    sample_days = set()
    for s in recent:
        sample_days.add(s.timestamp.date())
        moderate = _num(s.get("activity.active_minutes.moderate")) or 0.0
        vigorous = _num(s.get("activity.active_minutes.vigorous")) or 0.0
        if moderate + vigorous >= 20:
            workout_days.add(s.timestamp.date())

    return RecentActivity(
        average_steps=round(mean(sample_steps(s) for s in recent) or 0.0, 1),
        average_sleep_min=round(mean(sample_sleep_minutes(s) for s in recent) or 0.0, 1),
        average_resting_hr=round(mean(sample_resting_hr(s) for s in recent) or 0.0, 1),
        average_weight_kg=mean(sample_weight_kg(s) for s in recent),
        workout_frequency=len(workout_days),
        consistency=round(len(sample_days) / float(days), 2) if days > 0 else 0.0,
    )


def goal_calorie_adjustment(goals: Sequence[str]) -> int:
    # weight-loss wins if both are declared
    for g in ("weight-loss", "weight-gain"):
        if g in goals:
            return GOAL_CALORIE_ADJUST[g]
    return 0


def nutrition_targets(tdee_kcal: float, goals: Sequence[str], average_steps: float = 0.0) -> NutritionTargets:
    adjust = goal_calorie_adjustment(goals)
    calories = tdee_kcal + adjust
    return NutritionTargets(
        daily_calories=int(round(calories)),
        protein_g=int(round(calories * MACRO_SPLIT["protein"] / KCAL_PER_GRAM["protein"])),
        carbs_g=int(round(calories * MACRO_SPLIT["carbs"] / KCAL_PER_GRAM["carbs"])),
        fat_g=int(round(calories * MACRO_SPLIT["fat"] / KCAL_PER_GRAM["fat"])),
        hydration_ml=int(round((average_steps or 0.0) * 0.0008 + 2000)),
        tdee_kcal=int(round(tdee_kcal)),
        goal_adjustment_kcal=adjust,
    )
