from datetime import date, datetime

import pytest

from app.services import metrics
from app.services.repository import BiometricSample, Measurement


def test_age_floors_before_birthday():
    assert metrics.age(date(1990, 6, 15), date(2026, 6, 14)) == 35
    assert metrics.age(date(1990, 6, 15), date(2026, 6, 15)) == 36


@pytest.mark.parametrize("height_cm,weight_kg", [(180.0, 80.0), (152.4, 48.5), (195.0, 120.0), (170.2, 63.3)])
def test_bmi_same_from_metric_and_imperial(height_cm, weight_kg):
    metric = metrics.bmi(Measurement(height_cm, "cm"), Measurement(weight_kg, "kg"))
    imperial = metrics.bmi(
        Measurement(height_cm / metrics.CM_PER_FT, "ft"),
        Measurement(weight_kg / metrics.KG_PER_LB, "lbs"),
    )
    assert metric is not None and imperial is not None
    assert abs(metric - imperial) <= 0.1


def test_bmi_value_and_missing_measurements():
    assert metrics.bmi(Measurement(180, "cm"), Measurement(81, "kg")) == 25.0
    assert metrics.bmi(None, Measurement(81, "kg")) is None
    assert metrics.bmi(Measurement(180, "cm"), None) is None
    assert metrics.bmi(Measurement(0, "cm"), Measurement(81, "kg")) is None


def test_bmr_branches_on_sex_and_uses_defaults():
    male = metrics.bmr(40, "male", 80, 180)
    assert male == pytest.approx(88.362 + 13.397 * 80 + 4.799 * 180 - 5.677 * 40)
    female = metrics.bmr(40, "female", 80, 180)
    assert female == pytest.approx(447.593 + 9.247 * 80 + 3.098 * 180 - 4.330 * 40)
    # unknown weight/height -> 70 kg / 170 cm
    assert metrics.bmr(30, "male") == pytest.approx(metrics.bmr(30, "male", 70, 170))


def test_tdee_multipliers():
    assert metrics.tdee(1000, "sedentary") == pytest.approx(1200)
    assert metrics.tdee(1000, "extremely-active") == pytest.approx(1900)
    assert metrics.tdee(1000, "couch-potato") == pytest.approx(1550)


def test_fitness_level_omits_missing_factors():
    # activity rank only
    assert metrics.fitness_level("sedentary", None, None) == "beginner"
    assert metrics.fitness_level("extremely-active", None, None) == "advanced"
    # (3 + 4 + 4) / 3
    assert metrics.fitness_score("moderately-active", 8000, 40) == pytest.approx(11 / 3)
    assert metrics.fitness_level("moderately-active", 8000, 40) == "intermediate"
    # no HRV: (3 + 1) / 2
    assert metrics.fitness_level("moderately-active", 1000, None) == "beginner"


def test_stress_and_sleep_scores():
    ts = datetime(2026, 3, 1)
    samples = [
        BiometricSample(timestamp=ts, stress={"score": 75}, sleep={"duration": 300, "efficiency": 70}),
        BiometricSample(timestamp=ts, stress={"level": "high"}, sleep={"duration": 320}),
    ]
    assert metrics.stress_level(samples) == pytest.approx(4.0)
    # 310 min -> bucket 2, 70% efficiency -> bucket 2
    assert metrics.sleep_quality(samples) == 2.0
    assert metrics.stress_level([BiometricSample(timestamp=ts)]) is None
    assert metrics.sleep_quality([]) is None


def test_recent_activity_window():
    as_of = datetime(2026, 3, 8, 12)
    samples = [
        BiometricSample(timestamp=datetime(2026, 3, 8, 7), activity={
            "steps": 6000, "active_minutes": {"moderate": 15, "vigorous": 10}}),
        BiometricSample(timestamp=datetime(2026, 3, 6, 7), activity={"steps": 4000}),
        BiometricSample(timestamp=datetime(2026, 2, 20, 7), activity={"steps": 20000}),
    ]
    recent = metrics.recent_activity(samples, as_of, days=7)
    assert recent.average_steps == 5000.0
    assert recent.workout_frequency == 1
    assert recent.consistency == round(2 / 7, 2)


def test_nutrition_targets_split_and_goal_adjustment():
    t = metrics.nutrition_targets(2500, ["weight-loss"], average_steps=10000)
    assert t.daily_calories == 2000
    assert t.goal_adjustment_kcal == -500
    assert t.protein_g == 125  # 2000 * 0.25 / 4
    assert t.carbs_g == 225  # 2000 * 0.45 / 4
    assert t.fat_g == 67  # 2000 * 0.30 / 9
    assert t.hydration_ml == 2008

    assert metrics.nutrition_targets(2500, ["weight-gain"]).daily_calories == 3000
    assert metrics.nutrition_targets(2500, ["weight-loss", "weight-gain"]).daily_calories == 2000
    assert metrics.nutrition_targets(2500, []).daily_calories == 2500
