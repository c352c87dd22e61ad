import pytest

from app.services import catalog
from app.services.sources import (
    Candidate,
    RecommendationSource,
    RecommendationOptions,
    RuleSource,
    SimilaritySource,
    cohort_similarity,
    mindfulness_focus_areas,
)
from fakes import daily_samples

OPTS = RecommendationOptions()


def test_rule_workouts_respect_level_and_conditions(make_profile):
    profile = make_profile(
        activity_level="sedentary",
        goals=("weight-loss",),
        health_conditions=({"condition": "knee-injury"},),
    )
    items = RuleSource().generate("workout", profile, OPTS)
    assert items
    by_id = catalog.CATEGORY_ITEMS["workout"]
    for c in items:
        assert c.source == "rule" and c.weight == 0.4
        assert by_id[c.id]["difficulty"] == "beginner"
        assert "high-impact" not in by_id[c.id]["tags"]
        assert "jumping" not in by_id[c.id]["tags"]


def test_workout_options_filter(make_profile):
    profile = make_profile(activity_level="very-active", goals=("strength",))
    opts = RecommendationOptions(workout_type="strength", equipment=(), max_duration_min=30)
    items = RuleSource().generate("workout", profile, opts)
    assert [c.id for c in items] == ["wk-core-stability"]


def test_rule_nutrition_respects_allergies_and_diet(make_profile):
    profile = make_profile(allergies=("peanuts",), dietary_restrictions=("vegetarian",))
    items = RuleSource().generate("nutrition", profile, RecommendationOptions(include_snacks=False))
    meals = catalog.CATEGORY_ITEMS["nutrition"]
    assert items
    for c in items:
        assert "nuts" not in meals[c.id]["allergens"]
        assert "vegetarian" in meals[c.id]["diet_tags"]
        assert meals[c.id]["meal"] != "snack"


def test_excluded_items_never_come_back(make_profile):
    profile = make_profile(recommendation_preferences={"excluded_items": ["mf-box-breathing"]})
    for source in (RuleSource(), SimilaritySource()):
        ids = [c.id for c in source.generate("mindfulness", profile, OPTS)]
        assert "mf-box-breathing" not in ids


def test_high_stress_puts_stress_practices_first(make_profile):
    samples = daily_samples(5, stress=lambda i: {"score": 85}, sleep=lambda i: {"duration": 460})
    profile = make_profile(samples)
    assert mindfulness_focus_areas(profile)[:2] == ["stress", "anxiety"]
    top = RuleSource().generate("mindfulness", profile, OPTS)[0]
    assert set(top.payload["focus"]) & {"stress", "anxiety"}


def test_goal_templates_follow_trends(make_profile):
    samples = daily_samples(6, body_composition=lambda i: {"weight": {"value": 90 + i, "unit": "kg"}})
    profile = make_profile(samples, goals=("weight-loss",))
    ids = [c.id for c in RuleSource().generate("goals", profile, OPTS)]
    assert ids[0] == "gl-weight-loss-rate"
    assert "gl-weight-loss-maintain" not in ids


def test_similarity_prefers_matching_cohorts(make_profile):
    profile = make_profile(activity_level="sedentary", goals=("weight-loss", "general-health"))
    source = SimilaritySource()
    nearest = source.nearest(profile)
    assert nearest[0][1]["id"] == "cohort-new-walkers"
    assert nearest[0][0] == 1.0
    items = source.generate("workout", profile, OPTS)
    assert items[0].id == "wk-brisk-walk"
    assert items[0].intrinsic_score == 0.92
    assert all(c.source == "similarity" for c in items)


def test_cohort_similarity_components(make_profile):
    profile = make_profile(activity_level="sedentary", goals=("strength",))
    cohort = {"fitness_level": "advanced", "goals": ["strength", "endurance"]}
    # jaccard 1/2, level gap 3 -> 0
    assert cohort_similarity(profile, cohort) == 0.25


def test_candidate_default_payload_is_read_only():
    c = Candidate(id="x", category="goals", source="rule", weight=0.4, title="x")
    assert c.to_dict()["details"] == {}
    with pytest.raises(TypeError):
        c.payload["extra"] = 1


def test_source_without_generate_cannot_be_built():
    class Incomplete(RecommendationSource):
        name = "rule"

    with pytest.raises(TypeError):
        Incomplete()
    assert RuleSource().remote is False
