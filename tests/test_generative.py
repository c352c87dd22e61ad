import json

import pytest

from app.errors import GenerativeResponseInvalid, GenerativeUnavailable, RateLimited
from app.services.generative import GenerativeSource
from app.services.sources import RecommendationOptions
from fakes import FakeTextClient

OPTS = RecommendationOptions()

WORKOUTS = {
    "recommendations": [
        {"name": "Stair Intervals", "type": "cardio", "difficulty": "Beginner", "duration_min": 20,
         "exercises": ["climb 1 min", "walk down"], "confidence": 0.7, "unexpected": "ignored"},
        {"name": "Band Pull-Aparts", "type": "resistance", "difficulty": "beginner", "duration_min": 10},
    ]
}


def test_valid_response_becomes_candidates(make_profile):
    client = FakeTextClient(WORKOUTS)
    items = GenerativeSource(client).generate("workout", make_profile(), OPTS)
    assert [c.id for c in items] == ["gen-workout-stair-intervals", "gen-workout-band-pull-aparts"]
    assert items[0].source == "generative" and items[0].weight == 0.2
    assert items[0].intrinsic_score == 0.7
    assert items[1].intrinsic_score == 1.0
    assert items[0].payload["difficulty"] == "beginner"
    assert "unexpected" not in items[0].payload


def test_prompt_carries_bounded_profile_summary(make_profile):
    client = FakeTextClient(WORKOUTS)
    GenerativeSource(client).generate("workout", make_profile(allergies=("shellfish",)), OPTS)
    system, user = client.calls[0]
    payload = json.loads(user)
    assert payload["task"] == "recommend_workout"
    assert payload["profile"]["allergies"] == ["shellfish"]
    assert "output_schema" in payload
    assert "trainer" in system


def test_invalid_json_is_unavailable(make_profile):
    client = FakeTextClient("Sure! Here are some workouts: ...")
    with pytest.raises(GenerativeResponseInvalid):
        GenerativeSource(client).generate("workout", make_profile(), OPTS)


def test_one_malformed_item_rejects_whole_response(make_profile):
    bad = {"recommendations": [WORKOUTS["recommendations"][0], {"name": "No Duration", "type": "yoga",
                                                                 "difficulty": "beginner"}]}
    with pytest.raises(GenerativeResponseInvalid):
        GenerativeSource(FakeTextClient(bad)).generate("workout", make_profile(), OPTS)


def test_disabled_client_raises_unavailable(make_profile):
    client = FakeTextClient(WORKOUTS, enabled=False)
    with pytest.raises(GenerativeUnavailable):
        GenerativeSource(client).generate("workout", make_profile(), OPTS)
    assert client.calls == []


def test_rate_limit_propagates_as_unavailable(make_profile):
    client = FakeTextClient(RateLimited())
    with pytest.raises(GenerativeUnavailable):
        GenerativeSource(client).generate("goals", make_profile(), OPTS)


def test_nutrition_calories_snap_to_target(make_profile):
    profile = make_profile(activity_level="sedentary", goals=("weight-loss",))
    target = int(round(profile.tdee - 500))
    meal = {"name": "Rice Bowl", "meal": "lunch", "calories": 600, "protein_g": 30, "carbs_g": 80, "fat_g": 15}

    far = FakeTextClient({"daily_calories": target + 900, "recommendations": [meal]})
    item = GenerativeSource(far).generate("nutrition", profile, OPTS)[0]
    assert item.payload["daily_calories"] == target
    assert item.payload["calories_adjusted"] is True

    near = FakeTextClient({"daily_calories": target + 200, "recommendations": [meal]})
    item = GenerativeSource(near).generate("nutrition", profile, OPTS)[0]
    assert item.payload["daily_calories"] == target + 200
    assert item.payload["calories_adjusted"] is False
