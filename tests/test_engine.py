import threading
import time
from dataclasses import FrozenInstanceError

import pytest

from app.errors import UserNotFound
from app.services.blender import FALLBACK_ID
from app.services.engine import RecommendationEngine
from app.services.generative import GenerativeSource
from app.services.sources import RecommendationOptions, RecommendationSource, RuleSource, SimilaritySource
from fakes import FakeTextClient, make_record

GOALS = {"recommendations": [{"goal": "endurance", "target": "Walk 30 minutes daily", "timeline_weeks": 4}]}


@pytest.fixture
def engines():
    created = []

    def _make(repo, clock, client=None, **kwargs):
        engine = RecommendationEngine(repo, client or FakeTextClient(enabled=False), now=clock, **kwargs)
        created.append(engine)
        return engine

    yield _make
    for e in created:
        e.close()


class ExplodingSource(RecommendationSource):
    name = "similarity"

    def generate(self, category, profile, options):
        raise RuntimeError("index corrupted")


class GatedSource(RecommendationSource):
    name = "similarity"

    def __init__(self, gate, blocked_users=(1,)):
        self.gate = gate
        self.blocked_users = blocked_users
        self.entered = threading.Event()

    def generate(self, category, profile, options):
        if profile.user_id in self.blocked_users:
            self.entered.set()
            self.gate.wait(timeout=10)
        return []


class EmptySource(RecommendationSource):
    name = "rule"

    def generate(self, category, profile, options):
        return []


def test_sedentary_weight_loss_scenario(repo, clock, engines):
    repo.add(make_record(activity_level="sedentary", goals=("weight-loss",)))
    engine = engines(repo, clock)
    bundle = engine.generate_recommendations(1, "nutrition")

    profile = engine.profiles.build(1)
    assert profile.fitness_level == "beginner"

    nutrition = bundle.categories["nutrition"]
    assert nutrition.fallback_used is True
    assert "generative" in nutrition.unavailable_sources
    assert nutrition.items[0].id == FALLBACK_ID
    assert nutrition.items[0].payload["daily_calories"] == int(round(profile.tdee - 500))
    assert nutrition.extras["targets"]["daily_calories"] == int(round(profile.tdee - 500))


def test_all_categories_with_generative_disabled(repo, clock, engines):
    repo.add(make_record())
    bundle = engines(repo, clock).generate_recommendations(1)
    assert set(bundle.categories) == {"workout", "nutrition", "mindfulness", "goals"}
    assert bundle.cached is False
    assert 1 <= len(bundle.categories["workout"].items) <= 5
    assert 1 <= len(bundle.categories["mindfulness"].items) <= 8
    assert bundle.categories["nutrition"].items
    assert "focus_areas" in bundle.categories["mindfulness"].extras


def test_second_call_is_served_from_cache(repo, clock, engines):
    repo.add(make_record())
    engine = engines(repo, clock)
    first = engine.generate_recommendations(1)
    clock.advance(minutes=30)
    second = engine.generate_recommendations(1)
    assert second.cached is True
    assert second.generated_at == first.generated_at
    assert first.cached is False

    # a single category is served out of the "all" bundle
    workout = engine.generate_recommendations(1, "workout")
    assert workout.cached is True
    assert set(workout.categories) == {"workout"}


def test_cache_misses_regenerate(repo, clock, engines):
    repo.add(make_record())
    engine = engines(repo, clock)
    engine.generate_recommendations(1, "workout")

    # category not covered
    assert engine.generate_recommendations(1, "goals").cached is False
    # different options
    assert engine.generate_recommendations(1, "goals", RecommendationOptions(count=2)).cached is False
    # expired
    clock.advance(hours=1, seconds=1)
    assert engine.generate_recommendations(1, "goals", RecommendationOptions(count=2)).cached is False


def test_invalidate_clears_bundle_and_profile(repo, clock, engines):
    repo.add(make_record())
    engine = engines(repo, clock)
    engine.generate_recommendations(1, "workout")
    calls = repo.user_calls
    engine.invalidate_user_cache(1)
    again = engine.generate_recommendations(1, "workout")
    assert again.cached is False
    assert repo.user_calls == calls + 1


def test_force_refresh_bypasses_both_caches(repo, clock, engines):
    repo.add(make_record())
    engine = engines(repo, clock)
    first = engine.generate_recommendations(1, "goals")
    refreshed = engine.generate_recommendations(1, "goals", force_refresh=True)
    assert refreshed.cached is False
    assert refreshed.profile["built_at"] > first.profile["built_at"]


def test_generative_timeout_is_treated_as_unavailable(repo, clock, engines):
    repo.add(make_record())
    gate = threading.Event()
    client = FakeTextClient(GOALS, gate=gate)
    engine = engines(repo, clock, client, generative_timeout=0.2)
    try:
        started = time.monotonic()
        bundle = engine.generate_recommendations(1, "goals")
        elapsed = time.monotonic() - started
    finally:
        gate.set()
    assert elapsed < 3
    assert bundle.categories["goals"].unavailable_sources == ("generative",)


def test_generative_candidates_are_blended(repo, clock, engines):
    repo.add(make_record())
    engine = engines(repo, clock, FakeTextClient(GOALS))
    goals = engine.generate_recommendations(1, "goals", RecommendationOptions(count=10)).categories["goals"]
    assert goals.unavailable_sources == ()
    assert "gen-goals-walk-30-minutes-daily" in [c.id for c in goals.items]


def test_invalid_generative_schema_drops_only_that_source(repo, clock, engines):
    repo.add(make_record())
    client = FakeTextClient({"recommendations": [{"goal": "endurance"}]})
    engine = engines(repo, clock, client)
    goals = engine.generate_recommendations(1, "goals").categories["goals"]
    assert goals.unavailable_sources == ("generative",)
    assert all(c.source != "generative" for c in goals.items)


def test_failing_source_is_absorbed(repo, clock, engines):
    repo.add(make_record())
    sources = [ExplodingSource(), RuleSource(), GenerativeSource(FakeTextClient(enabled=False))]
    engine = engines(repo, clock, sources=sources)
    workout = engine.generate_recommendations(1, "workout").categories["workout"]
    assert set(workout.unavailable_sources) == {"similarity", "generative"}
    assert workout.items


def test_exhausted_category_has_reasoning(repo, clock, engines):
    repo.add(make_record())
    engine = engines(repo, clock, sources=[EmptySource()])
    goals = engine.generate_recommendations(1, "goals").categories["goals"]
    assert goals.items == ()
    assert goals.reasoning


def test_unknown_user_propagates(repo, clock, engines):
    engine = engines(repo, clock, sources=[SimilaritySource(), RuleSource()])
    with pytest.raises(UserNotFound):
        engine.generate_recommendations(99)


def test_unknown_category_rejected(repo, clock, engines):
    repo.add(make_record())
    with pytest.raises(ValueError):
        engines(repo, clock).generate_recommendations(1, "sleep")


def test_bundle_is_immutable(repo, clock, engines):
    repo.add(make_record())
    bundle = engines(repo, clock).generate_recommendations(1, "workout")
    with pytest.raises(FrozenInstanceError):
        bundle.cached = True
    with pytest.raises(TypeError):
        bundle.categories["goals"] = None
    data = bundle.to_dict()
    assert data["recommendations"]["workout"]["items"][0]["source"] in ("similarity", "rule")
    assert isinstance(data["recommendations"]["workout"]["adaptations"], list)


def test_invalidate_during_generation_is_not_overwritten(repo, clock, engines):
    repo.add(make_record())
    gate = threading.Event()
    gated = GatedSource(gate)
    engine = engines(repo, clock, sources=[gated, RuleSource()])
    results = {}
    worker = threading.Thread(target=lambda: results.update(stale=engine.generate_recommendations(1, "workout")))
    worker.start()
    try:
        assert gated.entered.wait(timeout=5)
        repo.add(make_record(goals=("muscle-gain",)))
        engine.invalidate_user_cache(1)
    finally:
        gate.set()
        worker.join(timeout=5)

    assert tuple(results["stale"].profile["goals"]) == ("general-health",)
    after = engine.generate_recommendations(1, "workout")
    assert after.cached is False
    assert tuple(after.profile["goals"]) == ("muscle-gain",)
    assert engine.generate_recommendations(1, "workout").cached is True


def test_other_users_proceed_while_one_request_is_blocked(repo, clock, engines):
    repo.add(make_record(user_id=1))
    repo.add(make_record(user_id=2))
    gate = threading.Event()
    gated = GatedSource(gate, blocked_users=(1,))
    engine = engines(repo, clock, sources=[gated, RuleSource()])
    worker = threading.Thread(target=engine.generate_recommendations, args=(1, "goals"))
    worker.start()
    try:
        assert gated.entered.wait(timeout=5)
        started = time.monotonic()
        bundle = engine.generate_recommendations(2, "goals")
        assert time.monotonic() - started < 2
        assert bundle.categories["goals"].items
    finally:
        gate.set()
        worker.join(timeout=5)


def test_timed_out_generative_calls_do_not_delay_later_requests(repo, clock, engines):
    for uid in range(1, 5):
        repo.add(make_record(user_id=uid))
    gate = threading.Event()
    engine = engines(repo, clock, FakeTextClient(GOALS, gate=gate), generative_timeout=0.3, generative_workers=2)
    elapsed = []
    try:
        for uid in range(1, 5):
            started = time.monotonic()
            bundle = engine.generate_recommendations(uid)
            elapsed.append(time.monotonic() - started)
            assert all("generative" in r.unavailable_sources for r in bundle.categories.values())
            assert bundle.categories["workout"].items
    finally:
        gate.set()
    assert max(elapsed) < 1.5
