# app/services/sources.py
"""
Recommendation sources.

Every source implements the same capability:

    generate(category, profile, options) -> list[Candidate]

and fails on its own (SourceUnavailable) without touching the others. The
engine fans them out, the blender merges what comes back.

- SimilaritySource: k nearest peer cohorts by goals and fitness level; a
  cohort's items are scored by similarity x observed success rate.
- RuleSource: direct attribute matching of the profile (goals, preferred
  types, conditions, diet, stress/sleep) against the curated catalog.

The generative source lives in generative.py.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Sequence

from app.services import catalog
from app.services.metrics import FITNESS_LEVELS
from app.services.profile import UserProfile

log = logging.getLogger("vitalis.sources")

CATEGORIES = ("workout", "nutrition", "mindfulness", "goals")

SOURCE_WEIGHTS = {"similarity": 0.4, "rule": 0.4, "generative": 0.2}

SIMILARITY_NEIGHBOURS = 3

# restrictions we can check against meal diet tags; anything else is ignored
KNOWN_DIET_TAGS = {
    "vegetarian", "vegan", "gluten-free", "dairy-free", "nut-free",
    "halal", "kosher", "keto", "paleo",
}


# ---- Data models ----

@dataclass(frozen=True)
class Candidate:
    id: str
    category: str
    source: str
    weight: float
    title: str
    payload: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    intrinsic_score: float = 1.0
    reason: str = ""

    @property
    def score(self) -> float:
        return self.weight * self.intrinsic_score

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "category": self.category,
            "source": self.source,
            "title": self.title,
            "score": round(self.score, 4),
            "reason": self.reason,
            "details": dict(self.payload),
        }


@dataclass(frozen=True)
class RecommendationOptions:
    count: Optional[int] = None
    # workout
    difficulty: Optional[str] = None
    workout_type: Optional[str] = None
    equipment: Optional[tuple[str, ...]] = None  # available equipment; None = anything
    max_duration_min: Optional[int] = None
    # mindfulness
    focus_area: Optional[str] = None
    # nutrition
    include_snacks: bool = True

    def signature(self) -> tuple:
        return (
            self.count,
            self.difficulty,
            self.workout_type,
            tuple(sorted(self.equipment)) if self.equipment is not None else None,
            self.max_duration_min,
            self.focus_area,
            self.include_snacks,
        )


class RecommendationSource(ABC):
    name = "base"
    # remote sources call out of process and run on their own bounded pool
    remote = False

    @property
    def weight(self) -> float:
        return SOURCE_WEIGHTS[self.name]

    @abstractmethod
    def generate(self, category: str, profile: UserProfile, options: RecommendationOptions) -> List[Candidate]:
        ...

    def _candidate(self, category: str, item: Mapping[str, Any], score: float, reason: str) -> Candidate:
        payload = MappingProxyType({k: v for k, v in item.items() if k not in ("id", "name", "trigger")})
        return Candidate(
            id=item["id"],
            category=category,
            source=self.name,
            weight=self.weight,
            title=item.get("name") or item.get("target") or item["id"],
            payload=payload,
            intrinsic_score=round(max(0.0, min(score, 1.0)), 4),
            reason=reason,
        )


# ---- Shared filtering ----

def item_allowed(category: str, item: Mapping[str, Any], profile: UserProfile,
                 options: RecommendationOptions) -> bool:
    """Hard filters every catalog-backed source applies: exclusions, safety, diet, options."""
    if item["id"] in profile.preferences.get("excluded_items", ()):
        return False

    if category == "workout":
        if options.difficulty:
            if item["difficulty"] != options.difficulty:
                return False
        elif not catalog.difficulty_allowed(item["difficulty"], profile.fitness_level):
            return False
        if options.workout_type and item["type"] != options.workout_type:
            return False
        if options.equipment is not None and not set(item["equipment"]) <= set(options.equipment):
            return False
        if options.max_duration_min and item["duration_min"] > options.max_duration_min:
            return False
        for implication in profile.implications:
            if set(item["tags"]) & catalog.WORKOUT_CONTRAINDICATIONS.get(implication, set()):
                return False
        return True

    if category == "nutrition":
        if not options.include_snacks and item["meal"] == "snack":
            return False
        for restriction in profile.preferences.get("dietary_restrictions", ()):
            if restriction in KNOWN_DIET_TAGS and restriction not in item["diet_tags"]:
                return False
        if catalog.normalize_allergens(profile.preferences.get("allergies", ())) & set(item["allergens"]):
            return False
        if "low-glycemic" in profile.implications and item["glycemic"] == "high":
            return False
        if "low-sodium" in profile.implications and item["sodium"] == "high":
            return False
        return True

    if category == "mindfulness":
        if options.focus_area and options.focus_area not in item["focus"]:
            return False
        if options.max_duration_min and item["duration_min"] > options.max_duration_min:
            return False
        return True

    return True


def mindfulness_focus_areas(profile: UserProfile, options: Optional[RecommendationOptions] = None) -> List[str]:
    """Focus areas the data calls for, most urgent first; ["general"] when nothing stands out."""
    areas: List[str] = []
    if options is not None and options.focus_area:
        areas.append(options.focus_area)
    if profile.stress_level > 3:
        areas += ["stress", "anxiety"]
    if profile.sleep_quality < 3:
        areas.append("sleep")
    if "calming-practices" in profile.implications:
        areas.append("anxiety")
    if "sleep-hygiene" in profile.implications:
        areas.append("sleep")
    out: List[str] = []
    for a in areas:
        if a not in out:
            out.append(a)
    return out or ["general"]


# ---- Similarity ----

def _jaccard(a: Sequence[str], b: Sequence[str]) -> float:
    sa, sb = set(a), set(b)
    if not sa and not sb:
        return 1.0
    return len(sa & sb) / float(len(sa | sb))


def _level_rank(level: str) -> int:
    return FITNESS_LEVELS.index(level) if level in FITNESS_LEVELS else 0


def cohort_similarity(profile: UserProfile, cohort: Mapping[str, Any]) -> float:
    level_gap = abs(_level_rank(profile.fitness_level) - _level_rank(cohort["fitness_level"]))
    level_sim = 1.0 - level_gap / float(len(FITNESS_LEVELS) - 1)
    return 0.5 * _jaccard(profile.goals, cohort["goals"]) + 0.5 * level_sim


class SimilaritySource(RecommendationSource):
    name = "similarity"

    def __init__(self, cohorts: Optional[List[Dict[str, Any]]] = None, k: int = SIMILARITY_NEIGHBOURS) -> None:
        self.cohorts = cohorts if cohorts is not None else catalog.PEER_COHORTS
        self.k = k

    def nearest(self, profile: UserProfile) -> List[tuple[float, Dict[str, Any]]]:
        scored = [(cohort_similarity(profile, c), c) for c in self.cohorts]
        scored = [(s, c) for s, c in scored if s > 0]
        # stable: equal similarity keeps catalog order
        scored.sort(key=lambda sc: sc[0], reverse=True)
        return scored[: self.k]

    def generate(self, category: str, profile: UserProfile, options: RecommendationOptions) -> List[Candidate]:
        items = catalog.CATEGORY_ITEMS.get(category, {})
        best: Dict[str, tuple[float, str]] = {}
        for similarity, cohort in self.nearest(profile):
            for item_id, success in cohort["items"].get(category, ()):
                item = items.get(item_id)
                if item is None or not item_allowed(category, item, profile, options):
                    continue
                score = similarity * success
                if item_id not in best or score > best[item_id][0]:
                    best[item_id] = (score, cohort["id"])

        ranked = sorted(best.items(), key=lambda kv: kv[1][0], reverse=True)
        log.debug("similarity user=%s category=%s candidates=%d", profile.user_id, category, len(ranked))
        return [
            self._candidate(category, items[item_id], score,
                            f"worked for similar users ({cohort_id})")
            for item_id, (score, cohort_id) in ranked
        ]


# ---- Rules ----

def workout_adaptations(profile: UserProfile) -> List[str]:
    out: List[str] = []
    if "low-impact" in profile.implications:
        out.append("Choose low-impact variations (no running or jumping).")
    if "avoid-max-effort" in profile.implications:
        out.append("Keep effort at a conversational level; skip all-out intervals.")
    if "avoid-heavy-isometric" in profile.implications:
        out.append("Avoid long breath-holding holds; keep breathing through every rep.")
    if "gradual-warmup" in profile.implications:
        out.append("Extend the warm-up to at least 10 minutes.")
    if "medical-clearance" in profile.implications:
        out.append("Get medical clearance before increasing intensity.")
    if profile.fitness_level == "beginner":
        out.append("Start with 2-3 sessions a week and add volume gradually.")
    if profile.recent_activity.consistency and profile.recent_activity.consistency < 0.5:
        out.append("Short sessions on more days will help rebuild consistency.")
    trend = profile.health_trends.get("activity")
    if trend is not None and trend.direction == "decreasing":
        out.append("Activity has been dropping; pick the shortest session that you will actually do.")
    return out


def goal_adjustments(profile: UserProfile) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    weight = profile.health_trends.get("weight")
    if weight is not None:
        if "weight-loss" in profile.goals and weight.direction == "increasing":
            out.append({"goal": "weight-loss", "adjustment": "increase-deficit",
                        "detail": "Weight is trending up; tighten the calorie target or add activity."})
        if "weight-gain" in profile.goals and weight.direction == "decreasing":
            out.append({"goal": "weight-gain", "adjustment": "increase-surplus",
                        "detail": "Weight is trending down; add calories on training days."})
        if "weight-loss" in profile.goals and weight.direction == "decreasing" and weight.strength >= 4:
            out.append({"goal": "weight-loss", "adjustment": "slow-down",
                        "detail": "Weight is dropping quickly; make sure protein intake is sufficient."})
    activity = profile.health_trends.get("activity")
    if activity is not None and activity.direction == "decreasing":
        out.append({"goal": "general-health", "adjustment": "rebuild-activity",
                    "detail": "Daily steps are trending down."})
    sleep = profile.health_trends.get("sleep")
    if sleep is not None and sleep.direction == "decreasing":
        out.append({"goal": "general-health", "adjustment": "protect-sleep",
                    "detail": "Sleep duration is trending down."})
    return out


class RuleSource(RecommendationSource):
    name = "rule"

    def generate(self, category: str, profile: UserProfile, options: RecommendationOptions) -> List[Candidate]:
        rule = getattr(self, f"_{category}", None)
        if rule is None:
            return []
        scored = rule(profile, options)
        scored.sort(key=lambda t: t[0], reverse=True)
        return [self._candidate(category, item, score, reason) for score, item, reason in scored if score > 0]

    def _liked(self, profile: UserProfile, item: Mapping[str, Any]) -> float:
        return 0.1 if item["id"] in profile.preferences.get("liked_items", ()) else 0.0

    def _workout(self, profile: UserProfile, options: RecommendationOptions) -> list:
        preferred = set(profile.preferences.get("workout_types", ()))
        minutes = profile.preferences.get("time_availability_min")
        out = []
        for w in catalog.WORKOUTS:
            if not item_allowed("workout", w, profile, options):
                continue
            score = 0.0
            reasons = []
            if set(w["goals"]) & set(profile.goals):
                score += 0.5
                reasons.append("matches your goals")
            if w["type"] in preferred or "mixed" in preferred:
                score += 0.3
                reasons.append(f"{w['type']} is a preferred type")
            if minutes is None or w["duration_min"] <= minutes:
                score += 0.2
                reasons.append("fits your available time")
            score += self._liked(profile, w)
            out.append((score, w, ", ".join(reasons)))
        return out

    def _nutrition(self, profile: UserProfile, options: RecommendationOptions) -> list:
        out = []
        for m in catalog.MEALS:
            if not item_allowed("nutrition", m, profile, options):
                continue
            score = 0.4
            reasons = ["fits your dietary constraints"]
            if set(m["goals"]) & set(profile.goals):
                score += 0.4
                reasons.append("supports your goals")
            if "low-glycemic" in profile.implications and m["glycemic"] == "low":
                score += 0.1
                reasons.append("low glycemic load")
            score += self._liked(profile, m)
            out.append((score, m, ", ".join(reasons)))
        return out

    def _mindfulness(self, profile: UserProfile, options: RecommendationOptions) -> list:
        areas = mindfulness_focus_areas(profile, options)
        primary = set(areas)
        secondary = {"general", "mood"}
        out = []
        for p in catalog.MINDFULNESS:
            if not item_allowed("mindfulness", p, profile, options):
                continue
            hits = set(p["focus"]) & primary
            if hits:
                score, reason = 1.0, f"targets {', '.join(sorted(hits))}"
            elif set(p["focus"]) & secondary:
                score, reason = 0.6, "general well-being practice"
            else:
                score, reason = 0.3, "adds variety"
            if profile.fitness_level == "beginner" and p["experience"] == "advanced":
                score -= 0.2
            score += self._liked(profile, p)
            out.append((score, p, reason))
        return out

    def _goals(self, profile: UserProfile, options: RecommendationOptions) -> list:
        out = []
        for g in catalog.GOAL_TEMPLATES:
            if not item_allowed("goals", g, profile, options):
                continue
            declared = g["goal"] in profile.goals
            trigger = g["trigger"]
            if trigger is None:
                if declared:
                    out.append((0.7, g, "builds on a declared goal"))
                continue
            family, direction = trigger
            trend = profile.health_trends.get(family)
            if trend is None or trend.direction != direction:
                continue
            out.append((1.0 if declared else 0.8, g, f"{family} trend is {direction}"))
        return out
