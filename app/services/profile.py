# app/services/profile.py
"""
Profile builder: turns a UserRecord plus the last 30 days of biometric
samples into a denormalized UserProfile snapshot, cached per user for an hour.

Resilience contract: only an unknown user (UserNotFound) fails a build. Any
other failure while fetching samples or computing a field is logged, the field
falls back to its DEFAULT_* value (empty for collections), and the field
name is recorded in `UserProfile.degraded`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Sequence, TypeVar

from app.errors import NotFound
from app.services import metrics
from app.services.cache import TTLCache
from app.services.repository import BiometricSample, UserRecord, UserRepository
from app.services.trends import TrendResult, aggregate_trends

log = logging.getLogger("vitalis.profile")

T = TypeVar("T")

DEFAULT_AGE = 35
DEFAULT_TIME_AVAILABILITY_MIN = 30
DEFAULT_STRESS_LEVEL = 2.5
DEFAULT_SLEEP_QUALITY = 3.0

CONDITION_IMPLICATIONS: dict[str, list[str]] = {
    "hypertension": ["avoid-heavy-isometric", "avoid-max-effort", "low-sodium"],
    "diabetes": ["low-glycemic", "monitor-glucose-around-exercise"],
    "type-2-diabetes": ["low-glycemic", "monitor-glucose-around-exercise"],
    "asthma": ["gradual-warmup", "avoid-cold-air-cardio"],
    "arthritis": ["low-impact"],
    "knee-injury": ["low-impact", "avoid-jumping"],
    "back-pain": ["avoid-heavy-spinal-loading", "core-stability"],
    "heart-disease": ["medical-clearance", "avoid-max-effort"],
    "pregnancy": ["low-impact", "avoid-max-effort"],
    "anxiety": ["calming-practices"],
    "insomnia": ["sleep-hygiene"],
}

GOAL_WORKOUT_TYPES: dict[str, tuple[str, ...]] = {
    "weight-loss": ("cardio", "hiit"),
    "muscle-gain": ("strength", "resistance"),
    "flexibility": ("yoga", "stretching"),
}


# ---- Data models ----

@dataclass(frozen=True)
class UserProfile:
    user_id: int
    age: int
    sex: Optional[str]
    goals: tuple[str, ...]
    activity_level: str
    fitness_level: str
    fitness_score: float
    health_trends: Mapping[str, TrendResult]
    preferences: Mapping[str, Any]
    constraints: tuple[Mapping[str, Any], ...]
    recent_activity: metrics.RecentActivity
    bmi: Optional[float]
    bmr: float
    tdee: float
    stress_level: float
    sleep_quality: float
    built_at: datetime
    estimated: tuple[str, ...] = ()
    degraded: tuple[str, ...] = ()
    implications: frozenset[str] = field(default_factory=frozenset)

    def summary(self) -> dict[str, Any]:
        """Bounded, JSON-friendly view used in prompts and API responses."""
        return {
            "age": self.age,
            "sex": self.sex,
            "goals": list(self.goals),
            "activity_level": self.activity_level,
            "fitness_level": self.fitness_level,
            "bmi": self.bmi,
            "dietary_restrictions": list(self.preferences.get("dietary_restrictions", ())),
            "allergies": list(self.preferences.get("allergies", ())),
            "conditions": [c.get("condition") for c in self.constraints if c.get("type") == "health"],
            "average_steps": self.recent_activity.average_steps,
            "average_sleep_min": self.recent_activity.average_sleep_min,
            "trends": {k: t.direction for k, t in self.health_trends.items()},
            "stress_level": self.stress_level,
            "sleep_quality": self.sleep_quality,
        }


# ---- Helpers ----

def infer_workout_types(goals: Sequence[str]) -> list[str]:
    out: list[str] = []
    for g in goals:
        for t in GOAL_WORKOUT_TYPES.get(g, ()):
            if t not in out:
                out.append(t)
    return out or ["mixed"]


def condition_implications(condition: str) -> list[str]:
    key = (condition or "").strip().lower().replace(" ", "-")
    return CONDITION_IMPLICATIONS.get(key, ["consult-physician"])


def extract_preferences(record: UserRecord) -> dict[str, Any]:
    rec_prefs = dict(record.recommendation_preferences or {})
    general = rec_prefs.get("general") or {}
    workouts = rec_prefs.get("workouts") or {}
    preferred = [str(t).lower() for t in (workouts.get("types") or [])]
    try:
        minutes = int(general.get("minutes_per_day") or DEFAULT_TIME_AVAILABILITY_MIN)
    except (TypeError, ValueError):
        minutes = DEFAULT_TIME_AVAILABILITY_MIN
    return {
        "dietary_restrictions": [r.lower() for r in record.dietary_restrictions],
        "allergies": [a.lower() for a in record.allergies],
        "units": dict(record.units or {}),
        "workout_types": preferred or infer_workout_types(record.goals),
        "time_availability_min": minutes,
        "excluded_items": list(rec_prefs.get("excluded_items") or []),
        "liked_items": list(rec_prefs.get("liked_items") or []),
        "recommendation": {k: v for k, v in rec_prefs.items() if k not in ("excluded_items", "liked_items")},
    }


def identify_constraints(record: UserRecord) -> list[dict[str, Any]]:
    constraints: list[dict[str, Any]] = []
    for c in record.health_conditions:
        name = str(c.get("condition") or "").strip()
        if not name:
            continue
        constraints.append({
            "type": "health",
            "condition": name,
            "severity": c.get("severity"),
            "implications": condition_implications(name),
        })
    if record.allergies:
        constraints.append({"type": "allergies", "items": [a.lower() for a in record.allergies]})
    if record.dietary_restrictions:
        constraints.append({"type": "dietary", "restrictions": [r.lower() for r in record.dietary_restrictions]})
    return constraints


def freeze(value: Any) -> Any:
    if isinstance(value, dict):
        return MappingProxyType({k: freeze(v) for k, v in value.items()})
    if isinstance(value, list):
        return tuple(freeze(v) for v in value)
    return value


def thaw(value: Any) -> Any:
    if isinstance(value, Mapping):
        return {k: thaw(v) for k, v in value.items()}
    if isinstance(value, tuple):
        return [thaw(v) for v in value]
    return value


# ---- Builder ----

class ProfileBuilder:
    def __init__(
        self,
        repository: UserRepository,
        *,
        ttl_seconds: float = 3600,
        window_days: int = 30,
        recent_days: int = 7,
        now: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.repository = repository
        self.window_days = window_days
        self.recent_days = recent_days
        self.now = now
        self.cache: TTLCache[UserProfile] = TTLCache(ttl_seconds, clock=lambda: self.now().timestamp())

    def invalidate(self, user_id: int) -> bool:
        return self.cache.invalidate(user_id)

    def build(self, user_id: int, *, force_refresh: bool = False) -> UserProfile:
        generation = self.cache.generation(user_id)
        previous = self.cache.get_entry(user_id)
        if previous is not None and not force_refresh:
            log.debug("profile cache hit user=%s", user_id)
            return previous.value

        record = self.repository.get_user(user_id)  # UserNotFound propagates
        built_at = self.now()
        if previous is not None and built_at <= previous.value.built_at:
            built_at = previous.value.built_at + timedelta(microseconds=1)

        profile = self._assemble(record, built_at)
        if not self.cache.put(user_id, profile, generation=generation):
            log.info("profile invalidated while building user=%s, not cached", user_id)
        log.info("profile built user=%s fitness=%s degraded=%s",
                 user_id, profile.fitness_level, ",".join(profile.degraded) or "-")
        return profile

    # ------------------------------------------------------------------
    def _safe(self, degraded: list[str], name: str, fn: Callable[[], T], default: T) -> T:
        try:
            return fn()
        except NotFound:
            raise
        except Exception as e:
            log.warning("profile field degraded user_field=%s error=%r default=%r", name, e, default)
            degraded.append(name)
            return default

    def _fetch_samples(self, user_id: int, built_at: datetime) -> list[BiometricSample]:
        start = built_at - timedelta(days=self.window_days)
        samples = list(self.repository.get_samples_in_range(user_id, start, built_at))
        samples.sort(key=lambda s: s.timestamp)
        return samples

    def _assemble(self, record: UserRecord, built_at: datetime) -> UserProfile:
        degraded: list[str] = []
        estimated: list[str] = []
        uid = record.user_id

        samples = self._safe(degraded, "samples", lambda: self._fetch_samples(uid, built_at), [])
        age = self._safe(degraded, "age", lambda: metrics.age(record.birth_date, built_at.date()), DEFAULT_AGE)
        bmi = self._safe(degraded, "bmi", lambda: metrics.bmi(record.height, record.weight), None)
        recent = self._safe(
            degraded, "recent_activity",
            lambda: metrics.recent_activity(samples, built_at, self.recent_days),
            metrics.RecentActivity(),
        )

        weight = recent.average_weight_kg or metrics.to_kg(record.weight)
        height = metrics.to_cm(record.height)
        if weight is None:
            estimated.append("weight")
        if height is None:
            estimated.append("height")
        bmr = self._safe(
            degraded, "bmr",
            lambda: metrics.bmr(age, record.sex, weight, height),
            metrics.bmr(DEFAULT_AGE, record.sex),
        )
        tdee = self._safe(degraded, "tdee", lambda: metrics.tdee(bmr, record.activity_level), bmr * metrics.DEFAULT_TDEE_MULTIPLIER)

        def _fitness() -> tuple[str, float]:
            steps = metrics.mean(metrics.sample_steps(s) for s in samples)
            hrv = metrics.mean(metrics.sample_hrv(s) for s in samples)
            return (
                metrics.fitness_level(record.activity_level, steps, hrv),
                metrics.fitness_score(record.activity_level, steps, hrv),
            )

        fitness_level, fitness_score = self._safe(degraded, "fitness_level", _fitness, ("beginner", 1.0))
        trends = self._safe(degraded, "health_trends", lambda: aggregate_trends(samples), {})

        stress = self._safe(degraded, "stress_level", lambda: metrics.stress_level(samples), None)
        sleep = self._safe(degraded, "sleep_quality", lambda: metrics.sleep_quality(samples), None)

        preferences = self._safe(degraded, "preferences", lambda: extract_preferences(record), {})
        constraints = self._safe(degraded, "constraints", lambda: identify_constraints(record), [])
        implications = frozenset(i for c in constraints for i in c.get("implications", ()))

        return UserProfile(
            user_id=uid,
            age=age,
            sex=record.sex,
            goals=tuple(record.goals),
            activity_level=record.activity_level,
            fitness_level=fitness_level,
            fitness_score=round(fitness_score, 2),
            health_trends=MappingProxyType(dict(trends)),
            preferences=freeze(preferences),
            constraints=tuple(freeze(c) for c in constraints),
            recent_activity=recent,
            bmi=bmi,
            bmr=round(bmr, 1),
            tdee=round(tdee, 1),
            stress_level=stress if stress is not None else DEFAULT_STRESS_LEVEL,
            sleep_quality=sleep if sleep is not None else DEFAULT_SLEEP_QUALITY,
            built_at=built_at,
            estimated=tuple(estimated),
            degraded=tuple(degraded),
            implications=implications,
        )
