# app/services/repository.py
"""
Persistence collaborator for the recommendation engine.

The engine never touches ORM rows directly: rows are converted into the
read-only value types below (UserRecord, BiometricSample) so the engine can be
exercised with any store that implements the same two calls:

    get_user(user_id)                        -> UserRecord   (raises UserNotFound)
    get_samples_in_range(user_id, start, end) -> list[BiometricSample] ordered by timestamp

Each call opens its own short-lived session, so the repository is safe to share
between request threads.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Callable, Mapping, Optional, Protocol, Sequence

from sqlalchemy.orm import Session

from app import models
from app.errors import UserNotFound

RECOMMENDATION_PREF_FIELDS = ("workouts", "nutrition", "mindfulness", "goals", "general")


# ---- Value types ----

@dataclass(frozen=True)
class Measurement:
    value: float
    unit: str


@dataclass(frozen=True)
class UserRecord:
    user_id: int
    birth_date: date
    activity_level: str
    sex: Optional[str] = None
    goals: tuple[str, ...] = ()
    height: Optional[Measurement] = None
    weight: Optional[Measurement] = None
    dietary_restrictions: tuple[str, ...] = ()
    allergies: tuple[str, ...] = ()
    health_conditions: tuple[Mapping[str, Any], ...] = ()
    units: Mapping[str, str] = field(default_factory=dict)
    recommendation_preferences: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class BiometricSample:
    timestamp: datetime
    source: str = "manual"
    vitals: Optional[Mapping[str, Any]] = None
    body_composition: Optional[Mapping[str, Any]] = None
    activity: Optional[Mapping[str, Any]] = None
    sleep: Optional[Mapping[str, Any]] = None
    stress: Optional[Mapping[str, Any]] = None
    nutrition: Optional[Mapping[str, Any]] = None
    mental_health: Optional[Mapping[str, Any]] = None

    def get(self, path: str) -> Any:
        """Dotted lookup, e.g. ``sample.get("body_composition.weight.value")``."""
        head, _, rest = path.partition(".")
        node: Any = getattr(self, head, None)
        for key in rest.split(".") if rest else ():
            if not isinstance(node, Mapping):
                return None
            node = node.get(key)
        return node


class UserRepository(Protocol):
    def get_user(self, user_id: int) -> UserRecord: ...

    def get_samples_in_range(self, user_id: int, start: datetime, end: datetime) -> Sequence[BiometricSample]: ...


# ---- Row conversion ----

def _measurement(value: Optional[float], unit: Optional[str], default_unit: str) -> Optional[Measurement]:
    if value is None:
        return None
    return Measurement(value=float(value), unit=(unit or default_unit).lower())


def preferences_to_dict(pref: Optional[models.RecommendationPreference]) -> dict[str, Any]:
    if pref is None:
        return {}
    out: dict[str, Any] = {k: dict(getattr(pref, k) or {}) for k in RECOMMENDATION_PREF_FIELDS}
    out["excluded_items"] = list(pref.excluded_items or [])
    out["liked_items"] = list(pref.liked_items or [])
    return out


def user_record_from_row(user: models.User) -> UserRecord:
    return UserRecord(
        user_id=user.id,
        birth_date=user.dob,
        activity_level=(user.activity_level or "moderately-active").lower(),
        sex=(user.sex or None),
        goals=tuple(user.fitness_goals or ()),
        height=_measurement(user.height_value, user.height_unit, "cm"),
        weight=_measurement(user.weight_value, user.weight_unit, "kg"),
        dietary_restrictions=tuple(user.dietary_restrictions or ()),
        allergies=tuple(user.allergies or ()),
        health_conditions=tuple(user.health_conditions or ()),
        units=dict(user.units or {}),
        recommendation_preferences=preferences_to_dict(user.recommendation_preference),
    )


def sample_from_row(row: models.BiometricSample) -> BiometricSample:
    return BiometricSample(
        timestamp=row.timestamp,
        source=row.source or "manual",
        vitals=row.vitals,
        body_composition=row.body_composition,
        activity=row.activity,
        sleep=row.sleep,
        stress=row.stress,
        nutrition=row.nutrition,
        mental_health=row.mental_health,
    )


# ---- SQLAlchemy implementation ----

class SqlUserRepository:
    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def get_user(self, user_id: int) -> UserRecord:
        with self.session_factory() as db:
            user = db.get(models.User, user_id)
            if user is None:
                raise UserNotFound(user_id)
            return user_record_from_row(user)

    def get_samples_in_range(self, user_id: int, start: datetime, end: datetime) -> list[BiometricSample]:
        with self.session_factory() as db:
            rows = (
                db.query(models.BiometricSample)
                .filter(models.BiometricSample.user_id == user_id)
                .filter(models.BiometricSample.timestamp >= start)
                .filter(models.BiometricSample.timestamp <= end)
                .order_by(models.BiometricSample.timestamp.asc(), models.BiometricSample.id.asc())
                .all()
            )
            return [sample_from_row(r) for r in rows]


class SqlPreferenceStore:
    """Read/write of per-user recommendation preferences and feedback."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self.session_factory = session_factory

    def get(self, user_id: int) -> dict[str, Any]:
        with self.session_factory() as db:
            pref = db.query(models.RecommendationPreference).filter_by(user_id=user_id).first()
            return preferences_to_dict(pref)

    def _get_or_create(self, db: Session, user_id: int) -> models.RecommendationPreference:
        pref = db.query(models.RecommendationPreference).filter_by(user_id=user_id).first()
        if pref is None:
            pref = models.RecommendationPreference(
                user_id=user_id, workouts={}, nutrition={}, mindfulness={}, goals={}, general={},
                excluded_items=[], liked_items=[],
            )
            db.add(pref)
        return pref

    def update(self, user_id: int, patch: Mapping[str, Any]) -> dict[str, Any]:
        """Replace the provided preference sections; other sections are kept."""
        with self.session_factory() as db:
            pref = self._get_or_create(db, user_id)
            for k in RECOMMENDATION_PREF_FIELDS:
                if patch.get(k) is not None:
                    setattr(pref, k, dict(patch[k]))
            pref.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(pref)
            return preferences_to_dict(pref)

    def record_feedback(
        self,
        user_id: int,
        *,
        recommendation_id: str,
        category: str,
        rating: int,
        comment: Optional[str] = None,
        completed: bool = False,
    ) -> dict[str, Any]:
        """
        Store feedback. Ratings <= 2 exclude the item from future recommendations,
        ratings >= 4 mark it as liked. Returns the resulting preferences.
        """
        with self.session_factory() as db:
            db.add(models.RecommendationFeedback(
                user_id=user_id,
                recommendation_id=recommendation_id,
                category=category,
                rating=int(rating),
                comment=comment,
                completed=bool(completed),
            ))
            pref = self._get_or_create(db, user_id)
            excluded = [i for i in (pref.excluded_items or []) if i != recommendation_id]
            liked = [i for i in (pref.liked_items or []) if i != recommendation_id]
            if rating <= 2:
                excluded.append(recommendation_id)
            elif rating >= 4:
                liked.append(recommendation_id)
            # reassign so the JSON columns are flagged dirty
            pref.excluded_items = excluded
            pref.liked_items = liked
            pref.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(pref)
            return preferences_to_dict(pref)
