# app/routers/recommendations.py
from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from app.auth_utils import get_current_user
from app.deps import get_engine, get_preference_store
from app.errors import NotFound
from app.models import User
from app.schemas import FeedbackIn, PreferencesUpdate
from app.services.engine import RecommendationEngine
from app.services.repository import SqlPreferenceStore
from app.services.sources import RecommendationOptions

log = logging.getLogger("vitalis.recommendations")

router = APIRouter()


def _generate(engine: RecommendationEngine, user_id: int, category: str,
              options: RecommendationOptions, refresh: bool) -> dict[str, Any]:
    try:
        bundle = engine.generate_recommendations(user_id, category, options, force_refresh=refresh)
    except NotFound:
        raise HTTPException(status_code=404, detail="user_not_found")
    return bundle.to_dict()


def _split_csv(value: Optional[str]) -> Optional[tuple[str, ...]]:
    if value is None:
        return None
    return tuple(v.strip().lower() for v in value.split(",") if v.strip())


@router.get("", summary="Recommendations for one or all categories")
def recommendations(
    type: Literal["all", "workout", "nutrition", "mindfulness", "goals"] = Query("all"),
    refresh: bool = Query(False, description="Bypass cached profile and recommendations"),
    count: Optional[int] = Query(None, ge=1, le=20),
    current: User = Depends(get_current_user),
    engine: RecommendationEngine = Depends(get_engine),
):
    return _generate(engine, current.id, type, RecommendationOptions(count=count), refresh)


@router.get("/workouts", summary="Workout recommendations")
def workouts(
    difficulty: Optional[Literal["beginner", "intermediate", "advanced"]] = None,
    workout_type: Optional[str] = Query(None, description="cardio|strength|hiit|yoga|stretching|resistance"),
    equipment: Optional[str] = Query(None, description="Comma-separated equipment you have; empty for none"),
    max_duration_min: Optional[int] = Query(None, ge=5, le=240),
    count: Optional[int] = Query(None, ge=1, le=20),
    refresh: bool = False,
    current: User = Depends(get_current_user),
    engine: RecommendationEngine = Depends(get_engine),
):
    options = RecommendationOptions(
        count=count,
        difficulty=difficulty,
        workout_type=workout_type.lower() if workout_type else None,
        equipment=_split_csv(equipment),
        max_duration_min=max_duration_min,
    )
    return _generate(engine, current.id, "workout", options, refresh)


@router.get("/nutrition", summary="Nutrition recommendations and daily targets")
def nutrition(
    include_snacks: bool = True,
    count: Optional[int] = Query(None, ge=1, le=20),
    refresh: bool = False,
    current: User = Depends(get_current_user),
    engine: RecommendationEngine = Depends(get_engine),
):
    options = RecommendationOptions(count=count, include_snacks=include_snacks)
    return _generate(engine, current.id, "nutrition", options, refresh)


@router.get("/mindfulness", summary="Mindfulness practices")
def mindfulness(
    focus_area: Optional[Literal["stress", "sleep", "anxiety", "mood", "general"]] = None,
    max_duration_min: Optional[int] = Query(None, ge=1, le=120),
    count: Optional[int] = Query(None, ge=1, le=20),
    refresh: bool = False,
    current: User = Depends(get_current_user),
    engine: RecommendationEngine = Depends(get_engine),
):
    options = RecommendationOptions(count=count, focus_area=focus_area, max_duration_min=max_duration_min)
    return _generate(engine, current.id, "mindfulness", options, refresh)


@router.get("/goals", summary="Goal adjustments")
def goals(
    count: Optional[int] = Query(None, ge=1, le=20),
    refresh: bool = False,
    current: User = Depends(get_current_user),
    engine: RecommendationEngine = Depends(get_engine),
):
    return _generate(engine, current.id, "goals", RecommendationOptions(count=count), refresh)


@router.get("/preferences", summary="Stored recommendation preferences")
def get_preferences(
    current: User = Depends(get_current_user),
    store: SqlPreferenceStore = Depends(get_preference_store),
):
    return store.get(current.id)


@router.post("/preferences", summary="Update recommendation preferences")
def update_preferences(
    body: PreferencesUpdate,
    current: User = Depends(get_current_user),
    store: SqlPreferenceStore = Depends(get_preference_store),
    engine: RecommendationEngine = Depends(get_engine),
):
    prefs = store.update(current.id, body.model_dump(exclude_none=True))
    engine.invalidate_user_cache(current.id)
    return {"ok": True, "preferences": prefs}


@router.post("/feedback", summary="Rate a recommendation")
def feedback(
    body: FeedbackIn,
    current: User = Depends(get_current_user),
    store: SqlPreferenceStore = Depends(get_preference_store),
    engine: RecommendationEngine = Depends(get_engine),
):
    prefs = store.record_feedback(
        current.id,
        recommendation_id=body.recommendation_id,
        category=body.category,
        rating=body.rating,
        comment=body.comment,
        completed=body.completed,
    )
    engine.invalidate_user_cache(current.id)
    log.info("feedback user=%s item=%s rating=%s", current.id, body.recommendation_id, body.rating)
    return {
        "ok": True,
        "excluded": body.recommendation_id in prefs["excluded_items"],
        "liked": body.recommendation_id in prefs["liked_items"],
    }
