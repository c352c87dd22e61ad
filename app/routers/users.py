# app/routers/users.py
from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth_utils import get_current_user
from app.db import get_db
from app.deps import get_engine
from app.models import User
from app.schemas import UserOut, UserUpdate
from app.services.engine import RecommendationEngine

log = logging.getLogger("vitalis.users")

router = APIRouter()

# fields that feed the derived profile; changing any of them drops cached results
IMPACT_FIELDS = {
    "dob", "sex", "height_value", "height_unit", "weight_value", "weight_unit",
    "activity_level", "fitness_goals", "health_conditions", "allergies", "dietary_restrictions",
}


def _impact_changed(user: User, payload: dict[str, Any]) -> bool:
    for k in IMPACT_FIELDS:
        if k in payload and getattr(user, k) != payload[k]:
            return True
    return False


@router.get("/me", response_model=UserOut, summary="Get current user")
def get_me(current: User = Depends(get_current_user)) -> UserOut:
    return current  # Pydantic v2 serializes from ORM object via from_attributes=True


@router.put("/me", response_model=UserOut, summary="Update current user profile")
def update_me(
    patch: UserUpdate,
    current: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    engine: RecommendationEngine = Depends(get_engine),
) -> UserOut:
    payload = patch.model_dump(exclude_none=True)
    if not payload:
        return current

    will_invalidate = _impact_changed(current, payload)
    for k, v in payload.items():
        setattr(current, k, v)

    db.add(current)
    db.commit()
    db.refresh(current)

    if will_invalidate:
        engine.invalidate_user_cache(current.id)
        log.info("profile fields changed user=%s, recommendations invalidated", current.id)
    return current
