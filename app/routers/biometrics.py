# app/routers/biometrics.py
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from app.auth_utils import get_current_user
from app.db import get_db
from app.models import BiometricSample, User
from app.schemas import BiometricIn, BiometricOut

router = APIRouter()


def _parse_date_opt(s: str | None) -> datetime | None:
    if not s:
        return None
    # Accept YYYY-MM-DD or full ISO8601
    try:
        if len(s) == 10:
            return datetime.strptime(s, "%Y-%m-%d")
        return datetime.fromisoformat(s.replace("Z", "+00:00")).replace(tzinfo=None)
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid_date")


@router.post("", response_model=BiometricOut, status_code=201, summary="Record a biometric sample")
def create_sample(
    body: BiometricIn,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> BiometricOut:
    data = body.model_dump()
    ts = data.pop("timestamp")
    if ts.tzinfo is not None:
        # stored as naive UTC like every other timestamp column
        ts = ts.astimezone(timezone.utc).replace(tzinfo=None)
    sample = BiometricSample(user_id=current_user.id, timestamp=ts, **data)
    db.add(sample)
    db.commit()
    db.refresh(sample)
    return sample


@router.get("", summary="List biometric samples (paginated)")
def list_samples(
    page: int = Query(1, ge=1),
    page_size: int = Query(50, ge=1, le=500),
    from_: str | None = Query(None, alias="from", description="Start date (YYYY-MM-DD)"),
    to: str | None = Query(None, description="End date (YYYY-MM-DD)"),
    source: str | None = Query(None, description="Filter by source"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
) -> dict[str, Any]:
    q = db.query(BiometricSample).filter(BiometricSample.user_id == current_user.id)

    start_dt = _parse_date_opt(from_)
    end_dt = _parse_date_opt(to)
    if start_dt:
        q = q.filter(BiometricSample.timestamp >= start_dt)
    if end_dt:
        # make 'to' inclusive by adding 1 day if only date given
        if len(to or "") == 10:
            end_dt = end_dt + timedelta(days=1)
        q = q.filter(BiometricSample.timestamp < end_dt)
    if source:
        q = q.filter(BiometricSample.source == source)

    total = q.count()
    rows = (
        q.order_by(BiometricSample.timestamp.desc(), BiometricSample.id.desc())
        .offset((page - 1) * page_size)
        .limit(page_size)
        .all()
    )
    return {
        "page": page,
        "page_size": page_size,
        "total": total,
        "items": [BiometricOut.model_validate(r).model_dump(mode="json") for r in rows],
    }
