# app/routers/auth.py
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth_utils import create_access_token
from app.config import settings
from app.db import get_db
from app.models import User
from app.schemas import LoginRequest, SignupRequest, TokenResponse
from app.security import hash_password, verify_and_maybe_upgrade

log = logging.getLogger("vitalis.auth")

router = APIRouter()


def _token_for(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.id),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/signup", response_model=TokenResponse, summary="Create an account with its health profile")
def signup(body: SignupRequest, db: Session = Depends(get_db)):
    email = body.email.lower()
    if db.query(User.id).filter(User.email == email).first():
        raise HTTPException(status_code=400, detail="email_in_use")

    profile_fields = body.model_dump(exclude={"email", "password"}, exclude_none=True)
    user = User(email=email, password_hash=hash_password(body.password), **profile_fields)
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="email_in_use")
    db.refresh(user)
    log.info("signup user=%s goals=%s", user.id, user.fitness_goals)
    return _token_for(user)


@router.post("/login", response_model=TokenResponse, summary="Exchange credentials for a bearer token")
def login(body: LoginRequest, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == body.email.lower()).first()
    if user is None or not verify_and_maybe_upgrade(user, body.password, db):
        log.info("failed login email=%s", body.email.lower())
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_credentials")
    return _token_for(user)
