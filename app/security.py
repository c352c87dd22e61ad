# app/security.py
from __future__ import annotations

from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app.models import User

# Order matters: first scheme is the default for new hashes.
pwd_context = CryptContext(
    schemes=["bcrypt", "bcrypt_sha256", "pbkdf2_sha256"],
    deprecated="auto",
)


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_and_maybe_upgrade(user: User, plain: str, db: Session) -> bool:
    """
    Verify password against user's stored hash (supporting legacy formats).
    If the hash is valid but outdated, upgrade it to the current default.
    """
    if not user.password_hash:
        return False
    try:
        verified = pwd_context.verify(plain, user.password_hash)
    except ValueError:
        # Unknown/invalid hash format
        return False

    if verified and pwd_context.needs_update(user.password_hash):
        user.password_hash = hash_password(plain)
        db.add(user)
        db.commit()
    return verified
