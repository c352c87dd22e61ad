"""
Seed script for Vitalis (creates tables, a demo user and three weeks of biometrics).
Run with:  python -m scripts.dev_seed
"""

from __future__ import annotations

import random
import sys
from datetime import date, datetime, timedelta

from sqlalchemy.exc import IntegrityError

from app.db import Base, SessionLocal, engine
from app.models import BiometricSample, RecommendationPreference, User
from app.security import hash_password

DEMO_EMAIL = "demo@vitalis.app"
DEMO_PASSWORD = "Demo1234!"  # keep <=72 bytes; bcrypt has a 72-byte limit
SEED_DAYS = 21


def _samples(user_id: int, days: int, rng: random.Random) -> list[BiometricSample]:
    now = datetime.utcnow().replace(hour=7, minute=0, second=0, microsecond=0)
    out = []
    for i in range(days):
        ts = now - timedelta(days=days - 1 - i)
        # slow weight gain, dropping steps: gives the trend analyzer something to find
        weight = 84.0 + 0.08 * i + rng.uniform(-0.2, 0.2)
        steps = int(9000 - 120 * i + rng.uniform(-600, 600))
        out.append(BiometricSample(
            user_id=user_id,
            source="manual",
            timestamp=ts,
            vitals={"heart_rate": {"value": rng.randint(58, 68), "unit": "bpm"}},
            body_composition={"weight": {"value": round(weight, 1), "unit": "kg"}},
            activity={
                "steps": steps,
                "active_minutes": {"moderate": rng.randint(5, 35), "vigorous": rng.randint(0, 15)},
            },
            sleep={"duration": rng.randint(330, 450), "efficiency": rng.randint(75, 93)},
            stress={"score": rng.randint(30, 80), "hrv": {"value": rng.randint(28, 48), "unit": "ms"}},
        ))
    return out


def main() -> int:
    # 1) ensure tables exist
    Base.metadata.create_all(bind=engine)

    # 2) insert demo user if not exists
    db = SessionLocal()
    try:
        user = db.query(User).filter(User.email == DEMO_EMAIL).first()
        if user:
            print(f"User already exists: {DEMO_EMAIL} (id={user.id})")
            return 0

        user = User(
            email=DEMO_EMAIL,
            password_hash=hash_password(DEMO_PASSWORD),
            first_name="Demo",
            dob=date(1988, 4, 12),
            sex="male",
            height_value=5.9,
            height_unit="ft",
            weight_value=185.0,
            weight_unit="lbs",
            activity_level="lightly-active",
            fitness_goals=["weight-loss", "general-health"],
            health_conditions=[{"condition": "hypertension", "severity": "mild"}],
            allergies=["peanuts"],
            dietary_restrictions=[],
            units={"weight": "lbs", "height": "ft"},
        )
        db.add(user)
        db.flush()

        db.add(RecommendationPreference(
            user_id=user.id,
            workouts={"types": ["cardio", "strength"]},
            nutrition={}, mindfulness={}, goals={},
            general={"minutes_per_day": 40},
            excluded_items=[], liked_items=[],
        ))
        db.add_all(_samples(user.id, SEED_DAYS, random.Random(42)))
        db.commit()
        db.refresh(user)
        print(f"Created user: {DEMO_EMAIL} (id={user.id}) with {SEED_DAYS} days of samples")
        print("   You can login with:")
        print(f"   email:    {DEMO_EMAIL}")
        print(f"   password: {DEMO_PASSWORD}")
        return 0
    except IntegrityError:
        db.rollback()
        print(f"User already exists: {DEMO_EMAIL}")
        return 0
    finally:
        db.close()


if __name__ == "__main__":
    sys.exit(main())
