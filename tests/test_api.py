from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base, get_db, make_engine
from app.deps import get_engine, get_preference_store
from app.main import app
from app.services.engine import RecommendationEngine
from app.services.repository import SqlPreferenceStore, SqlUserRepository
from fakes import FakeTextClient


@pytest.fixture
def client():
    db_engine = make_engine("sqlite://", poolclass=StaticPool)
    TestSession = sessionmaker(bind=db_engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=db_engine)
    rec_engine = RecommendationEngine(SqlUserRepository(TestSession), FakeTextClient(enabled=False))

    def _get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[get_engine] = lambda: rec_engine
    app.dependency_overrides[get_preference_store] = lambda: SqlPreferenceStore(TestSession)
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
    rec_engine.close()


def signup(client, email="demo@vitalis.app", **fields):
    body = {"email": email, "password": "correct-horse-1", "dob": "1990-01-01", **fields}
    resp = client.post("/auth/signup", json=body)
    assert resp.status_code == 200, resp.text
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_signup_login_and_me(client):
    signup(client, fitness_goals=["weight-loss"], height_value=5.8, height_unit="ft")
    resp = client.post("/auth/login", json={"email": "Demo@Vitalis.app", "password": "correct-horse-1"})
    assert resp.status_code == 200
    headers = {"Authorization": f"Bearer {resp.json()['access_token']}"}

    me = client.get("/users/me", headers=headers).json()
    assert me["email"] == "demo@vitalis.app"
    assert me["activity_level"] == "moderately-active"
    assert me["height_unit"] == "ft"
    assert me["fitness_goals"] == ["weight-loss"]


def test_signup_validation(client):
    resp = client.post("/auth/signup", json={"email": "x@vitalis.app", "password": "correct-horse-1"})
    assert resp.status_code == 422
    signup(client, email="x@vitalis.app")
    resp = client.post("/auth/signup", json={"email": "x@vitalis.app", "password": "correct-horse-1",
                                             "dob": "1990-01-01"})
    assert resp.status_code == 400
    assert resp.json()["detail"] == "email_in_use"


def test_bad_credentials_and_missing_token(client):
    signup(client)
    resp = client.post("/auth/login", json={"email": "demo@vitalis.app", "password": "wrong-password"})
    assert resp.status_code == 401
    assert client.get("/v1/recommendations").status_code == 401
    bogus = client.get("/users/me", headers={"Authorization": "Bearer not-a-jwt"})
    assert bogus.status_code == 401
    assert bogus.json()["detail"] == "invalid_token"


def test_biometrics_ingest_and_list(client):
    headers = signup(client)
    now = datetime.utcnow()
    for i in range(3):
        body = {
            "timestamp": (now - timedelta(days=i)).isoformat(),
            "activity": {"steps": 5000 + i},
            "sleep": {"duration": 420},
        }
        resp = client.post("/biometrics", json=body, headers=headers)
        assert resp.status_code == 201, resp.text

    page = client.get("/biometrics", headers=headers).json()
    assert page["total"] == 3
    assert [s["activity"]["steps"] for s in page["items"]] == [5000, 5001, 5002]


def test_nutrition_fallback_and_cache(client):
    headers = signup(client, activity_level="sedentary", fitness_goals=["weight-loss"])
    first = client.get("/v1/recommendations", params={"type": "nutrition"}, headers=headers)
    assert first.status_code == 200
    data = first.json()
    nutrition = data["recommendations"]["nutrition"]
    assert data["cached"] is False
    assert nutrition["fallback_used"] is True
    assert nutrition["items"][0]["id"] == "nutrition-targets"
    assert nutrition["items"][0]["details"]["daily_calories"] == nutrition["targets"]["daily_calories"]
    assert nutrition["targets"]["goal_adjustment_kcal"] == -500
    assert data["profile"]["fitness_level"] == "beginner"

    again = client.get("/v1/recommendations", params={"type": "nutrition"}, headers=headers).json()
    assert again["cached"] is True
    assert again["generated_at"] == data["generated_at"]

    resp = client.post("/v1/recommendations/preferences", json={"general": {"minutes_per_day": 20}},
                       headers=headers)
    assert resp.json()["preferences"]["general"] == {"minutes_per_day": 20}
    after = client.get("/v1/recommendations", params={"type": "nutrition"}, headers=headers).json()
    assert after["cached"] is False


def test_feedback_excludes_item(client):
    headers = signup(client)
    items = client.get("/v1/recommendations/workouts", headers=headers).json()["recommendations"]["workout"]["items"]
    disliked = items[0]["id"]

    resp = client.post("/v1/recommendations/feedback", headers=headers,
                       json={"recommendation_id": disliked, "category": "workout", "rating": 1})
    assert resp.json() == {"ok": True, "excluded": True, "liked": False}

    data = client.get("/v1/recommendations/workouts", headers=headers).json()
    assert data["cached"] is False
    assert disliked not in [i["id"] for i in data["recommendations"]["workout"]["items"]]
    assert disliked in client.get("/v1/recommendations/preferences", headers=headers).json()["excluded_items"]


def test_profile_update_invalidates(client):
    headers = signup(client)
    assert client.get("/v1/recommendations/goals", headers=headers).json()["cached"] is False
    assert client.get("/v1/recommendations/goals", headers=headers).json()["cached"] is True

    # unchanged value keeps the cache
    client.put("/users/me", json={"activity_level": "moderately-active"}, headers=headers)
    assert client.get("/v1/recommendations/goals", headers=headers).json()["cached"] is True

    resp = client.put("/users/me", json={"activity_level": "very-active"}, headers=headers)
    assert resp.json()["activity_level"] == "very-active"
    assert client.get("/v1/recommendations/goals", headers=headers).json()["cached"] is False


def test_category_options(client):
    headers = signup(client)
    data = client.get("/v1/recommendations/mindfulness", params={"focus_area": "sleep", "count": 3},
                      headers=headers).json()
    mind = data["recommendations"]["mindfulness"]
    assert 1 <= len(mind["items"]) <= 3
    assert all("sleep" in i["details"]["focus"] for i in mind["items"])
    assert mind["focus_areas"][0] == "sleep"

    workouts = client.get("/v1/recommendations/workouts", params={"equipment": "", "max_duration_min": 20},
                          headers=headers).json()["recommendations"]["workout"]["items"]
    assert all(i["details"]["equipment"] == [] and i["details"]["duration_min"] <= 20 for i in workouts)

    assert client.get("/v1/recommendations", params={"type": "sleep"}, headers=headers).status_code == 422
