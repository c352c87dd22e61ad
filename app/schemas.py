# app/schemas.py
from __future__ import annotations

from datetime import date, datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

ActivityLevel = Literal["sedentary", "lightly-active", "moderately-active", "very-active", "extremely-active"]
Category = Literal["workout", "nutrition", "mindfulness", "goals"]


def _parse_dob(v: Any) -> Any:
    # Accept ISO date strings too (e.g., "1975-01-01")
    if v in (None, "", "null"):
        return None
    if isinstance(v, str):
        try:
            return date.fromisoformat(v)
        except ValueError:
            raise ValueError("dob must be YYYY-MM-DD")
    return v


class HealthCondition(BaseModel):
    condition: str = Field(min_length=1)
    severity: Literal["mild", "moderate", "severe"] | None = None
    medications: list[str] = []


# ---------- Users ----------

class UserProfileFields(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    sex: Literal["male", "female", "other", "prefer-not-to-say"] | None = None
    height_value: float | None = Field(default=None, gt=0)
    height_unit: Literal["cm", "ft", "in", "m"] | None = None
    weight_value: float | None = Field(default=None, gt=0)
    weight_unit: Literal["kg", "lbs"] | None = None
    activity_level: ActivityLevel | None = None
    fitness_goals: list[str] | None = None
    health_conditions: list[HealthCondition] | None = None
    allergies: list[str] | None = None
    dietary_restrictions: list[str] | None = None
    units: dict[str, str] | None = None


class SignupRequest(UserProfileFields):
    email: EmailStr
    password: str = Field(min_length=8)
    dob: date

    @field_validator("dob", mode="before")
    @classmethod
    def _normalize_dob(cls, v: Any) -> Any:
        return _parse_dob(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int


class UserUpdate(UserProfileFields):
    # all optional; only provided fields are updated
    dob: date | None = None

    @field_validator("dob", mode="before")
    @classmethod
    def _normalize_dob(cls, v: Any) -> Any:
        return _parse_dob(v)


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    first_name: str | None = None
    last_name: str | None = None
    dob: date
    sex: str | None = None
    height_value: float | None = None
    height_unit: str
    weight_value: float | None = None
    weight_unit: str
    activity_level: str
    fitness_goals: list[str] = []
    health_conditions: list[dict[str, Any]] = []
    allergies: list[str] = []
    dietary_restrictions: list[str] = []
    units: dict[str, str] = {}


# ---------- Biometrics ----------

class BiometricIn(BaseModel):
    timestamp: datetime
    source: Literal["manual", "apple-health", "google-fit", "fitbit", "garmin", "other"] = "manual"
    vitals: dict[str, Any] | None = None
    body_composition: dict[str, Any] | None = None
    activity: dict[str, Any] | None = None
    sleep: dict[str, Any] | None = None
    stress: dict[str, Any] | None = None
    nutrition: dict[str, Any] | None = None
    mental_health: dict[str, Any] | None = None
    notes: str | None = None


class BiometricOut(BiometricIn):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    source: str
    created_at: datetime


# ---------- Recommendations ----------

class PreferencesUpdate(BaseModel):
    workouts: dict[str, Any] | None = None
    nutrition: dict[str, Any] | None = None
    mindfulness: dict[str, Any] | None = None
    goals: dict[str, Any] | None = None
    general: dict[str, Any] | None = None


class FeedbackIn(BaseModel):
    recommendation_id: str = Field(min_length=1, max_length=128)
    category: Category
    rating: int = Field(ge=1, le=5)
    comment: str | None = Field(default=None, max_length=1000)
    completed: bool = False
