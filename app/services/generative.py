# app/services/generative.py
"""
Generative recommendation source.

Builds a bounded prompt from UserProfile.summary(), asks the text service for
a JSON object, and validates it against a per-category schema. The response
is all-or-nothing: invalid JSON or any schema violation (a missing field in a
single item included) raises GenerativeResponseInvalid and the source
contributes nothing.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import asdict
from types import MappingProxyType
from typing import Any, Dict, List, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from app.config import settings
from app.errors import GenerativeResponseInvalid, GenerativeUnavailable
from app.services.metrics import nutrition_targets
from app.services.profile import UserProfile
from app.services.sources import Candidate, RecommendationOptions, RecommendationSource

log = logging.getLogger("vitalis.generative")

# generated plans further than this from the computed target get the target instead
CALORIE_TOLERANCE_KCAL = 300


# ---- Response schemas ----

class _Item(BaseModel):
    model_config = ConfigDict(extra="ignore")

    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class WorkoutItem(_Item):
    name: str = Field(min_length=1)
    type: str
    difficulty: str
    duration_min: int = Field(gt=0, le=240)
    equipment: List[str] = []
    exercises: List[str] = []

    @field_validator("difficulty")
    @classmethod
    def _difficulty(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("beginner", "intermediate", "advanced"):
            raise ValueError("difficulty must be beginner|intermediate|advanced")
        return v


class MealItem(_Item):
    name: str = Field(min_length=1)
    meal: str
    calories: int = Field(gt=0)
    protein_g: float = Field(ge=0)
    carbs_g: float = Field(ge=0)
    fat_g: float = Field(ge=0)
    ingredients: List[str] = []


class MindfulnessItem(_Item):
    name: str = Field(min_length=1)
    kind: str
    duration_min: int = Field(gt=0, le=120)
    focus: List[str] = []
    description: str = ""


class GoalItem(_Item):
    goal: str
    target: str = Field(min_length=1)
    timeline_weeks: int = Field(gt=0, le=104)
    rationale: str = ""


class WorkoutResponse(BaseModel):
    recommendations: List[WorkoutItem]


class NutritionResponse(BaseModel):
    daily_calories: Optional[int] = Field(default=None, gt=0)
    recommendations: List[MealItem]


class MindfulnessResponse(BaseModel):
    recommendations: List[MindfulnessItem]


class GoalsResponse(BaseModel):
    recommendations: List[GoalItem]


RESPONSE_SCHEMAS: Dict[str, Type[BaseModel]] = {
    "workout": WorkoutResponse,
    "nutrition": NutritionResponse,
    "mindfulness": MindfulnessResponse,
    "goals": GoalsResponse,
}

OUTPUT_SHAPES: Dict[str, Dict[str, Any]] = {
    "workout": {"recommendations": [{
        "name": "string", "type": "cardio|strength|hiit|yoga|stretching|resistance",
        "difficulty": "beginner|intermediate|advanced", "duration_min": "integer",
        "equipment": ["string"], "exercises": ["string"], "confidence": "number 0-1"}]},
    "nutrition": {"daily_calories": "integer", "recommendations": [{
        "name": "string", "meal": "breakfast|lunch|dinner|snack", "calories": "integer",
        "protein_g": "number", "carbs_g": "number", "fat_g": "number",
        "ingredients": ["string"], "confidence": "number 0-1"}]},
    "mindfulness": {"recommendations": [{
        "name": "string", "kind": "breathing|meditation|journaling|movement|sleep-hygiene",
        "duration_min": "integer", "focus": ["stress|sleep|anxiety|mood|general"],
        "description": "string", "confidence": "number 0-1"}]},
    "goals": {"recommendations": [{
        "goal": "string", "target": "string", "timeline_weeks": "integer",
        "rationale": "string", "confidence": "number 0-1"}]},
}

SYSTEM_PROMPTS = {
    "workout": "You are a certified personal trainer. Suggest safe workouts that respect every listed health condition.",
    "nutrition": "You are a registered dietitian. Suggest meals that respect every dietary restriction and allergy.",
    "mindfulness": "You are a mindfulness coach. Suggest short, practical practices suited to the person's stress and sleep.",
    "goals": "You are a health coach. Suggest realistic, measurable goal adjustments based on the person's trends.",
}


def _slug(text: str) -> str:
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")[:48] or "item"


class GenerativeSource(RecommendationSource):
    name = "generative"
    remote = True

    def __init__(self, client, *, temperature: Optional[float] = None, max_tokens: Optional[int] = None,
                 max_items: int = 5) -> None:
        self.client = client
        self.temperature = temperature if temperature is not None else settings.GENERATIVE_TEMPERATURE
        self.max_tokens = max_tokens if max_tokens is not None else settings.GENERATIVE_MAX_TOKENS
        self.max_items = max_items

    def build_prompt(self, category: str, profile: UserProfile, options: RecommendationOptions) -> str:
        user = {
            "task": f"recommend_{category}",
            "profile": profile.summary(),
            "options": {k: v for k, v in asdict(options).items() if v is not None},
            "output_schema": OUTPUT_SHAPES[category],
            "constraints": [
                f"Return at most {self.max_items} recommendations.",
                "Respond with a single JSON object and nothing else.",
                "Never suggest anything that conflicts with a listed condition, allergy or restriction.",
            ],
        }
        return json.dumps(user, ensure_ascii=False, default=str)

    def parse(self, category: str, raw: str) -> BaseModel:
        schema = RESPONSE_SCHEMAS[category]
        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            raise GenerativeResponseInvalid(f"not json: {e}") from e
        try:
            return schema.model_validate(data)
        except ValidationError as e:
            raise GenerativeResponseInvalid(f"schema violation: {e.error_count()} error(s)") from e

    def generate(self, category: str, profile: UserProfile, options: RecommendationOptions) -> List[Candidate]:
        if category not in RESPONSE_SCHEMAS:
            return []
        if not self.client.enabled():
            raise GenerativeUnavailable("disabled or unconfigured")

        raw = self.client.complete(
            SYSTEM_PROMPTS[category],
            self.build_prompt(category, profile, options),
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        parsed = self.parse(category, raw)

        extra: Dict[str, Any] = {}
        if isinstance(parsed, NutritionResponse) and parsed.daily_calories is not None:
            target = nutrition_targets(profile.tdee, profile.goals, profile.recent_activity.average_steps)
            adjusted = abs(parsed.daily_calories - target.daily_calories) > CALORIE_TOLERANCE_KCAL
            if adjusted:
                log.info("generative plan calories corrected user=%s %s -> %s",
                         profile.user_id, parsed.daily_calories, target.daily_calories)
            extra = {
                "daily_calories": target.daily_calories if adjusted else parsed.daily_calories,
                "calories_adjusted": adjusted,
            }

        out: List[Candidate] = []
        seen = set()
        excluded = set(profile.preferences.get("excluded_items", ()))
        for item in parsed.recommendations[: self.max_items]:
            data = item.model_dump()
            title = data.get("name") or data.get("target")
            cid = f"gen-{category}-{_slug(title)}"
            if cid in seen or cid in excluded:
                continue
            seen.add(cid)
            confidence = data.pop("confidence")
            out.append(Candidate(
                id=cid,
                category=category,
                source=self.name,
                weight=self.weight,
                title=title,
                payload=MappingProxyType({**data, **extra}),
                intrinsic_score=confidence,
                reason="generated for your profile",
            ))
        return out
