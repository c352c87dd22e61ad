# app/models.py
"""
SQLAlchemy models: User, BiometricSample, RecommendationPreference, RecommendationFeedback.
Compatible with SQLAlchemy 2.x Annotated Declarative (Mapped[] + mapped_column()).

Biometric sub-groups (vitals, body composition, activity, sleep, stress,
nutrition, mental health) are stored as JSON documents; each group is optional.
"""

from __future__ import annotations

from datetime import datetime, date
from typing import Any, Optional, List

from sqlalchemy import (
    Integer, String, Float, Date, DateTime, ForeignKey, JSON,
    Index, Text, Boolean
)
from sqlalchemy.orm import relationship, Mapped, mapped_column

from app.db import Base


class User(Base):
    __tablename__ = "users"
    __allow_unmapped__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False, index=True)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)

    first_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    dob: Mapped[date] = mapped_column(Date, nullable=False)
    sex: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)  # male|female|other|prefer-not-to-say

    height_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    height_unit: Mapped[str] = mapped_column(String(8), nullable=False, default="cm")  # cm|ft
    weight_value: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    weight_unit: Mapped[str] = mapped_column(String(8), nullable=False, default="kg")  # kg|lbs

    activity_level: Mapped[str] = mapped_column(String(32), nullable=False, default="moderately-active")
    fitness_goals: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    health_conditions: Mapped[List[dict[str, Any]]] = mapped_column(JSON, nullable=False, default=list)
    allergies: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    dietary_restrictions: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    units: Mapped[dict[str, str]] = mapped_column(JSON, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    samples: Mapped[List["BiometricSample"]] = relationship(
        "BiometricSample", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    recommendation_preference: Mapped[Optional["RecommendationPreference"]] = relationship(
        "RecommendationPreference", back_populates="user", cascade="all, delete-orphan",
        passive_deletes=True, uselist=False
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} email={self.email!r}>"


class BiometricSample(Base):
    __tablename__ = "biometric_samples"
    __allow_unmapped__ = True
    __table_args__ = (
        Index("ix_biometric_user_time", "user_id", "timestamp"),
        Index("ix_biometric_user_source_time", "user_id", "source", "timestamp"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, index=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False, default="manual")
    timestamp: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    vitals: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    body_composition: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    activity: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    sleep: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    stress: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    nutrition: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    mental_health: Mapped[Optional[dict[str, Any]]] = mapped_column(JSON, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)

    user: Mapped[User] = relationship("User", back_populates="samples")

    def __repr__(self) -> str:
        return f"<BiometricSample id={self.id} user_id={self.user_id} ts={self.timestamp!s}>"


class RecommendationPreference(Base):
    __tablename__ = "recommendation_preferences"
    __allow_unmapped__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True
    )

    workouts: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    nutrition: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    mindfulness: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    goals: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    general: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    excluded_items: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    liked_items: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    user: Mapped[User] = relationship("User", back_populates="recommendation_preference")


class RecommendationFeedback(Base):
    __tablename__ = "recommendation_feedback"
    __allow_unmapped__ = True
    __table_args__ = (
        Index("ix_feedback_user_time", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    recommendation_id: Mapped[str] = mapped_column(String(128), nullable=False)
    category: Mapped[str] = mapped_column(String(20), nullable=False)  # workout|nutrition|mindfulness|goals
    rating: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    completed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow, nullable=False)
