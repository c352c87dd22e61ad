# app/deps.py
"""
Shared service dependencies. One engine per process so both caches are shared
between requests; tests swap these out through `app.dependency_overrides`.
"""
from __future__ import annotations

import threading
from typing import Optional

from app.db import SessionLocal
from app.services.engine import RecommendationEngine
from app.services.repository import SqlPreferenceStore, SqlUserRepository

_lock = threading.Lock()
_engine: Optional[RecommendationEngine] = None


def get_engine() -> RecommendationEngine:
    global _engine
    if _engine is None:
        with _lock:
            if _engine is None:
                _engine = RecommendationEngine(SqlUserRepository(SessionLocal))
    return _engine


def get_preference_store() -> SqlPreferenceStore:
    return SqlPreferenceStore(SessionLocal)


def shutdown_engine() -> None:
    global _engine
    with _lock:
        if _engine is not None:
            _engine.close()
            _engine = None
