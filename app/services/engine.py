# app/services/engine.py
"""
Recommendation engine: the surface the HTTP layer talks to.

    generate_recommendations(user_id, category, options) -> RecommendationBundle
    invalidate_user_cache(user_id)

Flow: profile (cached or fresh) -> every source for every requested category
on thread pools (in-process sources and generative calls on separate pools)
-> blend per category -> bundle stored per user.

Only UserNotFound escapes. A failing or slow source is logged and listed in
`unavailable_sources`; every source is awaited only until a deadline of
generative_timeout counted from the moment the fan-out starts. No lock is
held while sources run. A bundle or profile computed across an
invalidate_user_cache call is returned but not cached.
"""

from __future__ import annotations

import logging
import time
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from dataclasses import asdict, dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from app.config import settings
from app.errors import NotFound, SourceUnavailable
from app.services.blender import blend
from app.services.cache import TTLCache
from app.services.generative import GenerativeSource
from app.services.llm_client import OpenAITextClient
from app.services.metrics import nutrition_targets
from app.services.profile import ProfileBuilder, UserProfile, freeze, thaw
from app.services.repository import UserRepository
from app.services.sources import (
    CATEGORIES,
    Candidate,
    RecommendationOptions,
    RecommendationSource,
    RuleSource,
    SimilaritySource,
    goal_adjustments,
    mindfulness_focus_areas,
    workout_adaptations,
)

log = logging.getLogger("vitalis.engine")

REQUEST_CATEGORIES = ("all",) + CATEGORIES


# ---- Data models ----

@dataclass(frozen=True)
class CategoryResult:
    category: str
    items: tuple[Candidate, ...]
    reasoning: str
    fallback_used: bool = False
    unavailable_sources: tuple[str, ...] = ()
    extras: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def to_dict(self) -> dict:
        return {
            "items": [c.to_dict() for c in self.items],
            "reasoning": self.reasoning,
            "fallback_used": self.fallback_used,
            "unavailable_sources": list(self.unavailable_sources),
            **thaw(self.extras),
        }


@dataclass(frozen=True)
class RecommendationBundle:
    user_id: int
    categories: Mapping[str, CategoryResult]
    generated_at: datetime
    cached: bool = False
    options_key: tuple = ()
    profile: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    def covers(self, categories: Sequence[str]) -> bool:
        return all(c in self.categories for c in categories)

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "generated_at": self.generated_at.isoformat(),
            "cached": self.cached,
            "profile": thaw(self.profile),
            "recommendations": {k: v.to_dict() for k, v in self.categories.items()},
        }


# ---- Cache ----

class RecommendationCache:
    """Last bundle per user, fresh for `ttl_seconds` after its generated_at."""

    def __init__(self, ttl_seconds: float = 3600, now: Callable[[], datetime] = datetime.utcnow) -> None:
        self._store: TTLCache[RecommendationBundle] = TTLCache(ttl_seconds, clock=lambda: now().timestamp())

    def get(self, user_id: int) -> Optional[RecommendationBundle]:
        return self._store.get(user_id)

    def generation(self, user_id: int) -> int:
        return self._store.generation(user_id)

    def put(self, user_id: int, bundle: RecommendationBundle, generation: Optional[int] = None) -> bool:
        return self._store.put(user_id, bundle, stored_at=bundle.generated_at.timestamp(), generation=generation)

    def invalidate(self, user_id: int) -> bool:
        return self._store.invalidate(user_id)


# ---- Engine ----

class RecommendationEngine:
    def __init__(
        self,
        repository: UserRepository,
        text_client=None,
        *,
        sources: Optional[List[RecommendationSource]] = None,
        generative_timeout: Optional[float] = None,
        workers: Optional[int] = None,
        generative_workers: Optional[int] = None,
        now: Callable[[], datetime] = datetime.utcnow,
    ) -> None:
        self.now = now
        self.profiles = ProfileBuilder(
            repository,
            ttl_seconds=settings.PROFILE_CACHE_TTL_SECONDS,
            window_days=settings.BIOMETRIC_WINDOW_DAYS,
            recent_days=settings.RECENT_ACTIVITY_DAYS,
            now=now,
        )
        self.cache = RecommendationCache(settings.RECOMMENDATION_CACHE_TTL_SECONDS, now=now)
        if sources is None:
            sources = [SimilaritySource(), RuleSource(), GenerativeSource(text_client or OpenAITextClient())]
        self.sources = sources
        self.generative_timeout = (
            generative_timeout if generative_timeout is not None else settings.GENERATIVE_TIMEOUT_SECONDS
        )
        self.executor = ThreadPoolExecutor(
            max_workers=workers or settings.SOURCE_WORKERS, thread_name_prefix="vitalis-source"
        )
        self.remote_executor = ThreadPoolExecutor(
            max_workers=generative_workers or settings.GENERATIVE_WORKERS, thread_name_prefix="vitalis-generative"
        )

    def close(self) -> None:
        self.executor.shutdown(wait=False, cancel_futures=True)
        self.remote_executor.shutdown(wait=False, cancel_futures=True)

    def invalidate_user_cache(self, user_id: int) -> None:
        dropped_bundle = self.cache.invalidate(user_id)
        dropped_profile = self.profiles.invalidate(user_id)
        log.info("cache invalidated user=%s bundle=%s profile=%s", user_id, dropped_bundle, dropped_profile)

    def generate_recommendations(
        self,
        user_id: int,
        category: str = "all",
        options: Optional[RecommendationOptions] = None,
        *,
        force_refresh: bool = False,
    ) -> RecommendationBundle:
        if category not in REQUEST_CATEGORIES:
            raise ValueError(f"unknown category {category!r}")
        options = options or RecommendationOptions()
        wanted = CATEGORIES if category == "all" else (category,)
        key = options.signature()
        generation = self.cache.generation(user_id)

        if not force_refresh:
            hit = self.cache.get(user_id)
            if hit is not None and hit.options_key == key and hit.covers(wanted):
                log.debug("recommendation cache hit user=%s category=%s", user_id, category)
                return replace(
                    hit,
                    cached=True,
                    categories=MappingProxyType({c: hit.categories[c] for c in wanted}),
                )

        profile = self.profiles.build(user_id, force_refresh=force_refresh)
        gathered = self._fan_out(profile, wanted, options)

        results: Dict[str, CategoryResult] = {}
        for cat in wanted:
            by_source, unavailable = gathered[cat]
            blended = blend(cat, by_source, profile, options.count, unavailable=unavailable)
            results[cat] = CategoryResult(
                category=cat,
                items=blended.items,
                reasoning=blended.reasoning,
                fallback_used=blended.fallback_used,
                unavailable_sources=tuple(unavailable),
                extras=freeze(self._extras(cat, profile, options)),
            )

        bundle = RecommendationBundle(
            user_id=user_id,
            categories=MappingProxyType(results),
            generated_at=self.now(),
            cached=False,
            options_key=key,
            profile=freeze({
                **profile.summary(),
                "built_at": profile.built_at.isoformat(),
                "degraded": list(profile.degraded),
                "estimated": list(profile.estimated),
            }),
        )
        if not self.cache.put(user_id, bundle, generation=generation):
            log.info("cache invalidated during generation user=%s, bundle not stored", user_id)
        return bundle

    # ------------------------------------------------------------------
    def _fan_out(self, profile: UserProfile, categories: Sequence[str], options: RecommendationOptions):
        deadline = time.monotonic() + self.generative_timeout
        futures: Dict[tuple[str, str], Future] = {}
        for cat in categories:
            for src in self.sources:
                pool = self.remote_executor if src.remote else self.executor
                futures[(cat, src.name)] = pool.submit(src.generate, cat, profile, options)

        gathered: Dict[str, tuple[Dict[str, List[Candidate]], List[str]]] = {}
        for cat in categories:
            by_source: Dict[str, List[Candidate]] = {}
            unavailable: List[str] = []
            for src in self.sources:
                fut = futures[(cat, src.name)]
                try:
                    by_source[src.name] = list(fut.result(timeout=max(0.0, deadline - time.monotonic())))
                except FutureTimeout:
                    # drops it if still queued; a running call finishes in the background
                    fut.cancel()
                    log.warning("source timed out user=%s category=%s source=%s after=%.1fs",
                                profile.user_id, cat, src.name, self.generative_timeout)
                    unavailable.append(src.name)
                except SourceUnavailable as e:
                    log.warning("source unavailable user=%s category=%s source=%s reason=%s",
                                profile.user_id, cat, src.name, e.reason)
                    unavailable.append(src.name)
                except NotFound:
                    raise
                except Exception:
                    log.warning("source failed user=%s category=%s source=%s",
                                profile.user_id, cat, src.name, exc_info=True)
                    unavailable.append(src.name)
            gathered[cat] = (by_source, unavailable)
        return gathered

    def _extras(self, category: str, profile: UserProfile, options: RecommendationOptions) -> dict:
        if category == "workout":
            return {"adaptations": workout_adaptations(profile)}
        if category == "nutrition":
            targets = nutrition_targets(profile.tdee, profile.goals, profile.recent_activity.average_steps)
            return {"targets": asdict(targets)}
        if category == "mindfulness":
            return {
                "stress_level": profile.stress_level,
                "sleep_quality": profile.sleep_quality,
                "focus_areas": mindfulness_focus_areas(profile, options),
            }
        if category == "goals":
            return {"adjustments": goal_adjustments(profile)}
        return {}
