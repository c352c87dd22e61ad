# app/services/blender.py
"""
Recommendation blender.

Concatenates the candidate lists of all sources and ranks them by
source weight x intrinsic score. Ties break on source priority
(similarity, then rule, then generative) and then on insertion order, so the
same inputs always produce the same list. Duplicate ids keep their first
(highest ranked) occurrence.

Nutrition never comes back empty because the generative source is down: a
deterministic plan computed from TDEE and the fixed macro split is put at the
front of the candidate list instead.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Sequence

from app.services.metrics import MACRO_SPLIT, NutritionTargets, nutrition_targets
from app.services.profile import UserProfile
from app.services.sources import SOURCE_WEIGHTS, Candidate

log = logging.getLogger("vitalis.blender")

SOURCE_PRIORITY = ("similarity", "rule", "generative")

DEFAULT_COUNT = 5
DEFAULT_COUNTS = {"mindfulness": 8}

FALLBACK_ID = "nutrition-targets"


@dataclass(frozen=True)
class BlendResult:
    items: tuple[Candidate, ...]
    reasoning: str
    fallback_used: bool = False


def default_count(category: str) -> int:
    return DEFAULT_COUNTS.get(category, DEFAULT_COUNT)


def _priority(source: str) -> int:
    return SOURCE_PRIORITY.index(source) if source in SOURCE_PRIORITY else len(SOURCE_PRIORITY)


def rank(candidates: Iterable[Candidate]) -> List[Candidate]:
    indexed = list(enumerate(candidates))
    indexed.sort(key=lambda ic: (-ic[1].score, _priority(ic[1].source), ic[0]))
    out: List[Candidate] = []
    seen = set()
    for _, c in indexed:
        if c.id in seen:
            continue
        seen.add(c.id)
        out.append(c)
    return out


def nutrition_fallback(profile: UserProfile, targets: Optional[NutritionTargets] = None) -> Candidate:
    """Plan derived only from TDEE, the goal adjustment and the 25/45/30 macro split."""
    targets = targets or nutrition_targets(profile.tdee, profile.goals, profile.recent_activity.average_steps)
    payload = asdict(targets)
    payload["macro_split"] = dict(MACRO_SPLIT)
    payload["method"] = "tdee-macro-split"
    return Candidate(
        id=FALLBACK_ID,
        category="nutrition",
        source="rule",
        weight=SOURCE_WEIGHTS["rule"],
        title=f"Daily targets: {targets.daily_calories} kcal",
        payload=MappingProxyType(payload),
        intrinsic_score=1.0,
        reason="computed from your energy expenditure and goals",
    )


def blend(
    category: str,
    candidates_by_source: Mapping[str, Sequence[Candidate]],
    profile: Optional[UserProfile] = None,
    count: Optional[int] = None,
    *,
    unavailable: Sequence[str] = (),
) -> BlendResult:
    limit = count if count and count > 0 else default_count(category)

    pool: List[Candidate] = []
    fallback_used = False
    if category == "nutrition" and profile is not None and not candidates_by_source.get("generative"):
        pool.append(nutrition_fallback(profile))
        fallback_used = True
    for source in candidates_by_source:
        pool.extend(candidates_by_source[source])

    if not pool:
        reasoning = f"No {category} recommendations: no source produced candidates"
        if unavailable:
            reasoning += f" (unavailable: {', '.join(unavailable)})"
        log.warning("blend exhausted category=%s unavailable=%s", category, ",".join(unavailable) or "-")
        return BlendResult(items=(), reasoning=reasoning)

    ranked = rank(pool)[:limit]
    weights = ", ".join(f"{s} {SOURCE_WEIGHTS[s]}" for s in SOURCE_PRIORITY)
    reasoning = f"Top {len(ranked)} of {len(pool)} candidates ranked by source-weighted score ({weights})"
    if fallback_used:
        reasoning += "; generative plan unavailable, using deterministic calorie and macro targets"
    elif unavailable:
        reasoning += f"; unavailable: {', '.join(unavailable)}"
    return BlendResult(items=tuple(ranked), reasoning=reasoning, fallback_used=fallback_used)
