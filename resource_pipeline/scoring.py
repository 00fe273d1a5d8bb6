"""Explainable authority and context-fit scoring for resource candidates."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from typing import Dict, List, Sequence

from core import AuthorityTier, CandidateResource, ModuleContext

from .anchors import candidate_text, compute_scope_penalty
from .classify import (
    VIDEO_METADATA_SOURCE,
    classify_authority_tier,
    detect_certification_intent,
    looks_like_listing_page,
)
from .similarity import hybrid_similarity


@dataclass(frozen=True)
class TierPrior:
    norm: float
    max_impact: int


TIER_CONFIG: Dict[AuthorityTier, TierPrior] = {
    AuthorityTier.OFFICIAL_DOCS: TierPrior(1.00, 5),
    AuthorityTier.VENDOR_DOCS: TierPrior(0.90, 4),
    AuthorityTier.UNIVERSITY_DIRECT: TierPrior(0.85, 4),
    AuthorityTier.YOUTUBE_TRUSTED: TierPrior(0.80, 3),
    AuthorityTier.EDUCATION_DOMAIN: TierPrior(0.75, 3),
    AuthorityTier.BLOG: TierPrior(0.60, 3),
    AuthorityTier.YOUTUBE_UNKNOWN: TierPrior(0.50, 2),
    AuthorityTier.COMMUNITY: TierPrior(0.42, 2),
    AuthorityTier.UNKNOWN: TierPrior(0.25, 1),
}

GOAL_CHANNELS: Dict[str, tuple] = {
    "quick_overview": ("fireship", "networkchuck", "techworld with nana"),
    "hands_on": ("traversy media", "web dev simplified", "tech with tim", "programming with mosh"),
    "conceptual": ("3blue1brown", "cs dojo", "computerphile", "corey schafer", "ibm technology"),
    "deep_mastery": ("freecodecamp", "sentdex", "the coding train"),
}

_LEVEL_TITLE_PATTERNS = {
    "beginner": re.compile(r"beginner|intro|basic|fundamental|getting started|what is", flags=re.IGNORECASE),
    "intermediate": re.compile(r"intermediate|practical|pattern|use case", flags=re.IGNORECASE),
    "advanced": re.compile(r"advanced|deep|expert|optimization|architecture", flags=re.IGNORECASE),
}
_CERT_TITLE_RE = re.compile(r"certification|exam|associate|professional", flags=re.IGNORECASE)
_PRACTICAL_RE = re.compile(
    r"\b(build|project|walkthrough|code along|coding|implementation|lab|exercise|kata|case study|mock interview|whiteboard)\b",
    flags=re.IGNORECASE,
)
_PASSIVE_RE = re.compile(
    r"\b(reference|documentation|docs|overview|glossary|faq|catalog|search results)\b",
    flags=re.IGNORECASE,
)


def round_half_up(value: float) -> int:
    return int(math.floor(float(value) + 0.5))


def authority_bump(tier: AuthorityTier) -> int:
    prior = TIER_CONFIG[tier]
    return min(prior.max_impact, round_half_up(prior.norm * prior.max_impact))


def apply_authority(candidate: CandidateResource) -> CandidateResource:
    # Only a channel confirmed by video metadata can earn the trusted tier.
    verified_channel = candidate.channel if candidate.source == VIDEO_METADATA_SOURCE else None
    tier, flags = classify_authority_tier(candidate.url, candidate.type, verified_channel)
    return candidate.model_copy(
        update={
            "authority_tier": tier,
            "authority_score": authority_bump(tier),
            "authority_score_norm": TIER_CONFIG[tier].norm,
            "reason_flags": list(flags),
        }
    )


def _goal_fit(candidate: CandidateResource, goal: str) -> int:
    kind = candidate.type
    minutes = candidate.estimated_minutes
    if goal == "conceptual" and kind in {"video", "documentation", "article"}:
        return 20
    if goal == "hands_on" and kind in {"tutorial", "practice", "video"}:
        return 20
    if goal == "quick_overview" and minutes <= 45 and kind in {"video", "article", "tutorial", "documentation"}:
        return 20
    if goal == "deep_mastery" and minutes >= 25 and kind in {"video", "documentation", "article"}:
        return 20
    return 10


def _level_fit(candidate: CandidateResource, level: str) -> int:
    pattern = _LEVEL_TITLE_PATTERNS.get(level)
    if pattern is not None and pattern.search(candidate.title):
        return 15
    return 8


def _time_fit(candidate: CandidateResource, budget_minutes: int) -> int:
    minutes = candidate.estimated_minutes
    if minutes > budget_minutes * 2:
        return 0
    if minutes > budget_minutes * 1.2:
        return 6
    return 15


def _quality_fit(candidate: CandidateResource, ctx: ModuleContext) -> int:
    quality = 8
    norm = float(candidate.authority_score_norm or 0.0)
    if norm >= 0.75:
        quality = 15
    elif norm >= 0.5:
        quality = 12
    if looks_like_listing_page(candidate.url, candidate.title, candidate.description):
        quality = max(quality - 8, 0)

    if candidate.type == "video" and candidate.view_count is not None:
        channel = str(candidate.channel or "").lower()
        goal_channel = any(name in channel for name in GOAL_CHANNELS.get(ctx.goal, ()))
        views = int(candidate.view_count or 0)
        if goal_channel:
            quality = min(quality + 3, 15)
        if views >= 1_000_000:
            quality = min(quality + 2, 15)
        elif views >= 100_000:
            quality = min(quality + 1, 15)
        if not goal_channel:
            if views < 1_000:
                quality = max(quality - 4, 0)
            elif views < 5_000:
                quality = max(quality - 2, 0)

    if detect_certification_intent(f"{ctx.topic} {ctx.title}") and _CERT_TITLE_RE.search(candidate.title):
        quality = min(quality + 2, 15)
    return quality


def _practicality(candidate: CandidateResource, goal: str) -> int:
    if goal != "hands_on":
        return 0
    composite = f"{candidate.title} {candidate.description} {candidate.url}"
    adjust = 0
    if candidate.type in {"practice", "tutorial", "video"}:
        adjust += 8
    if _PRACTICAL_RE.search(composite):
        adjust += 6
    if candidate.type == "documentation":
        adjust -= 8
    if _PASSIVE_RE.search(composite):
        adjust -= 4
    return adjust


def context_fit_breakdown(candidate: CandidateResource, ctx: ModuleContext) -> Dict[str, int]:
    module_text = f"{ctx.module_text} {ctx.goal} {ctx.level}"
    penalty = candidate.scope_penalty
    if penalty is None:
        penalty = compute_scope_penalty(candidate, ctx)
    return {
        "topic_fit": round_half_up(hybrid_similarity(module_text, candidate_text(candidate)) * 35),
        "goal_fit": _goal_fit(candidate, ctx.goal),
        "level_fit": _level_fit(candidate, ctx.level),
        "time_fit": _time_fit(candidate, ctx.budget_minutes),
        "quality_fit": _quality_fit(candidate, ctx),
        "practicality": _practicality(candidate, ctx.goal),
        "scope_penalty": int(penalty),
    }


def context_fit_score(candidate: CandidateResource, ctx: ModuleContext) -> int:
    """Heuristic 0-100 fit of one candidate to one module."""
    parts = context_fit_breakdown(candidate, ctx)
    total = sum(value for key, value in parts.items() if key != "scope_penalty") - parts["scope_penalty"]
    return max(0, min(total, 100))


def score_candidate(candidate: CandidateResource, ctx: ModuleContext) -> CandidateResource:
    with_authority = apply_authority(candidate)
    penalty = with_authority.scope_penalty
    if penalty is None:
        penalty = compute_scope_penalty(with_authority, ctx)
        with_authority = with_authority.model_copy(update={"scope_penalty": penalty})
    return with_authority.model_copy(update={"context_fit_score": float(context_fit_score(with_authority, ctx))})


def score_candidates(candidates: Sequence[CandidateResource], ctx: ModuleContext) -> List[CandidateResource]:
    return [score_candidate(candidate, ctx) for candidate in candidates]
