"""Per-module short-listing: near-duplicate removal, low-view limits and type diversity caps."""

from __future__ import annotations

from typing import List, Sequence

from core import CandidateResource

from .scoring import round_half_up
from .similarity import hybrid_similarity

NEAR_DUPLICATE_TITLE_THRESHOLD = 0.76
LOW_VIEW_THRESHOLD = 1_000
DEFAULT_SHORTLIST_SIZE = 18


def sort_by_score(candidates: Sequence[CandidateResource]) -> List[CandidateResource]:
    """Descending by fit + authority; ties keep input order."""
    return sorted(candidates, key=lambda c: c.combined_score, reverse=True)


def drop_near_duplicate_titles(
    candidates: Sequence[CandidateResource],
    threshold: float = NEAR_DUPLICATE_TITLE_THRESHOLD,
) -> List[CandidateResource]:
    kept: List[CandidateResource] = []
    for candidate in candidates:
        if any(hybrid_similarity(existing.title, candidate.title) > threshold for existing in kept):
            continue
        kept.append(candidate)
    return kept


def limit_low_view_videos(
    candidates: Sequence[CandidateResource],
    min_views: int = LOW_VIEW_THRESHOLD,
    keep: int = 1,
) -> List[CandidateResource]:
    """At most `keep` enriched videos under `min_views` views survive."""
    kept: List[CandidateResource] = []
    low_view_count = 0
    for candidate in candidates:
        is_low = candidate.type == "video" and candidate.view_count is not None and candidate.view_count < min_views
        if is_low:
            if low_view_count >= keep:
                continue
            low_view_count += 1
        kept.append(candidate)
    return kept


def diversity_limits(max_items: int, goal: str):
    """(max_videos, max_docs) for a short-list of `max_items`."""
    n = max(0, int(max_items))
    if goal == "hands_on":
        return max(1, round_half_up(n * 0.5)), int(n * 0.15)
    return max(1, int(n * 0.40)), max(1, int(n * 0.35))


def apply_diversity_caps(
    candidates: Sequence[CandidateResource],
    max_items: int,
    goal: str,
) -> List[CandidateResource]:
    """Proportional per-type caps so no single type dominates an oversupplied pool."""
    if len(candidates) <= max_items:
        return list(candidates)

    max_videos, max_docs = diversity_limits(max_items, goal)
    video_idx = [i for i, c in enumerate(candidates) if c.type == "video"][:max_videos]
    doc_idx = [i for i, c in enumerate(candidates) if c.type == "documentation"][:max_docs]
    remaining = max(0, max_items - len(video_idx) - len(doc_idx))
    other_idx = [i for i, c in enumerate(candidates) if c.type not in {"video", "documentation"}][:remaining]

    chosen = set(video_idx) | set(doc_idx) | set(other_idx)
    for i in range(len(candidates)):
        if len(chosen) >= max_items:
            break
        chosen.add(i)
    return [candidates[i] for i in sorted(chosen)]


def build_shortlist(
    candidates: Sequence[CandidateResource],
    goal: str,
    size: int = DEFAULT_SHORTLIST_SIZE,
) -> List[CandidateResource]:
    ranked = sort_by_score(candidates)
    ranked = drop_near_duplicate_titles(ranked)
    ranked = limit_low_view_videos(ranked)
    return apply_diversity_caps(ranked, size, goal)
