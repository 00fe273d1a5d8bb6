from __future__ import annotations

from typing import List

from core import CandidateResource
from resource_pipeline.selection import (
    apply_diversity_caps,
    build_shortlist,
    diversity_limits,
    drop_near_duplicate_titles,
    limit_low_view_videos,
    sort_by_score,
)


def _candidate(
    idx: int,
    *,
    kind: str = "article",
    fit: float = 50.0,
    title: str = "",
    views=None,
) -> CandidateResource:
    return CandidateResource(
        title=title or f"Resource {idx}",
        url=f"https://example.com/r/{idx}",
        type=kind,
        description="Hands on walkthrough",
        context_fit_score=fit,
        view_count=views,
    )


def _pool(kind: str, count: int, start: int, fit: float) -> List[CandidateResource]:
    return [
        _candidate(start + i, kind=kind, fit=fit - i * 0.1, title=f"{kind} lesson {chr(ord('a') + i)}{start + i}")
        for i in range(count)
    ]


def test_sort_by_score_is_stable_for_ties() -> None:
    items = [_candidate(1, fit=40), _candidate(2, fit=60), _candidate(3, fit=40), _candidate(4, fit=60)]
    assert [c.url.rsplit("/", 1)[-1] for c in sort_by_score(items)] == ["2", "4", "1", "3"]


def test_drop_near_duplicate_titles_keeps_first_occurrence() -> None:
    items = [
        _candidate(1, title="React Hooks Tutorial"),
        _candidate(2, title="React Hooks Tutorial"),
        _candidate(3, title="Understanding the JavaScript event loop"),
    ]
    kept = drop_near_duplicate_titles(items)
    assert [c.url for c in kept] == ["https://example.com/r/1", "https://example.com/r/3"]


def test_limit_low_view_videos_keeps_only_one() -> None:
    items = [
        _candidate(1, kind="video", views=120),
        _candidate(2, kind="video", views=300),
        _candidate(3, kind="video", views=None),
        _candidate(4, kind="video", views=50_000),
        _candidate(5, kind="article"),
    ]
    kept = limit_low_view_videos(items)
    assert [c.url.rsplit("/", 1)[-1] for c in kept] == ["1", "3", "4", "5"]


def test_diversity_limits_by_goal() -> None:
    assert diversity_limits(18, "hands_on") == (9, 2)
    assert diversity_limits(18, "conceptual") == (7, 6)
    assert diversity_limits(2, "quick_overview") == (1, 1)


def test_apply_diversity_caps_is_a_noop_for_small_pools() -> None:
    items = _pool("video", 5, 0, 90)
    assert apply_diversity_caps(items, 18, "hands_on") == items


def test_hands_on_oversupplied_pool_skews_to_videos_and_limits_docs() -> None:
    pool = _pool("video", 20, 0, 90) + _pool("documentation", 20, 100, 80) + _pool("tutorial", 20, 200, 70)

    shortlist = apply_diversity_caps(pool, 18, "hands_on")

    kinds = [c.type for c in shortlist]
    assert len(shortlist) == 18
    assert 0.45 <= kinds.count("video") / 18 <= 0.55
    assert kinds.count("documentation") / 18 <= 0.15
    assert kinds.count("tutorial") == 7


def test_diversity_caps_preserve_input_order() -> None:
    pool = _pool("tutorial", 10, 0, 90) + _pool("video", 15, 100, 80)
    shortlist = apply_diversity_caps(pool, 18, "conceptual")
    positions = [pool.index(c) for c in shortlist]
    assert positions == sorted(positions)


def test_build_shortlist_ranks_dedupes_and_caps() -> None:
    pool = [
        _candidate(1, fit=10, title="Intro to closures"),
        _candidate(2, fit=80, title="Closures explained with examples"),
        _candidate(3, fit=70, title="Closures explained with examples"),
        _candidate(4, kind="video", fit=60, views=10, title="Closure video walkthrough"),
        _candidate(5, kind="video", fit=50, views=20, title="Scope chain deep dive"),
    ]
    shortlist = build_shortlist(pool, "conceptual", size=3)
    assert [c.url.rsplit("/", 1)[-1] for c in shortlist] == ["2", "4", "1"]
