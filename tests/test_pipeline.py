from __future__ import annotations

from typing import Dict, Iterable, List

import pytest

from core import ModuleContext, RoadmapRequest, SearchBatch, VideoMetadata, VideoSearchHit, WebSearchHit
from resource_pipeline.pipeline import ResourcePipeline
from resource_pipeline.reranker import STRATEGY_HEURISTIC
from sources.search import SearchStats
from sources.video_metadata import VideoStats


class _FakeSearch:
    def __init__(self, module_batches: Dict[str, SearchBatch], topic_batch: SearchBatch = None) -> None:
        self.module_batches = module_batches
        self.topic_batch = topic_batch or SearchBatch()
        self.stats = SearchStats()
        self.module_calls: List[str] = []

    async def search_topic(self, topic, level, goal, *, fast_mode=False) -> SearchBatch:
        self.stats.calls += 1
        return self.topic_batch

    async def search_module(self, ctx: ModuleContext, *, fast_mode=False) -> SearchBatch:
        self.stats.calls += 1
        self.module_calls.append(ctx.module_id)
        return self.module_batches.get(ctx.module_id, SearchBatch())


class _FakeVideos:
    def __init__(self, metadata: Dict[str, VideoMetadata]) -> None:
        self.metadata = metadata
        self.stats = VideoStats()
        self.requests: List[List[str]] = []

    async def fetch(self, video_ids: Iterable[str]) -> Dict[str, VideoMetadata]:
        ids = list(video_ids)
        self.requests.append(ids)
        self.stats.cache_misses += len(ids)
        return {vid: self.metadata[vid] for vid in ids if vid in self.metadata}


class _ExplodingRanker:
    async def rank(self, ctx, candidates):
        raise RuntimeError("ranker down")


DECORATORS_PRIMER = "https://realpython.com/primer-on-python-decorators"
GENERATORS_GUIDE = "https://realpython.com/introduction-to-python-generators"
COMPLETED_URL = "https://docs.python.org/3/tutorial"


def _request(**overrides) -> RoadmapRequest:
    payload = {
        "topic": "Python",
        "skillLevel": "beginner",
        "learningGoal": "conceptual",
        "totalHours": 10,
        "hoursPerDay": 1,
        "modules": [
            {
                "id": "m1",
                "title": "Python Decorators",
                "description": "Writing function decorators and closures",
                "estimated_hours": 2,
                "anchor_terms": ["decorator"],
            },
            {
                "id": "m2",
                "title": "Python Generators",
                "description": "Lazy iteration with yield and generator expressions",
                "estimated_hours": 2,
                "anchor_terms": ["generator", "yield"],
            },
            {
                "id": "m3",
                "title": "Python Basics",
                "description": "Variables, types and control flow",
                "estimated_hours": 1,
                "resources": [
                    {"title": "The Python Tutorial", "url": COMPLETED_URL + "/", "type": "documentation", "estimated_minutes": 60}
                ],
            },
            {
                "id": "m4",
                "title": "Quantum Basket Weaving",
                "description": "Entangled wicker patterns",
                "estimated_hours": 1,
            },
        ],
        "completedModuleIds": ["m3"],
    }
    payload.update(overrides)
    return RoadmapRequest.model_validate(payload)


def _search() -> _FakeSearch:
    return _FakeSearch(
        {
            "m1": SearchBatch(
                videos=[
                    VideoSearchHit(
                        title="Python Decorators in 15 Minutes",
                        link="https://www.youtube.com/watch?v=aaaaaaaaaaa",
                        duration="15:00",
                        channel="Kite",
                    )
                ],
                web=[
                    WebSearchHit(
                        title="Primer on Python Decorators",
                        link=DECORATORS_PRIMER + "/",
                        snippet="Learn how Python decorators wrap functions, with closures and practical decorator examples.",
                    ),
                    WebSearchHit(
                        title="Python decorators",
                        link="https://example.com/search?q=python+decorators",
                        snippet="Python decorators and closures explained with function examples",
                    ),
                    WebSearchHit(
                        title="Python decorators tutorial",
                        link=COMPLETED_URL,
                        snippet="Writing function decorators and closures in the official tutorial",
                    ),
                ],
            ),
            "m2": SearchBatch(
                videos=[
                    VideoSearchHit(
                        title="Python Generators Explained",
                        link="https://youtu.be/bbbbbbbbbbb",
                        duration="20:00",
                        channel="Corey Schafer",
                    )
                ],
                web=[
                    WebSearchHit(
                        title="How to Use Generators and yield in Python",
                        link=GENERATORS_GUIDE,
                        snippet="Generator functions, yield and generator expressions for lazy iteration in Python.",
                    ),
                    WebSearchHit(
                        title="Primer on Python Decorators",
                        link=DECORATORS_PRIMER,
                        snippet="Learn how Python decorators wrap functions, with closures and practical decorator examples.",
                    ),
                ],
            ),
        }
    )


def _videos() -> _FakeVideos:
    return _FakeVideos(
        {
            "aaaaaaaaaaa": VideoMetadata(
                video_id="aaaaaaaaaaa",
                title="Python Decorators in 15 Minutes",
                channel="Kite",
                duration_minutes=15,
                view_count=200_000,
            ),
            "bbbbbbbbbbb": VideoMetadata(
                video_id="bbbbbbbbbbb",
                title="Python Generators Explained",
                channel="Corey Schafer",
                duration_minutes=20,
                view_count=500_000,
            ),
        }
    )


def _urls(module) -> List[str]:
    return [r.url for r in module.resources]


@pytest.mark.asyncio
async def test_pipeline_assigns_unique_on_topic_resources() -> None:
    request = _request()
    search, videos = _search(), _videos()

    result = await ResourcePipeline(search, videos).run(request)

    m1, m2, m3, m4 = result.modules
    assert [m.id for m in result.modules] == ["m1", "m2", "m3", "m4"]
    assert DECORATORS_PRIMER in _urls(m1)
    assert "https://youtube.com/watch?v=aaaaaaaaaaa" in _urls(m1)
    assert GENERATORS_GUIDE in _urls(m2)
    assert "https://youtube.com/watch?v=bbbbbbbbbbb" in _urls(m2)

    all_urls = [url for m in result.modules for url in _urls(m)]
    assert len(all_urls) == len(set(all_urls))
    assert not any("/search" in url for url in all_urls)
    assert COMPLETED_URL not in _urls(m1) + _urls(m2)

    for module in (m1, m2):
        assert sum(r.estimated_minutes for r in module.resources) <= module.estimated_hours * 60 * 1.05

    assert videos.requests == [["aaaaaaaaaaa", "bbbbbbbbbbb"]]
    assert sorted(search.module_calls) == ["m1", "m2", "m4"]


@pytest.mark.asyncio
async def test_completed_modules_are_left_untouched() -> None:
    request = _request()
    result = await ResourcePipeline(_search(), _videos()).run(request)

    completed = result.modules[2]
    assert completed.model_dump() == request.modules[2].model_dump()
    assert next(d for d in result.diagnostics.modules if d.module_id == "m3").in_scope is False


@pytest.mark.asyncio
async def test_starved_module_is_flagged_not_raised() -> None:
    result = await ResourcePipeline(_search(), _videos()).run(_request())

    assert result.modules[3].resources == []
    assert result.diagnostics.zero_resource_module_ids == ["m4"]
    starved = next(d for d in result.diagnostics.modules if d.module_id == "m4")
    assert starved.zero_resources is True
    assert starved.candidates_found == 0


@pytest.mark.asyncio
async def test_diagnostics_report_per_run_counters() -> None:
    search, videos = _search(), _videos()
    pipeline = ResourcePipeline(search, videos)

    first = await pipeline.run(_request())
    second = await pipeline.run(_request())

    assert first.diagnostics.search_calls == 4
    assert second.diagnostics.search_calls == 4
    assert second.diagnostics.video_cache_misses == 2
    assert first.diagnostics.usable_minutes == 510
    assert first.diagnostics.run_id != second.diagnostics.run_id
    m1 = next(d for d in first.diagnostics.modules if d.module_id == "m1")
    assert m1.ranker == STRATEGY_HEURISTIC
    assert m1.candidates_found == 2
    assert m1.assigned == len(first.modules[0].resources)


@pytest.mark.asyncio
async def test_in_scope_ids_limit_the_run() -> None:
    request = _request()
    search = _search()

    result = await ResourcePipeline(search, _videos()).run(request, in_scope_module_ids=["m2"])

    assert search.module_calls == ["m2"]
    assert result.modules[0].resources == []
    assert GENERATORS_GUIDE in _urls(result.modules[1])
    assert result.diagnostics.zero_resource_module_ids == []


@pytest.mark.asyncio
async def test_nothing_to_do_when_every_module_is_completed() -> None:
    request = _request(completedModuleIds=["m1", "m2", "m3", "m4"])
    search = _search()

    result = await ResourcePipeline(search, _videos()).run(request)

    assert search.stats.calls == 0
    assert [m.model_dump() for m in result.modules] == [m.model_dump() for m in request.modules]


@pytest.mark.asyncio
async def test_ranker_errors_fall_back_to_heuristic_order() -> None:
    result = await ResourcePipeline(_search(), _videos(), ranker=_ExplodingRanker()).run(_request())

    m1 = next(d for d in result.diagnostics.modules if d.module_id == "m1")
    assert m1.ranker_fell_back is True
    assert m1.ranker == STRATEGY_HEURISTIC
    assert DECORATORS_PRIMER in _urls(result.modules[0])


@pytest.mark.asyncio
async def test_excluded_domains_never_appear() -> None:
    request = _request(excludedDomains=["realpython.com"])
    result = await ResourcePipeline(_search(), _videos()).run(request)

    all_urls = [url for m in result.modules for url in _urls(m)]
    assert not any("realpython.com" in url for url in all_urls)
