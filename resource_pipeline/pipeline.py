"""End-to-end resource pipeline: search fan-out, filtering, scoring, ranking and allocation."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence, Set
import uuid

from config.settings import Settings
from core import (
    CandidateResource,
    Module,
    ModuleContext,
    ModuleDiagnostics,
    PipelineDiagnostics,
    PipelineResult,
    RoadmapRequest,
    SearchBatch,
    VideoMetadata,
)

from .allocator import AllocationResult, ResourceAllocator
from .anchors import apply_stage4_filter, build_module_context
from .candidates import collect_video_ids, enrich_candidates, merge_and_deduplicate
from .classify import is_discussion_or_meta, is_garbage, looks_like_listing_page
from .reranker import HeuristicRanker, RankOutcome, ResourceRanker
from .scoring import score_candidates
from .selection import build_shortlist, sort_by_score
from .urls import ExclusionSet, is_allowed_url


logger = logging.getLogger(__name__)


class SearchBackend(Protocol):
    stats: Any

    async def search_topic(self, topic: str, level: str, goal: str, *, fast_mode: bool = False) -> SearchBatch:
        ...

    async def search_module(self, ctx: ModuleContext, *, fast_mode: bool = False) -> SearchBatch:
        ...


class VideoBackend(Protocol):
    stats: Any

    async def fetch(self, video_ids: Iterable[str]) -> Dict[str, VideoMetadata]:
        ...


def _hit_rate(hits: int, misses: int) -> float:
    total = int(hits) + int(misses)
    return round(hits / total, 4) if total else 0.0


def _passes_final_check(candidate: CandidateResource) -> bool:
    if not is_allowed_url(candidate.url):
        return False
    if looks_like_listing_page(candidate.url, candidate.title, candidate.description):
        return False
    return not is_discussion_or_meta(candidate.url, candidate.title, candidate.description)


class ResourcePipeline:
    """
    One run populates `resources` for the in-scope, non-completed modules of a roadmap.

    Stage order: contexts -> search -> merge -> video metadata -> enrich ->
    stage-4 filter -> score -> garbage -> short-list -> rank -> allocate -> write-back.
    Every other module is returned as the same object it came in as.
    """

    def __init__(
        self,
        search: SearchBackend,
        videos: VideoBackend,
        ranker: Optional[ResourceRanker] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.search = search
        self.videos = videos
        self.ranker = ranker or HeuristicRanker()
        self.settings = settings or Settings()
        pipeline_settings = self.settings.pipeline
        self.allocator = ResourceAllocator(
            module_budget_tolerance=pipeline_settings.module_budget_tolerance,
            global_budget_ratio=pipeline_settings.global_budget_ratio,
            coverage_target_ratio=pipeline_settings.coverage_target_ratio,
            rescue_max_items=pipeline_settings.rescue_max_items,
        )

    @staticmethod
    def owned_module_ids(request: RoadmapRequest, in_scope_module_ids: Optional[Iterable[str]] = None) -> List[str]:
        scope: Optional[Set[str]] = set(in_scope_module_ids) if in_scope_module_ids is not None else None
        owned = []
        for module in request.modules:
            if module.id in request.completed_module_ids:
                continue
            if scope is not None and module.id not in scope:
                continue
            owned.append(module.id)
        return owned

    @staticmethod
    def reserved_urls(request: RoadmapRequest, owned_ids: Iterable[str]) -> List[str]:
        """URLs the run must not hand out again: other modules' resources and explicit exclusions."""
        owned = set(owned_ids)
        urls: List[str] = list(request.excluded_urls)
        for module in request.modules:
            if module.id in owned:
                continue
            urls.extend(resource.url for resource in module.resources)
        return urls

    async def _rank(self, ctx: ModuleContext, shortlist: Sequence[CandidateResource]) -> RankOutcome:
        try:
            return await self.ranker.rank(ctx, shortlist)
        except Exception as exc:
            logger.warning("ranker_failed module=%s error=%s", ctx.module_id, exc)
            return RankOutcome(candidates=sort_by_score(shortlist), strategy=HeuristicRanker.name, fell_back=True)

    async def run(
        self,
        request: RoadmapRequest,
        in_scope_module_ids: Optional[Iterable[str]] = None,
        fast_mode: bool = False,
    ) -> PipelineResult:
        started = time.perf_counter()
        before = self._counters()
        run_id = uuid.uuid4().hex[:12]
        fast_mode = bool(fast_mode or self.settings.pipeline.fast_mode)
        owned_ids = self.owned_module_ids(request, in_scope_module_ids)
        owned_set = set(owned_ids)
        contexts = [build_module_context(m, request) for m in request.modules if m.id in owned_set]
        reserved = self.reserved_urls(request, owned_ids)
        exclusions = ExclusionSet.build(reserved, request.excluded_domains)

        logger.info(
            "pipeline_start run_id=%s topic=%r modules=%s owned=%s fast_mode=%s",
            run_id,
            request.topic,
            len(request.modules),
            len(contexts),
            fast_mode,
        )

        diagnostics: Dict[str, ModuleDiagnostics] = {
            m.id: ModuleDiagnostics(
                module_id=m.id,
                title=m.title,
                in_scope=m.id in owned_set,
                assigned=len(m.resources),
                assigned_minutes=sum(r.estimated_minutes for r in m.resources),
                budget_minutes=int(round(m.estimated_hours * 60)),
            )
            for m in request.modules
        }

        if not contexts:
            return self._result(request.modules, diagnostics, run_id, fast_mode, started, before, allocation=None)

        goal = request.learning_goal.value
        topic_batch, *module_batches = await asyncio.gather(
            self.search.search_topic(request.topic, request.skill_level.value, goal, fast_mode=fast_mode),
            *(self.search.search_module(ctx, fast_mode=fast_mode) for ctx in contexts),
        )

        merged: Dict[str, List[CandidateResource]] = {}
        for ctx, module_batch in zip(contexts, module_batches):
            merged[ctx.module_id] = merge_and_deduplicate(ctx.title, topic_batch, module_batch, exclusions)
            diagnostics[ctx.module_id].candidates_found = len(merged[ctx.module_id])

        video_ids = collect_video_ids(c for rows in merged.values() for c in rows)
        metadata = await self.videos.fetch(video_ids) if video_ids else {}

        threshold = self.settings.pipeline.similarity_threshold
        shortlist_size = max(1, int(self.settings.reranker.candidates_per_module))
        shortlists: Dict[str, List[CandidateResource]] = {}
        for ctx in contexts:
            diag = diagnostics[ctx.module_id]
            enriched = enrich_candidates(merged[ctx.module_id], metadata, ctx)
            diag.after_enrichment = len(enriched)
            filtered = apply_stage4_filter(enriched, ctx, similarity_threshold=threshold)
            diag.after_filter = len(filtered)
            scored = [c for c in score_candidates(filtered, ctx) if not is_garbage(c)]
            diag.after_garbage = len(scored)
            shortlists[ctx.module_id] = build_shortlist(scored, goal, size=shortlist_size)
            diag.shortlisted = len(shortlists[ctx.module_id])

        outcomes = await asyncio.gather(*(self._rank(ctx, shortlists[ctx.module_id]) for ctx in contexts))
        ranked: Dict[str, List[CandidateResource]] = {}
        for ctx, outcome in zip(contexts, outcomes):
            ranked[ctx.module_id] = outcome.candidates
            diagnostics[ctx.module_id].ranker = outcome.strategy
            diagnostics[ctx.module_id].ranker_fell_back = outcome.fell_back

        allocation = self.allocator.allocate(
            contexts,
            ranked,
            total_hours=request.total_hours,
            reserved_urls=reserved,
            raw_pools=merged,
        )

        modules: List[Module] = []
        for module in request.modules:
            if module.id not in owned_set:
                modules.append(module)
                continue
            assigned = [c for c in allocation.assignments.get(module.id, []) if _passes_final_check(c)]
            resources = [c.to_resource() for c in assigned]
            modules.append(module.model_copy(update={"resources": resources}))
            diag = diagnostics[module.id]
            diag.assigned = len(resources)
            diag.assigned_minutes = sum(r.estimated_minutes for r in resources)
            diag.rescued = module.id in allocation.rescued_module_ids
            diag.zero_resources = not resources

        return self._result(modules, diagnostics, run_id, fast_mode, started, before, allocation=allocation)

    def _counters(self) -> Dict[str, int]:
        """Adapter counters are cumulative; runs report the difference."""
        search_stats = getattr(self.search, "stats", None)
        video_stats = getattr(self.videos, "stats", None)
        return {
            "search_calls": int(getattr(search_stats, "calls", 0)),
            "search_failures": int(getattr(search_stats, "failures", 0)),
            "search_cache_hits": int(getattr(search_stats, "cache_hits", 0)),
            "search_cache_misses": int(getattr(search_stats, "cache_misses", 0)),
            "video_cache_hits": int(getattr(video_stats, "cache_hits", 0)),
            "video_cache_misses": int(getattr(video_stats, "cache_misses", 0)),
            "video_failures": int(getattr(video_stats, "failures", 0)),
        }

    def _result(
        self,
        modules: List[Module],
        diagnostics: Dict[str, ModuleDiagnostics],
        run_id: str,
        fast_mode: bool,
        started: float,
        before: Dict[str, int],
        *,
        allocation: Optional[AllocationResult],
    ) -> PipelineResult:
        after = self._counters()
        delta = {key: max(0, after[key] - before.get(key, 0)) for key in after}
        module_diags = [diagnostics[m.id] for m in modules]
        owned = [d for d in module_diags if d.in_scope]

        report = PipelineDiagnostics(
            run_id=run_id,
            fast_mode=fast_mode,
            modules=module_diags,
            total_assigned=sum(d.assigned for d in owned),
            total_minutes=sum(d.assigned_minutes for d in owned),
            usable_minutes=allocation.usable_minutes if allocation else 0,
            search_calls=delta["search_calls"],
            search_failures=delta["search_failures"],
            search_cache_hits=delta["search_cache_hits"],
            search_cache_misses=delta["search_cache_misses"],
            video_cache_hits=delta["video_cache_hits"],
            video_cache_misses=delta["video_cache_misses"],
            video_failures=delta["video_failures"],
            zero_resource_module_ids=[d.module_id for d in owned if d.zero_resources],
            elapsed_ms=int((time.perf_counter() - started) * 1000),
        )
        report.search_cache_hit_rate = _hit_rate(report.search_cache_hits, report.search_cache_misses)
        report.video_cache_hit_rate = _hit_rate(report.video_cache_hits, report.video_cache_misses)

        if report.zero_resource_module_ids:
            logger.warning(
                "pipeline_zero_resources run_id=%s modules=%s",
                run_id,
                ",".join(report.zero_resource_module_ids),
            )
        logger.info(
            "pipeline_done run_id=%s assigned=%s minutes=%s usable=%s search_calls=%s elapsed_ms=%s",
            run_id,
            report.total_assigned,
            report.total_minutes,
            report.usable_minutes,
            report.search_calls,
            report.elapsed_ms,
        )
        return PipelineResult(modules=modules, diagnostics=report)
