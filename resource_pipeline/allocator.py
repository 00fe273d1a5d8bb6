"""Global cross-module resource allocation under per-module and roadmap minute budgets."""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple

from core import CandidateResource, ModuleContext

from .classify import is_discussion_or_meta, looks_like_listing_page, max_resources_for_module
from .scoring import score_candidate
from .similarity import lexical_similarity
from .urls import extract_video_id, is_allowed_url, normalize_url


logger = logging.getLogger(__name__)

MODULE_BUDGET_TOLERANCE = 1.05
GLOBAL_BUDGET_RATIO = 0.85
COVERAGE_TARGET_RATIO = 0.6
RESCUE_MAX_ITEMS = 2
CHANNEL_DUPLICATE_THRESHOLD = 0.92


@dataclass
class AllocationResult:
    assignments: Dict[str, List[CandidateResource]]
    module_minutes: Dict[str, int]
    total_minutes: int
    usable_minutes: int
    rescued_module_ids: List[str] = field(default_factory=list)

    def assigned_count(self) -> int:
        return sum(len(rows) for rows in self.assignments.values())


class _UsageLedger:
    """URLs, video ids and (channel, title) pairs already claimed in the roadmap."""

    def __init__(self) -> None:
        self.urls: Set[str] = set()
        self.video_ids: Set[str] = set()
        self.channel_titles: List[Tuple[str, str]] = []

    def seed(self, url: str) -> None:
        text = str(url or "").strip()
        if not text:
            return
        self.urls.add(normalize_url(text))
        video_id = extract_video_id(text)
        if video_id:
            self.video_ids.add(video_id)

    def is_used(self, candidate: CandidateResource) -> bool:
        if normalize_url(candidate.url) in self.urls:
            return True
        video_id = extract_video_id(candidate.url)
        return bool(video_id and video_id in self.video_ids)

    def is_channel_duplicate(self, candidate: CandidateResource) -> bool:
        channel = str(candidate.channel or "").strip().lower()
        if not channel:
            return False
        for used_channel, used_title in self.channel_titles:
            if used_channel == channel and lexical_similarity(used_title, candidate.title) > CHANNEL_DUPLICATE_THRESHOLD:
                return True
        return False

    def claim(self, candidate: CandidateResource) -> None:
        self.seed(candidate.url)
        channel = str(candidate.channel or "").strip().lower()
        if channel:
            self.channel_titles.append((channel, candidate.title))


class ResourceAllocator:
    """Greedy best-first assignment, then coverage repair, then a last-resort rescue."""

    def __init__(
        self,
        *,
        module_budget_tolerance: float = MODULE_BUDGET_TOLERANCE,
        global_budget_ratio: float = GLOBAL_BUDGET_RATIO,
        coverage_target_ratio: float = COVERAGE_TARGET_RATIO,
        rescue_max_items: int = RESCUE_MAX_ITEMS,
    ) -> None:
        self._module_tolerance = max(1.0, float(module_budget_tolerance))
        self._global_ratio = max(0.0, min(1.0, float(global_budget_ratio)))
        self._coverage_ratio = max(0.0, min(1.0, float(coverage_target_ratio)))
        self._rescue_max = max(0, int(rescue_max_items))

    def module_cap(self, ctx: ModuleContext) -> float:
        return ctx.budget_minutes * self._module_tolerance

    def usable_minutes(self, total_hours: float) -> int:
        return int(float(total_hours or 0) * 60 * self._global_ratio)

    def allocate(
        self,
        contexts: Sequence[ModuleContext],
        ranked: Mapping[str, Sequence[CandidateResource]],
        *,
        total_hours: float,
        reserved_urls: Iterable[str] = (),
        raw_pools: Optional[Mapping[str, Sequence[CandidateResource]]] = None,
    ) -> AllocationResult:
        """
        Assign candidates to modules across the whole roadmap.

        Args:
            contexts: in-scope modules, in roadmap order
            ranked: module id -> short-listed candidates (already ranked)
            total_hours: roadmap hours; the global cap is a fraction of it
            reserved_urls: URLs owned elsewhere (completed modules, exclusions)
            raw_pools: module id -> unfiltered candidates used only for rescue
        """
        ledger = _UsageLedger()
        for url in reserved_urls:
            ledger.seed(url)

        assignments: Dict[str, List[CandidateResource]] = {ctx.module_id: [] for ctx in contexts}
        minutes: Dict[str, int] = {ctx.module_id: 0 for ctx in contexts}
        usable = self.usable_minutes(total_hours)
        total = 0

        def _fits_module(ctx: ModuleContext, candidate: CandidateResource) -> bool:
            if len(assignments[ctx.module_id]) >= max_resources_for_module(ctx.estimated_hours):
                return False
            return minutes[ctx.module_id] + int(candidate.estimated_minutes) <= self.module_cap(ctx)

        def _fits_roadmap(candidate: CandidateResource) -> bool:
            return total + int(candidate.estimated_minutes) <= usable

        def _assign(ctx: ModuleContext, candidate: CandidateResource) -> None:
            nonlocal total
            assignments[ctx.module_id].append(candidate)
            minutes[ctx.module_id] += int(candidate.estimated_minutes)
            total += int(candidate.estimated_minutes)
            ledger.claim(candidate)

        by_id = {ctx.module_id: ctx for ctx in contexts}
        pairs: List[Tuple[ModuleContext, CandidateResource]] = []
        for ctx in contexts:
            for candidate in list(ranked.get(ctx.module_id) or []):
                pairs.append((ctx, candidate))
        pairs.sort(key=lambda pair: pair[1].combined_score, reverse=True)

        for ctx, candidate in pairs:
            if ledger.is_used(candidate) or ledger.is_channel_duplicate(candidate):
                continue
            if not _fits_module(ctx, candidate):
                continue
            if not _fits_roadmap(candidate):
                continue
            _assign(ctx, candidate)

        # Coverage repair walks each module's own ranking; only the rescue below may exceed the roadmap cap.
        for module_id, ctx in by_id.items():
            remaining = sorted(
                [c for c in list(ranked.get(module_id) or []) if not ledger.is_used(c)],
                key=lambda c: c.combined_score,
                reverse=True,
            )
            if not any(c.type == "video" for c in assignments[module_id]):
                for candidate in remaining:
                    if candidate.type != "video" or ledger.is_used(candidate):
                        continue
                    if _fits_module(ctx, candidate) and _fits_roadmap(candidate):
                        _assign(ctx, candidate)
                        logger.debug("allocator repair video module=%s url=%s", module_id, candidate.url)
                        break

            target = ctx.budget_minutes * self._coverage_ratio
            for candidate in remaining:
                if minutes[module_id] >= target:
                    break
                if ledger.is_used(candidate) or not _fits_module(ctx, candidate):
                    continue
                if not _fits_roadmap(candidate):
                    continue
                _assign(ctx, candidate)

        rescued: List[str] = []
        for module_id, ctx in by_id.items():
            if assignments[module_id] or not raw_pools:
                continue
            picked = 0
            for candidate in self._rescue_pool(ctx, raw_pools.get(module_id) or []):
                if picked >= self._rescue_max:
                    break
                if ledger.is_used(candidate) or not _fits_module(ctx, candidate):
                    continue
                _assign(ctx, candidate)
                picked += 1
            if picked:
                rescued.append(module_id)
                logger.info("allocator rescue module=%s picked=%s", module_id, picked)

        return AllocationResult(
            assignments=assignments,
            module_minutes=minutes,
            total_minutes=total,
            usable_minutes=usable,
            rescued_module_ids=rescued,
        )

    @staticmethod
    def _rescue_pool(ctx: ModuleContext, pool: Sequence[CandidateResource]) -> List[CandidateResource]:
        eligible = []
        for candidate in list(pool):
            if not is_allowed_url(candidate.url):
                continue
            if looks_like_listing_page(candidate.url, candidate.title, candidate.description):
                continue
            if is_discussion_or_meta(candidate.url, candidate.title, candidate.description):
                continue
            eligible.append(score_candidate(candidate, ctx))
        return sorted(eligible, key=lambda c: c.combined_score, reverse=True)
