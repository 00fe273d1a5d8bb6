"""Roadmap-level entry points: generation, adaptation and lazy backfill."""

from __future__ import annotations

import logging
from typing import Any, Iterable, List, Optional

from pydantic import ValidationError

from config.settings import Settings
from core import Module, PipelineResult, RoadmapRequest
from resource_pipeline.anchors import derive_fallback_anchor_terms
from resource_pipeline.pipeline import ResourcePipeline
from resource_pipeline.reranker import build_ranker
from resource_pipeline.schedule import enforce_time_windows, redistribute_day_ranges
from sources import SearchAdapter, SerperSearchProvider, VideoMetadataEnricher, YouTubeDataProvider
from storage import BestEffortWriter, get_cache
from utils.exceptions import InvalidRoadmapInputError


logger = logging.getLogger(__name__)


def validate_request(payload: Any) -> RoadmapRequest:
    """Parse raw input; a missing topic or empty module list is the only fatal error."""
    if isinstance(payload, RoadmapRequest):
        return payload
    try:
        return RoadmapRequest.model_validate(payload)
    except ValidationError as e:
        errors = [
            {"loc": ".".join(str(part) for part in err.get("loc", ())), "msg": err.get("msg", "")}
            for err in e.errors()
        ]
        raise InvalidRoadmapInputError("invalid roadmap input", {"errors": errors}) from e


class RoadmapResourceService:
    """Three call sites sharing one pipeline, differing only in which modules they own."""

    def __init__(self, pipeline: ResourcePipeline, *, writers: Iterable[BestEffortWriter] = ()) -> None:
        self.pipeline = pipeline
        self._writers: List[BestEffortWriter] = list(writers)

    async def generate(self, request: RoadmapRequest, fast_mode: bool = False) -> PipelineResult:
        """Populate every non-completed module."""
        return await self.pipeline.run(request, fast_mode=fast_mode)

    async def adapt(
        self,
        request: RoadmapRequest,
        new_hours_per_day: Optional[float] = None,
        total_days: Optional[int] = None,
        fast_mode: bool = False,
    ) -> PipelineResult:
        """
        Re-plan the remaining modules after a pace change.

        Day ranges are redistributed, hours capped to each day window, missing
        anchor terms filled in, and the remaining modules' resources regenerated.
        Completed modules pass through untouched.
        """
        hours_per_day = float(new_hours_per_day or request.hours_per_day)
        completed = request.completed_module_ids

        modules = redistribute_day_ranges(request.modules, total_days, hours_per_day, completed)
        modules = enforce_time_windows(modules, hours_per_day, completed)

        prepared: List[Module] = []
        for module in modules:
            if module.id in completed:
                prepared.append(module)
                continue
            update: dict = {"resources": []}
            if not module.anchor_terms:
                update["anchor_terms"] = derive_fallback_anchor_terms(module)
            prepared.append(module.model_copy(update=update))

        update_request: dict = {"modules": prepared, "hours_per_day": hours_per_day}
        if total_days:
            update_request["total_hours"] = max(hours_per_day, float(total_days) * hours_per_day)
        adapted = request.model_copy(update=update_request)

        logger.info(
            "roadmap_adapt topic=%r hours_per_day=%s total_days=%s remaining=%s",
            request.topic,
            hours_per_day,
            total_days,
            sum(1 for m in prepared if m.id not in completed),
        )
        return await self.pipeline.run(adapted, fast_mode=fast_mode)

    async def backfill(self, request: RoadmapRequest, fast_mode: bool = False) -> PipelineResult:
        """Fill only the non-completed modules that have no resources yet."""
        empty_ids = [
            m.id for m in request.modules
            if m.id not in request.completed_module_ids and not m.resources
        ]
        logger.info("roadmap_backfill topic=%r empty_modules=%s", request.topic, len(empty_ids))
        return await self.pipeline.run(request, in_scope_module_ids=empty_ids, fast_mode=fast_mode)

    async def aclose(self) -> None:
        for writer in self._writers:
            await writer.drain()
        llm = getattr(self.pipeline.ranker, "llm", None)
        if llm is not None:
            await llm.aclose()


def build_service(settings: Optional[Settings] = None) -> RoadmapResourceService:
    """Wire providers, caches and the ranker from settings."""
    if settings is None:
        from config import get_settings
        settings = get_settings()

    cache = get_cache(
        settings.storage.cache_provider,
        cache_dir=settings.storage.cache_path,
        max_size=settings.storage.cache_max_size,
    )
    writer = BestEffortWriter(cache)

    search = SearchAdapter(
        SerperSearchProvider(
            settings.search.api_key,
            base_url=settings.search.base_url,
            timeout=settings.search.timeout,
        ),
        cache,
        settings=settings.search,
        writer=writer,
        short_module_hours=settings.pipeline.short_module_hours,
    )
    videos = VideoMetadataEnricher(
        YouTubeDataProvider(
            settings.video.api_key,
            base_url=settings.video.base_url,
            timeout=settings.video.timeout,
        ),
        cache,
        settings=settings.video,
        writer=writer,
    )
    pipeline = ResourcePipeline(search, videos, ranker=build_ranker(settings), settings=settings)
    return RoadmapResourceService(pipeline, writers=[writer])

