"""Web/video search providers and the cached, retrying search adapter."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

import httpx
from pydantic import ValidationError
from tenacity import AsyncRetrying, retry_if_exception, stop_after_attempt, wait_fixed

from config.settings import SearchSettings
from core import ModuleContext, SearchBatch, SearchType, VideoSearchHit, WebSearchHit
from resource_pipeline.query_plan import build_module_query_plan, build_topic_query_plan, goal_search_config
from storage.cache import BaseCache, BestEffortWriter, safe_get
from utils.exceptions import SearchProviderError

logger = logging.getLogger(__name__)


class SearchProvider(Protocol):
    name: str

    async def search(self, query: str, search_type: SearchType, count: int) -> List[Dict[str, Any]]:
        ...


async def _http_post_json(
    url: str,
    *,
    payload: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
    timeout: float = 8.0,
) -> Any:
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True) as client:
        response = await client.post(url, json=payload, headers=headers)
        response.raise_for_status()
        return response.json()


class SerperSearchProvider:
    """Google results through the Serper API (`/search` for web, `/videos` for video)."""

    name = "serper"

    def __init__(self, api_key: Optional[str], base_url: str = "https://google.serper.dev", timeout: float = 8.0):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def search(self, query: str, search_type: SearchType, count: int) -> List[Dict[str, Any]]:
        if not self.api_key:
            raise SearchProviderError("search api key is not configured", provider=self.name, status_code=401)
        endpoint = "videos" if search_type == "videos" else "search"
        try:
            data = await _http_post_json(
                f"{self.base_url}/{endpoint}",
                payload={"q": query, "num": int(count)},
                headers={"X-API-KEY": self.api_key, "Content-Type": "application/json"},
                timeout=self.timeout,
            )
        except httpx.HTTPStatusError as e:
            raise SearchProviderError(
                f"search returned HTTP {e.response.status_code}",
                provider=self.name,
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise SearchProviderError(f"search request failed: {e}", provider=self.name) from e

        rows = data.get("videos" if search_type == "videos" else "organic") if isinstance(data, dict) else None
        return [dict(row) for row in rows or [] if isinstance(row, dict)]


def _is_transient(exc: BaseException) -> bool:
    return isinstance(exc, SearchProviderError) and exc.is_transient


def _video_hits(rows: Sequence[Dict[str, Any]]) -> List[VideoSearchHit]:
    hits: List[VideoSearchHit] = []
    for row in rows:
        link = str(row.get("link") or "").strip()
        if not link:
            continue
        try:
            hits.append(
                VideoSearchHit(
                    title=str(row.get("title") or "").strip(),
                    link=link,
                    duration=str(row.get("duration") or "").strip() or None,
                    channel=str(row.get("channel") or "").strip() or None,
                )
            )
        except ValidationError:
            continue
    return hits


def _web_hits(rows: Sequence[Dict[str, Any]]) -> List[WebSearchHit]:
    hits: List[WebSearchHit] = []
    for row in rows:
        link = str(row.get("link") or "").strip()
        if not link:
            continue
        try:
            hits.append(
                WebSearchHit(
                    title=str(row.get("title") or "").strip(),
                    link=link,
                    snippet=str(row.get("snippet") or "").strip(),
                )
            )
        except ValidationError:
            continue
    return hits


@dataclass
class SearchStats:
    calls: int = 0
    failures: int = 0
    cache_hits: int = 0
    cache_misses: int = 0


class SearchAdapter:
    """Read-through cached search with one transient retry; failures degrade to no results."""

    def __init__(
        self,
        provider: SearchProvider,
        cache: BaseCache,
        *,
        settings: Optional[SearchSettings] = None,
        writer: Optional[BestEffortWriter] = None,
        short_module_hours: float = 2.0,
    ):
        self.provider = provider
        self.cache = cache
        self.settings = settings or SearchSettings()
        self.writer = writer or BestEffortWriter(cache)
        self.short_module_hours = float(short_module_hours)
        self.stats = SearchStats()

    @staticmethod
    def cache_key(query: str, search_type: str) -> str:
        return BaseCache.make_key("search", search_type, str(query or "").strip().lower())

    async def _call_provider(self, query: str, search_type: SearchType, count: int) -> List[Dict[str, Any]]:
        try:
            return await asyncio.wait_for(
                self.provider.search(query, search_type, count),
                timeout=self.settings.timeout,
            )
        except asyncio.TimeoutError as e:
            raise SearchProviderError("search timed out", provider=getattr(self.provider, "name", None)) from e

    async def _fetch(self, query: str, search_type: SearchType, count: int) -> List[Dict[str, Any]]:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(max(1, int(self.settings.max_attempts))),
            wait=wait_fixed(max(0.0, float(self.settings.retry_wait))),
            retry=retry_if_exception(_is_transient),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._call_provider(query, search_type, count)
        return []

    async def search(self, query: str, search_type: SearchType, count: int) -> List[Dict[str, Any]]:
        key = self.cache_key(query, search_type)
        cached = safe_get(self.cache, key)
        if isinstance(cached, list):
            self.stats.cache_hits += 1
            return cached
        self.stats.cache_misses += 1

        self.stats.calls += 1
        try:
            rows = await self._fetch(query, search_type, count)
        except SearchProviderError as e:
            self.stats.failures += 1
            if e.is_auth_failure:
                logger.warning("search_auth_failure type=%s status=%s", search_type, e.status_code)
            else:
                logger.warning("search_failed type=%s query=%r error=%s", search_type, query, e.message)
            return []
        except Exception as e:
            self.stats.failures += 1
            logger.warning("search_failed type=%s query=%r error=%s", search_type, query, e)
            return []

        self.writer.submit(key, rows, ttl=int(self.settings.cache_ttl_hours) * 3600)
        return rows

    async def search_batch(self, queries: Sequence[str], *, video_count: int, web_count: int) -> SearchBatch:
        """Each query hits the video and the web endpoint concurrently."""
        tasks = []
        for query in queries:
            tasks.append(self.search(query, "videos", video_count))
            tasks.append(self.search(query, "web", web_count))
        results = await asyncio.gather(*tasks) if tasks else []

        video_rows: List[Dict[str, Any]] = []
        web_rows: List[Dict[str, Any]] = []
        for idx, rows in enumerate(results):
            (video_rows if idx % 2 == 0 else web_rows).extend(rows)
        return SearchBatch(videos=_video_hits(video_rows), web=_web_hits(web_rows))

    async def search_topic(self, topic: str, level: str, goal: str, *, fast_mode: bool = False) -> SearchBatch:
        plan = build_topic_query_plan(topic, level, goal)
        cfg = goal_search_config(goal)
        queries = plan.precision[:1] if fast_mode else plan.precision[:2]
        return await self.search_batch(
            queries,
            video_count=min(cfg.video_count, 4 if fast_mode else 5),
            web_count=min(cfg.web_count, 3 if fast_mode else 5),
        )

    async def search_module(self, ctx: ModuleContext, *, fast_mode: bool = False) -> SearchBatch:
        plan = build_module_query_plan(ctx)
        cfg = goal_search_config(ctx.goal)
        queries = list(plan.precision[:1] if fast_mode else plan.precision[:2])
        if not fast_mode and ctx.estimated_hours > self.short_module_hours:
            queries.extend(q for q in plan.expansion[:1] if q not in queries)
        return await self.search_batch(
            queries,
            video_count=min(cfg.video_count, 4 if fast_mode else 5),
            web_count=min(cfg.web_count, 2 if fast_mode else 3),
        )
