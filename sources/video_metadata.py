"""Video metadata provider (YouTube Data API) and the cache-first batch enricher."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

import httpx
from pydantic import ValidationError

from config.settings import VideoSettings
from core import VideoMetadata
from resource_pipeline.durations import parse_iso8601_duration
from storage.cache import BaseCache, BestEffortWriter, safe_get
from utils.exceptions import VideoMetadataError

logger = logging.getLogger(__name__)


class VideoMetadataProvider(Protocol):
    name: str

    async def get_videos(self, video_ids: Sequence[str]) -> List[Dict[str, Any]]:
        ...


async def _http_get_json(url: str, *, params: Dict[str, str], timeout: float) -> Any:
    async with httpx.AsyncClient(timeout=httpx.Timeout(timeout), follow_redirects=True) as client:
        response = await client.get(url, params=params)
        response.raise_for_status()
        return response.json()


def _to_int(value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return 0


class YouTubeDataProvider:
    """`videos.list` with snippet, contentDetails and statistics parts."""

    name = "youtube"

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://www.googleapis.com/youtube/v3",
        timeout: float = 4.0,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def get_videos(self, video_ids: Sequence[str]) -> List[Dict[str, Any]]:
        if not self.api_key:
            raise VideoMetadataError("video api key is not configured", provider=self.name, status_code=403)
        try:
            data = await _http_get_json(
                f"{self.base_url}/videos",
                params={
                    "part": "snippet,contentDetails,statistics",
                    "id": ",".join(video_ids),
                    "key": self.api_key,
                },
                timeout=self.timeout,
            )
        except httpx.HTTPStatusError as e:
            raise VideoMetadataError(
                f"video metadata returned HTTP {e.response.status_code}",
                provider=self.name,
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise VideoMetadataError(f"video metadata request failed: {e}", provider=self.name) from e

        items = data.get("items") if isinstance(data, dict) else None
        rows: List[Dict[str, Any]] = []
        for item in items or []:
            if not isinstance(item, dict):
                continue
            snippet = item.get("snippet") or {}
            details = item.get("contentDetails") or {}
            stats = item.get("statistics") or {}
            rows.append(
                {
                    "id": item.get("id"),
                    "title": snippet.get("title") or "",
                    "channel": snippet.get("channelTitle") or "",
                    "duration": details.get("duration") or "",
                    "viewCount": stats.get("viewCount"),
                    "likeCount": stats.get("likeCount"),
                }
            )
        return rows


def parse_video_row(row: Dict[str, Any]) -> Optional[VideoMetadata]:
    video_id = str(row.get("id") or "").strip()
    if not video_id:
        return None
    return VideoMetadata(
        video_id=video_id,
        title=str(row.get("title") or ""),
        channel=str(row.get("channel") or ""),
        duration_minutes=parse_iso8601_duration(row.get("duration")),
        view_count=_to_int(row.get("viewCount")),
        like_count=_to_int(row.get("likeCount")),
    )


@dataclass
class VideoStats:
    cache_hits: int = 0
    cache_misses: int = 0
    batches: int = 0
    failures: int = 0


class VideoMetadataEnricher:
    """Cache-first lookup by video id; missing ids are fetched in parallel batches."""

    def __init__(
        self,
        provider: VideoMetadataProvider,
        cache: BaseCache,
        *,
        settings: Optional[VideoSettings] = None,
        writer: Optional[BestEffortWriter] = None,
    ):
        self.provider = provider
        self.cache = cache
        self.settings = settings or VideoSettings()
        self.writer = writer or BestEffortWriter(cache)
        self.stats = VideoStats()

    @staticmethod
    def cache_key(video_id: str) -> str:
        return BaseCache.make_key("video", video_id)

    def _read_cached(self, video_id: str) -> Optional[VideoMetadata]:
        payload = safe_get(self.cache, self.cache_key(video_id))
        if not isinstance(payload, dict):
            return None
        try:
            return VideoMetadata.model_validate(payload)
        except ValidationError:
            logger.debug("video_cache_malformed video_id=%s", video_id)
            return None

    async def _fetch_batch(self, batch: List[str]) -> List[VideoMetadata]:
        self.stats.batches += 1
        try:
            rows = await asyncio.wait_for(self.provider.get_videos(batch), timeout=self.settings.timeout)
        except asyncio.TimeoutError:
            self.stats.failures += 1
            logger.warning("video_metadata_timeout batch_size=%s", len(batch))
            return []
        except VideoMetadataError as e:
            self.stats.failures += 1
            if e.status_code == 403:
                logger.warning("video_metadata_quota batch_size=%s", len(batch))
            else:
                logger.warning("video_metadata_failed batch_size=%s error=%s", len(batch), e.message)
            return []

        parsed: List[VideoMetadata] = []
        for row in rows:
            try:
                meta = parse_video_row(row)
            except ValidationError:
                continue
            if meta is not None:
                parsed.append(meta)
        return parsed

    async def fetch(self, video_ids: Iterable[str]) -> Dict[str, VideoMetadata]:
        ids: List[str] = []
        for video_id in video_ids:
            value = str(video_id or "").strip()
            if value and value not in ids:
                ids.append(value)

        found: Dict[str, VideoMetadata] = {}
        missing: List[str] = []
        for video_id in ids:
            cached = self._read_cached(video_id)
            if cached is not None:
                self.stats.cache_hits += 1
                found[video_id] = cached
            else:
                self.stats.cache_misses += 1
                missing.append(video_id)

        if not missing:
            return found

        size = max(1, int(self.settings.batch_size))
        batches = [missing[i:i + size] for i in range(0, len(missing), size)]
        results = await asyncio.gather(*(self._fetch_batch(batch) for batch in batches))

        ttl = int(self.settings.cache_ttl_hours) * 3600
        for metas in results:
            for meta in metas:
                found[meta.video_id] = meta
                self.writer.submit(self.cache_key(meta.video_id), meta.model_dump(), ttl=ttl)
        logger.debug("video_metadata_done requested=%s found=%s", len(ids), len(found))
        return found
