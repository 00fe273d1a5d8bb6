"""Candidate ingestion: merge/dedupe raw search hits and enrich videos with metadata."""

from __future__ import annotations

import re
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from core import CandidateResource, ModuleContext, SearchBatch, VideoMetadata, VideoSearchHit, WebSearchHit

from .classify import (
    VIDEO_METADATA_SOURCE,
    detect_resource_type,
    estimate_article_minutes,
    is_discussion_or_meta,
    is_disqualified,
    looks_like_listing_page,
)
from .durations import format_view_count, parse_duration_to_minutes
from .similarity import hybrid_similarity
from .urls import ExclusionSet, extract_video_id, is_allowed_url, is_youtube_url, normalize_url

_HASHTAG_RE = re.compile(r"#[a-z0-9_]+")
_SOCIAL_SHORTS_RE = re.compile(r"\b(tiktok|reels|shorts|vlog|trend|viral)\b", flags=re.IGNORECASE)


def _passes_ingestion_gates(url: str, title: str, snippet: str, exclusions: ExclusionSet) -> bool:
    if exclusions.contains(url):
        return False
    if not is_allowed_url(url):
        return False
    if is_discussion_or_meta(url, title, snippet):
        return False
    if is_disqualified(title, url):
        return False
    return True


def merge_and_deduplicate(
    module_title: str,
    topic_batch: Optional[SearchBatch],
    module_batch: Optional[SearchBatch],
    exclusions: Optional[ExclusionSet] = None,
) -> List[CandidateResource]:
    """One candidate per normalized URL; repeat sightings bump `appearances_count`."""
    exclusions = exclusions or ExclusionSet()
    by_url: Dict[str, CandidateResource] = {}

    def _bump(url: str) -> None:
        existing = by_url[url]
        by_url[url] = existing.model_copy(update={"appearances_count": existing.appearances_count + 1})

    def _add_video(hit: VideoSearchHit) -> None:
        if not hit.link:
            return
        url = normalize_url(hit.link)
        title = hit.title or "Video Tutorial"
        if not _passes_ingestion_gates(url, title, "", exclusions):
            return
        if url in by_url:
            _bump(url)
            return
        by_url[url] = CandidateResource(
            title=title,
            url=url,
            type="video",
            estimated_minutes=parse_duration_to_minutes(hit.duration),
            description=f"Video on {module_title}",
            channel=hit.channel or None,
        )

    def _add_web(hit: WebSearchHit) -> None:
        if not hit.link:
            return
        url = normalize_url(hit.link)
        title = hit.title or "Learning Resource"
        snippet = hit.snippet or ""
        if not _passes_ingestion_gates(url, title, snippet, exclusions):
            return
        if is_youtube_url(url):
            return
        if url in by_url:
            _bump(url)
            return
        if looks_like_listing_page(url, title, snippet):
            return
        by_url[url] = CandidateResource(
            title=title,
            url=url,
            type=detect_resource_type(hit.link),
            estimated_minutes=estimate_article_minutes(snippet),
            description=snippet or f"Resource for {module_title}",
        )

    for batch in (topic_batch, module_batch):
        if batch is None:
            continue
        for video in batch.videos:
            _add_video(video)
        for web in batch.web:
            _add_web(web)
    return list(by_url.values())


def collect_video_ids(candidates: Iterable[CandidateResource]) -> List[str]:
    ids: List[str] = []
    for candidate in candidates:
        if candidate.type != "video":
            continue
        video_id = extract_video_id(candidate.url)
        if video_id and video_id not in ids:
            ids.append(video_id)
    return ids


def is_video_likely_off_topic(ctx: ModuleContext, title: str, channel: str) -> bool:
    combined = f"{title} {channel}".lower()
    similarity = hybrid_similarity(ctx.module_text.lower(), combined)
    hashtags = len(_HASHTAG_RE.findall(combined))
    social_signal = bool(_SOCIAL_SHORTS_RE.search(combined))
    anchors = [a.lower() for a in ctx.anchor_terms if len(a) > 2]
    has_anchor = any(anchor in combined for anchor in anchors)
    if has_anchor:
        return False
    if similarity < 0.10:
        return True
    if hashtags >= 3 and similarity < 0.16:
        return True
    if social_signal and similarity < 0.20:
        return True
    return False


def enrich_candidates(
    candidates: Sequence[CandidateResource],
    metadata: Mapping[str, VideoMetadata],
    ctx: ModuleContext,
) -> List[CandidateResource]:
    """Attach video metadata; drop enriched videos that turn out to be discussion or off-topic."""
    enriched: List[CandidateResource] = []
    for candidate in candidates:
        if candidate.type != "video":
            enriched.append(candidate)
            continue
        video_id = extract_video_id(candidate.url)
        meta = metadata.get(video_id) if video_id else None
        if meta is None:
            enriched.append(candidate)
            continue

        title = meta.title or candidate.title
        if is_discussion_or_meta(candidate.url, title, ""):
            continue
        if is_video_likely_off_topic(ctx, title, meta.channel or ""):
            continue

        minutes = max(1, meta.duration_minutes or candidate.estimated_minutes)
        enriched.append(
            candidate.model_copy(
                update={
                    "title": title,
                    "estimated_minutes": minutes,
                    "channel": meta.channel or candidate.channel,
                    "view_count": meta.view_count,
                    "like_count": meta.like_count,
                    "source": VIDEO_METADATA_SOURCE,
                    "quality_signal": f"{format_view_count(meta.view_count)} views · {meta.channel} · {meta.duration_minutes} min",
                }
            )
        )
    return enriched
