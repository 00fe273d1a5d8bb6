"""External search and video metadata providers."""

from .search import SearchAdapter, SearchProvider, SearchStats, SerperSearchProvider
from .video_metadata import (
    VideoMetadataEnricher,
    VideoMetadataProvider,
    VideoStats,
    YouTubeDataProvider,
    parse_video_row,
)

__all__ = [
    "SearchAdapter",
    "SearchProvider",
    "SearchStats",
    "SerperSearchProvider",
    "VideoMetadataEnricher",
    "VideoMetadataProvider",
    "VideoStats",
    "YouTubeDataProvider",
    "parse_video_row",
]
