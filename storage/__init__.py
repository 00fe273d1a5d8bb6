"""
Storage Module
TTL caches shared by the search adapter and the video metadata enricher
"""
from .cache import (
    BaseCache,
    BestEffortWriter,
    MemoryCache,
    DiskCache,
    get_cache,
    safe_get,
)

__all__ = [
    "BaseCache",
    "BestEffortWriter",
    "MemoryCache",
    "DiskCache",
    "get_cache",
    "safe_get",
]
