"""
Configuration Management Module
Provider credentials, timeouts, cache TTLs and pipeline limits
"""
from .settings import (
    Settings,
    get_settings,
    get_search_settings,
    get_video_settings,
    get_storage_settings,
    get_llm_settings,
    get_reranker_settings,
    get_pipeline_settings,
)

__all__ = [
    "Settings",
    "get_settings",
    "get_search_settings",
    "get_video_settings",
    "get_storage_settings",
    "get_llm_settings",
    "get_reranker_settings",
    "get_pipeline_settings",
]
