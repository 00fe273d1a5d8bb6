"""
Settings Configuration
Pydantic-validated settings for search, video metadata, caching, LLM and pipeline limits
"""
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class SearchSettings(BaseSettings):
    """Web/video search provider (Serper-compatible)"""
    api_key: Optional[str] = Field(default=None, description="Serper API key")
    base_url: str = Field(default="https://google.serper.dev", description="Search API base URL")
    timeout: float = Field(default=8.0, description="Per-request timeout (seconds)")
    max_attempts: int = Field(default=2, description="Attempts per query on transient failure")
    retry_wait: float = Field(default=0.5, description="Fixed backoff between attempts (seconds)")
    cache_ttl_hours: int = Field(default=48, description="Search result cache TTL (hours)")

    class Config:
        env_prefix = "SERPER_"


class VideoSettings(BaseSettings):
    """Video metadata provider (YouTube Data API)"""
    api_key: Optional[str] = Field(default=None, description="YouTube Data API key")
    base_url: str = Field(default="https://www.googleapis.com/youtube/v3", description="Video API base URL")
    timeout: float = Field(default=4.0, description="Per-batch timeout (seconds)")
    batch_size: int = Field(default=50, description="Video IDs per metadata request")
    cache_ttl_hours: int = Field(default=168, description="Video metadata cache TTL (hours)")

    class Config:
        env_prefix = "YOUTUBE_"


class GeneralSettings(BaseSettings):
    """General settings"""
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Optional log file under logs/")


class StorageSettings(BaseSettings):
    """Cache storage"""
    cache_provider: str = Field(default="memory", description="Cache backend: memory, disk")
    cache_path: str = Field(default="./data/cache", description="Disk cache directory")
    cache_max_size: int = Field(default=5000, description="Max entries for the memory cache")

    class Config:
        env_prefix = "STORAGE_"


class LLMSettings(BaseSettings):
    """LLM provider used by the optional re-ranker"""
    provider: str = Field(default="openai", description="LLM provider: openai, anthropic")
    model_name: Optional[str] = Field(default=None, description="Model name (provider default when empty)")
    base_url: Optional[str] = Field(default=None, description="OpenAI-compatible gateway URL")
    temperature: float = Field(default=0.2, description="Sampling temperature")
    max_tokens: int = Field(default=2048, description="Max completion tokens")

    openai_api_key: Optional[str] = Field(default=None, description="OpenAI API Key")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API Key")

    class Config:
        env_prefix = "LLM_"


class RerankerSettings(BaseSettings):
    """Optional LLM re-ranking layer"""
    enabled: bool = Field(default=False, description="Use the LLM re-ranker when a provider key is set")
    timeout: float = Field(default=12.0, description="Per-module re-rank timeout (seconds)")
    candidates_per_module: int = Field(default=18, description="Short-list size handed to the ranker")
    selection_bonus: int = Field(default=12, description="Fit bonus for LLM-selected candidates")

    class Config:
        env_prefix = "RERANKER_"


class PipelineSettings(BaseSettings):
    """Filtering and allocation limits"""
    similarity_threshold: float = Field(default=0.14, description="Min hybrid similarity to keep a candidate")
    module_budget_tolerance: float = Field(default=1.05, description="Per-module minute cap multiplier")
    global_budget_ratio: float = Field(default=0.85, description="Share of total hours usable by resources")
    coverage_target_ratio: float = Field(default=0.6, description="Repair pass fills modules up to this share")
    rescue_max_items: int = Field(default=2, description="Items taken by the rescue pass")
    short_module_hours: float = Field(default=2.0, description="Modules at or below skip expansion queries")
    fast_mode: bool = Field(default=False, description="Trim query fan-out to save quota")

    class Config:
        env_prefix = "PIPELINE_"


class Settings(BaseSettings):
    """Aggregate of all settings groups"""

    search: SearchSettings = Field(default_factory=SearchSettings)
    video: VideoSettings = Field(default_factory=VideoSettings)
    general: GeneralSettings = Field(default_factory=GeneralSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    reranker: RerankerSettings = Field(default_factory=RerankerSettings)
    pipeline: PipelineSettings = Field(default_factory=PipelineSettings)

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    @classmethod
    def load_from_env_file(cls, env_path: Optional[Path] = None) -> "Settings":
        """Load settings, reading config/.env first when it exists."""
        if env_path is None:
            env_path = Path(__file__).parent / ".env"

        if env_path.exists():
            from dotenv import load_dotenv
            load_dotenv(env_path)

        return cls(
            search=SearchSettings(),
            video=VideoSettings(),
            general=GeneralSettings(),
            storage=StorageSettings(),
            llm=LLMSettings(),
            reranker=RerankerSettings(),
            pipeline=PipelineSettings(),
        )


@lru_cache()
def get_settings() -> Settings:
    """Global settings singleton"""
    return Settings.load_from_env_file()


def get_search_settings() -> SearchSettings:
    return get_settings().search


def get_video_settings() -> VideoSettings:
    return get_settings().video


def get_storage_settings() -> StorageSettings:
    return get_settings().storage


def get_llm_settings() -> LLMSettings:
    return get_settings().llm


def get_reranker_settings() -> RerankerSettings:
    return get_settings().reranker


def get_pipeline_settings() -> PipelineSettings:
    return get_settings().pipeline
