"""
Utils Module
Logging setup and the exception hierarchy
"""
from .logger import configure_logging, setup_logger
from .exceptions import (
    PathfinderError,
    ConfigurationError,
    InvalidRoadmapInputError,
    ProviderError,
    SearchProviderError,
    VideoMetadataError,
    LLMError,
)

__all__ = [
    "configure_logging",
    "setup_logger",
    "PathfinderError",
    "ConfigurationError",
    "InvalidRoadmapInputError",
    "ProviderError",
    "SearchProviderError",
    "VideoMetadataError",
    "LLMError",
]
