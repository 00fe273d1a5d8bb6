"""
Custom Exceptions
Exception hierarchy for the roadmap resource pipeline
"""
from typing import Optional


class PathfinderError(Exception):
    """Base error for the resource pipeline"""

    def __init__(self, message: str, details: dict = None):
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(PathfinderError):
    """Configuration error"""
    pass


class InvalidRoadmapInputError(PathfinderError):
    """Top-level input is missing or malformed (no topic, no modules)"""
    pass


_AUTH_STATUS_CODES = frozenset({401, 402, 403})


class ProviderError(PathfinderError):
    """External search / metadata provider failure"""

    def __init__(
        self,
        message: str,
        provider: str = None,
        status_code: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(message, kwargs)
        self.provider = provider
        self.status_code = status_code

    @property
    def is_auth_failure(self) -> bool:
        """401/402/403: auth, billing or quota. Never retried."""
        return self.status_code in _AUTH_STATUS_CODES

    @property
    def is_transient(self) -> bool:
        """Network errors (no status), 429 and 5xx are worth one retry."""
        if self.status_code is None:
            return True
        return self.status_code == 429 or self.status_code >= 500


class SearchProviderError(ProviderError):
    """Web/video search provider error"""
    pass


class VideoMetadataError(ProviderError):
    """Video metadata provider error"""
    pass


class LLMError(PathfinderError):
    """LLM call error"""

    def __init__(self, message: str, provider: str = None, **kwargs):
        super().__init__(message, kwargs)
        self.provider = provider
