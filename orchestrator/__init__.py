"""Roadmap call sites over the shared resource pipeline."""

from .roadmap_service import RoadmapResourceService, build_service, validate_request

__all__ = [
    "RoadmapResourceService",
    "build_service",
    "validate_request",
]
