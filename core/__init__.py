"""Core contracts and shared types for the resource pipeline."""

from .contracts import (
    AuthorityTier,
    CandidateResource,
    LearningGoal,
    Module,
    ModuleContext,
    ModuleDiagnostics,
    PipelineDiagnostics,
    PipelineResult,
    Resource,
    ResourceType,
    RoadmapRequest,
    SearchBatch,
    SearchType,
    SkillLevel,
    VideoMetadata,
    VideoSearchHit,
    WebSearchHit,
)

__all__ = [
    "AuthorityTier",
    "CandidateResource",
    "LearningGoal",
    "Module",
    "ModuleContext",
    "ModuleDiagnostics",
    "PipelineDiagnostics",
    "PipelineResult",
    "Resource",
    "ResourceType",
    "RoadmapRequest",
    "SearchBatch",
    "SearchType",
    "SkillLevel",
    "VideoMetadata",
    "VideoSearchHit",
    "WebSearchHit",
]
