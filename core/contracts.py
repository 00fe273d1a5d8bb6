"""Canonical data contracts for the roadmap resource pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Set, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator


ResourceType = Literal["video", "article", "documentation", "tutorial", "practice"]
SearchType = Literal["web", "videos"]


class SkillLevel(str, Enum):
    """Learner skill level."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class LearningGoal(str, Enum):
    """What the learner wants out of the roadmap."""

    CONCEPTUAL = "conceptual"
    HANDS_ON = "hands_on"
    QUICK_OVERVIEW = "quick_overview"
    DEEP_MASTERY = "deep_mastery"


class AuthorityTier(str, Enum):
    """Coarse source trust classes, each with a fixed score prior."""

    OFFICIAL_DOCS = "OFFICIAL_DOCS"
    VENDOR_DOCS = "VENDOR_DOCS"
    UNIVERSITY_DIRECT = "UNIVERSITY_DIRECT"
    EDUCATION_DOMAIN = "EDUCATION_DOMAIN"
    YOUTUBE_TRUSTED = "YOUTUBE_TRUSTED"
    BLOG = "BLOG"
    YOUTUBE_UNKNOWN = "YOUTUBE_UNKNOWN"
    COMMUNITY = "COMMUNITY"
    UNKNOWN = "UNKNOWN"


class Resource(BaseModel):
    """Persisted, user-facing learning resource attached to a module."""

    title: str
    url: str
    type: ResourceType
    estimated_minutes: int = Field(default=15, ge=0)
    description: str = ""
    source: Optional[str] = None
    channel: Optional[str] = None
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    quality_signal: Optional[str] = None
    why_selected: Optional[str] = None
    # Segment continuation across modules: shape only, never populated by allocation.
    span_plan: Optional[Dict[str, Any]] = None
    is_continuation: Optional[bool] = None
    continuation_of: Optional[str] = None

    model_config = ConfigDict(extra="allow")


class Module(BaseModel):
    """Curriculum module. The pipeline only writes `resources` (and `anchor_terms` on adapt)."""

    id: str
    title: str
    description: str = ""
    estimated_hours: float = Field(default=1.0, ge=0)
    day_start: Optional[int] = None
    day_end: Optional[int] = None
    week: Optional[int] = None
    prerequisites: List[str] = Field(default_factory=list)
    learning_objectives: List[str] = Field(default_factory=list)
    resources: List[Resource] = Field(default_factory=list)
    quiz: List[Dict[str, Any]] = Field(default_factory=list)
    anchor_terms: Optional[List[str]] = None

    model_config = ConfigDict(extra="allow")

    @field_validator("id", mode="before")
    @classmethod
    def _id_text(cls, value: Any) -> str:
        text = str(value if value is not None else "").strip()
        if not text:
            raise ValueError("module id is required")
        return text

    @field_validator("title", mode="before")
    @classmethod
    def _title_text(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("module title is required")
        return text

    @field_validator("description", mode="before")
    @classmethod
    def _description_text(cls, value: Any) -> str:
        return str(value or "").strip()

    @field_validator("learning_objectives", "prerequisites", mode="before")
    @classmethod
    def _text_list(cls, value: Any) -> List[str]:
        if value is None:
            return []
        if isinstance(value, str):
            value = [value]
        return [str(v).strip() for v in value if str(v or "").strip()]


class RoadmapRequest(BaseModel):
    """Input contract for one pipeline invocation."""

    topic: str
    skill_level: SkillLevel = Field(default=SkillLevel.BEGINNER, alias="skillLevel")
    learning_goal: LearningGoal = Field(default=LearningGoal.CONCEPTUAL, alias="learningGoal")
    total_hours: float = Field(default=10.0, gt=0, alias="totalHours")
    hours_per_day: float = Field(default=1.0, gt=0, alias="hoursPerDay")
    modules: List[Module]
    completed_module_ids: Set[str] = Field(default_factory=set, alias="completedModuleIds")
    excluded_urls: Set[str] = Field(default_factory=set, alias="excludedUrls")
    excluded_domains: Set[str] = Field(default_factory=set, alias="excludedDomains")

    model_config = ConfigDict(populate_by_name=True)

    @field_validator("topic", mode="before")
    @classmethod
    def _topic_text(cls, value: Any) -> str:
        text = str(value or "").strip()
        if not text:
            raise ValueError("topic is required")
        return text

    @field_validator("modules")
    @classmethod
    def _non_empty_modules(cls, value: List[Module]) -> List[Module]:
        if not value:
            raise ValueError("at least one module is required")
        return value

    @field_validator("completed_module_ids", "excluded_urls", "excluded_domains", mode="before")
    @classmethod
    def _text_set(cls, value: Any) -> Set[str]:
        if value is None:
            return set()
        if isinstance(value, str):
            value = [value]
        return {str(v).strip() for v in value if str(v or "").strip()}


class WebSearchHit(BaseModel):
    title: str = ""
    link: str
    snippet: str = ""


class VideoSearchHit(BaseModel):
    title: str = ""
    link: str
    duration: Optional[str] = None
    channel: Optional[str] = None


class SearchBatch(BaseModel):
    """Video and web hits gathered for one scope (topic-wide or one module)."""

    videos: List[VideoSearchHit] = Field(default_factory=list)
    web: List[WebSearchHit] = Field(default_factory=list)


class VideoMetadata(BaseModel):
    """Per-video metadata, cached by video id."""

    video_id: str
    title: str = ""
    channel: str = ""
    duration_minutes: int = 0
    view_count: int = 0
    like_count: int = 0


class CandidateResource(BaseModel):
    """A search hit travelling through the pipeline; stages return annotated copies."""

    title: str
    url: str
    type: ResourceType
    estimated_minutes: int = 15
    description: str = ""
    source: Optional[str] = None
    channel: Optional[str] = None
    view_count: Optional[int] = None
    like_count: Optional[int] = None
    quality_signal: Optional[str] = None
    appearances_count: int = 1
    authority_tier: AuthorityTier = AuthorityTier.UNKNOWN
    authority_score: int = 0
    authority_score_norm: float = 0.0
    reason_flags: List[str] = Field(default_factory=list)
    scope_penalty: Optional[int] = None
    context_fit_score: float = 0.0
    why_selected: Optional[str] = None

    @property
    def combined_score(self) -> float:
        return float(self.context_fit_score) + float(self.authority_score)

    def to_resource(self) -> Resource:
        return Resource(
            title=self.title,
            url=self.url,
            type=self.type,
            estimated_minutes=max(0, int(self.estimated_minutes)),
            description=self.description,
            source=self.source,
            channel=self.channel,
            view_count=self.view_count,
            like_count=self.like_count,
            quality_signal=self.quality_signal,
            why_selected=self.why_selected,
        )


@dataclass(frozen=True)
class ModuleContext:
    """Per-module, per-run view used by every filtering and scoring stage."""

    module_id: str
    topic: str
    title: str
    description: str
    learning_objectives: Tuple[str, ...]
    goal: str
    level: str
    estimated_hours: float
    budget_minutes: int
    anchor_terms: Tuple[str, ...] = field(default_factory=tuple)

    @property
    def module_text(self) -> str:
        return " ".join(
            [self.topic, self.title, self.description, " ".join(self.learning_objectives)]
        )


class ModuleDiagnostics(BaseModel):
    """Per-module stage counts for one run."""

    module_id: str
    title: str = ""
    in_scope: bool = True
    candidates_found: int = 0
    after_enrichment: int = 0
    after_filter: int = 0
    after_garbage: int = 0
    shortlisted: int = 0
    assigned: int = 0
    assigned_minutes: int = 0
    budget_minutes: int = 0
    ranker: Optional[str] = None
    ranker_fell_back: bool = False
    rescued: bool = False
    zero_resources: bool = False


class PipelineDiagnostics(BaseModel):
    """Structured observability record returned with every run."""

    run_id: str
    fast_mode: bool = False
    modules: List[ModuleDiagnostics] = Field(default_factory=list)
    total_assigned: int = 0
    total_minutes: int = 0
    usable_minutes: int = 0
    search_calls: int = 0
    search_failures: int = 0
    search_cache_hits: int = 0
    search_cache_misses: int = 0
    search_cache_hit_rate: float = 0.0
    video_cache_hits: int = 0
    video_cache_misses: int = 0
    video_cache_hit_rate: float = 0.0
    video_failures: int = 0
    zero_resource_module_ids: List[str] = Field(default_factory=list)
    elapsed_ms: int = 0


class PipelineResult(BaseModel):
    modules: List[Module]
    diagnostics: PipelineDiagnostics
