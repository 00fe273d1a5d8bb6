"""Resource discovery stages: similarity, classification, anchors, scoring, selection and allocation."""

from .allocator import AllocationResult, ResourceAllocator
from .anchors import apply_stage4_filter, build_module_context, derive_fallback_anchor_terms, generate_module_anchors
from .candidates import enrich_candidates, merge_and_deduplicate
from .classify import classify_authority_tier, detect_resource_type, is_garbage, max_resources_for_module
from .pipeline import ResourcePipeline
from .query_plan import QueryPlan, build_module_query_plan, build_topic_query_plan
from .reranker import HeuristicRanker, LLMReranker, RankOutcome, ResourceRanker, build_ranker, parse_llm_json
from .schedule import enforce_time_windows, redistribute_day_ranges
from .scoring import context_fit_score, score_candidate, score_candidates
from .selection import apply_diversity_caps, build_shortlist
from .similarity import embed, hybrid_similarity, lexical_similarity
from .urls import ExclusionSet, extract_video_id, is_allowed_url, normalize_url

__all__ = [
    "AllocationResult",
    "ExclusionSet",
    "HeuristicRanker",
    "LLMReranker",
    "QueryPlan",
    "RankOutcome",
    "ResourceAllocator",
    "ResourcePipeline",
    "ResourceRanker",
    "apply_diversity_caps",
    "apply_stage4_filter",
    "build_module_context",
    "build_module_query_plan",
    "build_ranker",
    "build_shortlist",
    "build_topic_query_plan",
    "classify_authority_tier",
    "context_fit_score",
    "derive_fallback_anchor_terms",
    "detect_resource_type",
    "embed",
    "enforce_time_windows",
    "enrich_candidates",
    "extract_video_id",
    "generate_module_anchors",
    "hybrid_similarity",
    "is_allowed_url",
    "is_garbage",
    "lexical_similarity",
    "max_resources_for_module",
    "merge_and_deduplicate",
    "normalize_url",
    "parse_llm_json",
    "redistribute_day_ranges",
    "score_candidate",
    "score_candidates",
]
