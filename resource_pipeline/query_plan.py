"""Template-based search query plans per (goal, level) for topic and module scopes."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from core import ModuleContext

from .anchors import select_top_anchors
from .classify import detect_certification_intent

MAX_QUERY_LENGTH = 180


@dataclass(frozen=True)
class GoalSearchConfig:
    query_modifiers: Tuple[str, ...]
    video_count: int
    web_count: int
    semantic_hint: str
    intent_tokens: Tuple[str, ...]
    outcome_tokens: Tuple[str, ...]


@dataclass
class QueryPlan:
    precision: List[str] = field(default_factory=list)
    expansion: List[str] = field(default_factory=list)


_GOAL_CONFIGS: Dict[str, GoalSearchConfig] = {
    "conceptual": GoalSearchConfig(
        query_modifiers=("explained", "concepts", "theory", "visual explanation", "lecture", "guide"),
        video_count=8,
        web_count=8,
        semantic_hint="mental model and concept explanation with examples",
        intent_tokens=("mental model", "concept explanation", "tradeoffs"),
        outcome_tokens=("deep explanation", "why this works", "design intuition"),
    ),
    "hands_on": GoalSearchConfig(
        query_modifiers=("tutorial", "build", "project", "practice", "hands-on", "step by step", "code along"),
        video_count=8,
        web_count=6,
        semantic_hint="project based practical walkthrough",
        intent_tokens=("implementation", "code walkthrough", "real project"),
        outcome_tokens=("build from scratch", "hands-on lab", "practical exercise"),
    ),
    "quick_overview": GoalSearchConfig(
        query_modifiers=("crash course", "full guide", "start to finish", "top 10", "overview", "essentials"),
        video_count=6,
        web_count=6,
        semantic_hint="high level summary and key takeaways",
        intent_tokens=("key ideas", "summary", "what matters most"),
        outcome_tokens=("fast understanding", "cheat sheet", "essentials only"),
    ),
    "deep_mastery": GoalSearchConfig(
        query_modifiers=("comprehensive", "advanced", "in depth", "research paper", "full course", "masterclass"),
        video_count=6,
        web_count=10,
        semantic_hint="deep dive with advanced tradeoffs and references",
        intent_tokens=("advanced patterns", "production scale", "optimization"),
        outcome_tokens=("expert level", "edge cases", "system tradeoffs"),
    ),
}
_DEFAULT_GOAL_CONFIG = GoalSearchConfig(
    query_modifiers=("tutorial", "guide"),
    video_count=6,
    web_count=6,
    semantic_hint="clear explanation practical relevance",
    intent_tokens=("practical", "conceptual clarity"),
    outcome_tokens=("learn effectively", "apply confidently"),
)
_LEVEL_MODIFIERS = {
    "beginner": "for beginners introduction",
    "intermediate": "intermediate practical patterns",
    "advanced": "advanced best practices optimization",
}


def goal_search_config(goal: str) -> GoalSearchConfig:
    return _GOAL_CONFIGS.get(str(goal or "").strip().lower(), _DEFAULT_GOAL_CONFIG)


def level_search_modifier(level: str) -> str:
    return _LEVEL_MODIFIERS.get(str(level or "").strip().lower(), "")


def _pick(values: Sequence[str], idx: int) -> str:
    return values[idx] if 0 <= idx < len(values) else ""


def build_query(parts: Sequence[Optional[str]]) -> str:
    raw = " ".join(str(part) for part in parts if part)
    return re.sub(r"\s+", " ", raw).strip()[:MAX_QUERY_LENGTH]


def _dedupe(queries: Sequence[str]) -> List[str]:
    out: List[str] = []
    for query in queries:
        if query and query not in out:
            out.append(query)
    return out


def build_topic_query_plan(topic: str, level: str, goal: str) -> QueryPlan:
    cfg = goal_search_config(goal)
    level_mod = level_search_modifier(level)
    cert_mod = "certification objective interview prep" if detect_certification_intent(topic) else ""
    precision = [
        build_query([topic, _pick(cfg.intent_tokens, 0), _pick(cfg.query_modifiers, 0), level_mod, cfg.semantic_hint]),
        build_query([topic, _pick(cfg.intent_tokens, 1), _pick(cfg.query_modifiers, 1), _pick(cfg.outcome_tokens, 0), cert_mod]),
    ]
    expansion = [
        build_query([topic, _pick(cfg.intent_tokens, 2), _pick(cfg.query_modifiers, 2), level_mod]),
        build_query([topic, _pick(cfg.query_modifiers, 3) or "guide", "direct tutorial article"]),
    ]
    return QueryPlan(precision=_dedupe(precision), expansion=_dedupe(expansion))


def build_module_query_plan(ctx: ModuleContext) -> QueryPlan:
    """Module-scoped queries with the top-3 most specific anchors injected."""
    cfg = goal_search_config(ctx.goal)
    level_mod = level_search_modifier(ctx.level)
    objective = next((o.strip() for o in ctx.learning_objectives if o and o.strip()), "")

    seed = select_top_anchors(ctx.anchor_terms, 3)
    if not seed:
        seed = select_top_anchors(f"{ctx.title} {objective}".split(), 3)
    anchors = " ".join(seed)

    cert_intent = detect_certification_intent(f"{ctx.topic} {ctx.title}")
    cert_mod = "interview question certification objective" if cert_intent else "interview question"
    fallback_modifier = "walkthrough" if ctx.goal == "hands_on" else "guide"

    precision = [
        build_query([ctx.title, ctx.topic, anchors, _pick(cfg.intent_tokens, 0), _pick(cfg.query_modifiers, 0), level_mod]),
        build_query(
            [
                ctx.title,
                ctx.topic,
                anchors,
                objective,
                _pick(cfg.outcome_tokens, 0),
                _pick(cfg.query_modifiers, 1),
                cert_mod,
            ]
        ),
    ]
    expansion = [
        build_query([ctx.title, ctx.topic, _pick(cfg.intent_tokens, 1), _pick(cfg.query_modifiers, 2), level_mod]),
        build_query(
            [
                ctx.title,
                ctx.topic,
                _pick(cfg.intent_tokens, 2),
                _pick(cfg.query_modifiers, 3) or fallback_modifier,
                "direct learning resource",
            ]
        ),
    ]
    return QueryPlan(precision=_dedupe(precision), expansion=_dedupe(expansion))
