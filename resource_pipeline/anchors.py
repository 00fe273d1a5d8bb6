"""Module anchor terms, anchor gating, scope penalty and the four-stage candidate filter."""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Sequence

from core import CandidateResource, Module, ModuleContext, RoadmapRequest

from .classify import is_disqualified
from .similarity import hybrid_similarity

logger = logging.getLogger(__name__)

MAX_ANCHOR_TERMS = 8
SIMILARITY_THRESHOLD = 0.14

_STOP_WORDS = frozenset(
    {
        "the", "and", "for", "with", "this", "that", "from", "into", "your", "will",
        "how", "what", "why", "when", "learn", "understand", "explore", "using",
        "introduction", "getting", "started", "basics", "overview", "module",
        "concepts", "working", "building", "creating", "implementing", "advanced",
        "intermediate", "beginner", "fundamental", "essential", "key", "core",
        "deep", "dive", "part", "section", "chapter", "unit", "lesson",
    }
)
GENERIC_QUERY_WORDS = frozenset(
    {
        "learn", "learning", "guide", "overview", "basics", "introduction",
        "tutorial", "complete", "course", "roadmap", "resources", "best",
    }
)
_BROAD_SCOPE_SIGNALS = (
    "roadmap",
    "full course",
    "complete guide",
    "overview",
    "beginner to advanced",
    "crash course",
    "ultimate guide",
    "everything you need",
    r"learn .+ in \d+",
    "zero to hero",
    "complete tutorial",
    "all you need to know",
)
_INTRO_MODULE_RE = re.compile(r"introduction|overview|getting started|basics|fundamentals|what is", flags=re.IGNORECASE)
_ANCHOR_WORD_STRIP_RE = re.compile(r"[^a-z0-9\s\-_./]")
_TITLE_WORD_STRIP_RE = re.compile(r"[^a-z0-9\s-]")
_ANCHOR_SCORE_STRIP_RE = re.compile(r"[^a-z0-9+#./\s_-]")
_TECHNICAL_CHAR_RE = re.compile(r"[0-9+#./_-]")


def _compile_signal(pattern: str):
    try:
        return re.compile(pattern, flags=re.IGNORECASE)
    except re.error:
        return None


_BROAD_SCOPE_PATTERNS = [(signal, _compile_signal(signal)) for signal in _BROAD_SCOPE_SIGNALS]


def generate_module_anchors(
    title: str,
    description: str = "",
    learning_objectives: Sequence[str] = (),
    topic: str = "",
    explicit_terms: Optional[Sequence[str]] = None,
) -> List[str]:
    """Upstream anchor terms win; otherwise derive distinguishing words and title bigrams."""
    if explicit_terms:
        terms = [str(term or "").lower().strip() for term in explicit_terms]
        return [term for term in terms if term]

    all_text = f"{title} {description or ''} {' '.join(learning_objectives or [])}".lower()
    words = [
        word
        for word in _ANCHOR_WORD_STRIP_RE.sub(" ", all_text).split()
        if len(word) > 2 and word not in _STOP_WORDS
    ]

    title_words = [w for w in _TITLE_WORD_STRIP_RE.sub(" ", str(title or "").lower()).split() if len(w) > 1]
    bigrams = [
        f"{left} {right}"
        for left, right in zip(title_words, title_words[1:])
        if left not in _STOP_WORDS or right not in _STOP_WORDS
    ]

    topic_lower = str(topic or "").lower()
    anchors: List[str] = []
    for term in bigrams + words:
        if term in anchors or term == topic_lower or len(term) <= 2:
            continue
        anchors.append(term)
    return anchors[:MAX_ANCHOR_TERMS]


def derive_fallback_anchor_terms(module: Module, limit: int = 6) -> List[str]:
    """Plain title+description words longer than three chars, used to backfill missing anchor_terms."""
    text = f"{module.title} {module.description}".lower()
    terms: List[str] = []
    for word in re.sub(r"[^a-z0-9\s]", " ", text).split():
        if len(word) > 3 and word not in terms:
            terms.append(word)
        if len(terms) >= limit:
            break
    return terms


def build_module_context(module: Module, request: RoadmapRequest) -> ModuleContext:
    anchors = generate_module_anchors(
        module.title,
        module.description,
        module.learning_objectives,
        request.topic,
        explicit_terms=module.anchor_terms,
    )
    return ModuleContext(
        module_id=module.id,
        topic=request.topic,
        title=module.title,
        description=module.description,
        learning_objectives=tuple(module.learning_objectives),
        goal=request.learning_goal.value,
        level=request.skill_level.value,
        estimated_hours=float(module.estimated_hours),
        budget_minutes=int(round(float(module.estimated_hours) * 60)),
        anchor_terms=tuple(anchors),
    )


def passes_anchor_gate(candidate: CandidateResource, anchors: Iterable[str]) -> bool:
    terms = [term for term in anchors if term]
    if not terms:
        return True
    text = f"{candidate.title} {candidate.description}".lower()
    return any(term in text for term in terms)


def has_broad_scope_signal(text: str) -> bool:
    lowered = str(text or "").lower()
    for signal, pattern in _BROAD_SCOPE_PATTERNS:
        if pattern is not None:
            if pattern.search(lowered):
                return True
        elif signal in lowered:
            return True
    return False


def compute_scope_penalty(candidate: CandidateResource, ctx: ModuleContext) -> int:
    """0, 10 or 15 points for broad "full course" style content in a narrow module."""
    if not has_broad_scope_signal(f"{candidate.title} {candidate.description}"):
        return 0
    if _INTRO_MODULE_RE.search(ctx.title) or ctx.goal == "quick_overview":
        return 0
    if ctx.level in {"intermediate", "advanced"} or ctx.goal == "deep_mastery":
        return 15
    return 10


def candidate_text(candidate: CandidateResource) -> str:
    return f"{candidate.title} {candidate.description} {candidate.channel or ''}"


def stage4_min_target(budget_minutes: int) -> int:
    return min(8, max(4, int(budget_minutes) // 35))


def apply_stage4_filter(
    candidates: Sequence[CandidateResource],
    ctx: ModuleContext,
    similarity_threshold: float = SIMILARITY_THRESHOLD,
) -> List[CandidateResource]:
    """Spam -> similarity -> scope penalty -> anchor gate, with relaxed backfill for thin modules."""
    module_text = ctx.module_text
    strict: List[CandidateResource] = []
    relaxed: List[CandidateResource] = []

    for candidate in candidates:
        if is_disqualified(candidate.title, candidate.url):
            continue
        if hybrid_similarity(module_text, candidate_text(candidate)) < similarity_threshold:
            continue
        annotated = candidate.model_copy(update={"scope_penalty": compute_scope_penalty(candidate, ctx)})
        relaxed.append(annotated)
        if passes_anchor_gate(annotated, ctx.anchor_terms):
            strict.append(annotated)

    min_target = stage4_min_target(ctx.budget_minutes)
    if len(strict) >= min_target or len(relaxed) <= len(strict):
        logger.debug(
            "stage4_strict module=%s in=%s out=%s anchors=%s",
            ctx.module_id,
            len(candidates),
            len(strict),
            len(ctx.anchor_terms),
        )
        return strict

    merged = list(strict)
    seen = {c.url for c in merged}
    for candidate in relaxed:
        if len(merged) >= min_target:
            break
        if candidate.url in seen:
            continue
        seen.add(candidate.url)
        merged.append(candidate)

    logger.debug(
        "stage4_relaxed module=%s in=%s strict=%s expanded=%s",
        ctx.module_id,
        len(candidates),
        len(strict),
        len(merged),
    )
    return merged


def score_anchor_term(term: str) -> float:
    """Specificity heuristic: longer, technical, non-generic terms rank first."""
    normalized = _ANCHOR_SCORE_STRIP_RE.sub("", str(term or "").lower()).strip()
    if len(normalized) < 3:
        return 0.0
    parts = [part for part in re.split(r"[\s/_-]+", normalized) if part]
    if not parts:
        return 0.0
    generic_penalty = 0.55 if any(part in GENERIC_QUERY_WORDS for part in parts) else 1.0
    specificity = min(1.5, 0.7 + len(normalized) / 24.0)
    technical_boost = 1.25 if _TECHNICAL_CHAR_RE.search(normalized) else 1.0
    return specificity * technical_boost * generic_penalty


def select_top_anchors(terms: Iterable[str], max_count: int = 3) -> List[str]:
    cleaned = [str(term or "").strip() for term in terms]
    cleaned = [term for term in cleaned if len(term) > 1]
    return sorted(cleaned, key=score_anchor_term, reverse=True)[: max(0, int(max_count))]
