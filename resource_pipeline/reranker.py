"""Per-module short-list ranking: deterministic heuristic with an optional LLM layer."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
import json
import logging
import re
from typing import Any, Dict, List, Optional, Protocol, Sequence

from core import CandidateResource, ModuleContext
from intelligence.llm import BaseLLM, Message

from .selection import sort_by_score
from .urls import normalize_url


logger = logging.getLogger(__name__)

STRATEGY_HEURISTIC = "heuristic"
STRATEGY_LLM = "llm"

_FENCED_BLOCK_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```", flags=re.IGNORECASE)
_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")
_MAX_WHY_LEN = 240

_SYSTEM_PROMPT = (
    "You curate learning resources for one module of a study roadmap. "
    "Pick the candidates that best teach the module at the learner's level and goal. "
    'Return JSON: {"selected": [{"url": "<candidate url>", "why_selected": "<one sentence>"}]}. '
    "Only use URLs from the candidate list."
)


@dataclass
class RankOutcome:
    candidates: List[CandidateResource]
    strategy: str
    fell_back: bool = False


class ResourceRanker(Protocol):
    async def rank(self, ctx: ModuleContext, candidates: Sequence[CandidateResource]) -> RankOutcome:
        ...


class HeuristicRanker:
    """Stable sort by context fit + authority."""

    name = STRATEGY_HEURISTIC

    async def rank(self, ctx: ModuleContext, candidates: Sequence[CandidateResource]) -> RankOutcome:
        return RankOutcome(candidates=sort_by_score(candidates), strategy=self.name)


def parse_llm_json(text: str) -> Optional[Dict[str, Any]]:
    """Best-effort extraction of one JSON object from a model reply."""
    raw = _CONTROL_CHARS_RE.sub(" ", str(text or "")).strip()
    if not raw:
        return None

    attempts = [raw]
    fenced = _FENCED_BLOCK_RE.search(raw)
    if fenced:
        attempts.append(fenced.group(1).strip())
    start, end = raw.find("{"), raw.rfind("}")
    if 0 <= start < end:
        attempts.append(raw[start : end + 1])

    for attempt in attempts:
        try:
            parsed = json.loads(attempt, strict=False)
        except ValueError:
            continue
        if isinstance(parsed, dict):
            return parsed
    return None


def _build_prompt(ctx: ModuleContext, candidates: Sequence[CandidateResource]) -> str:
    lines = [
        f"Topic: {ctx.topic}",
        f"Module: {ctx.title}",
        f"Description: {ctx.description}",
        f"Objectives: {'; '.join(ctx.learning_objectives) or 'n/a'}",
        f"Learner level: {ctx.level}; goal: {ctx.goal}; time budget: {ctx.budget_minutes} minutes",
        "",
        "Candidates:",
    ]
    for idx, candidate in enumerate(candidates, start=1):
        lines.append(
            f"{idx}. [{candidate.type}, {candidate.estimated_minutes} min, {candidate.authority_tier.value}] "
            f"{candidate.title} | {candidate.url} | {candidate.description[:200]}"
        )
    return "\n".join(lines)


class LLMReranker:
    """Ask an LLM which short-listed candidates fit best; heuristic ranking on any failure."""

    name = STRATEGY_LLM

    def __init__(
        self,
        llm: BaseLLM,
        *,
        fallback: Optional[ResourceRanker] = None,
        timeout: float = 12.0,
        selection_bonus: int = 12,
    ) -> None:
        self.llm = llm
        self.fallback = fallback or HeuristicRanker()
        self.timeout = max(0.1, float(timeout))
        self.selection_bonus = max(0, int(selection_bonus))

    async def _fall_back(self, ctx: ModuleContext, candidates: Sequence[CandidateResource], reason: str) -> RankOutcome:
        logger.warning("llm rerank fallback module=%s reason=%s", ctx.module_id, reason)
        outcome = await self.fallback.rank(ctx, candidates)
        return RankOutcome(candidates=outcome.candidates, strategy=outcome.strategy, fell_back=True)

    async def rank(self, ctx: ModuleContext, candidates: Sequence[CandidateResource]) -> RankOutcome:
        if not candidates:
            return RankOutcome(candidates=[], strategy=self.name)

        try:
            response = await asyncio.wait_for(
                self.llm.acomplete(
                    [Message.system(_SYSTEM_PROMPT), Message.user(_build_prompt(ctx, candidates))],
                    json_mode=True,
                ),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError:
            return await self._fall_back(ctx, candidates, "timeout")
        except Exception as exc:
            return await self._fall_back(ctx, candidates, f"provider_error:{type(exc).__name__}")

        payload = parse_llm_json(response.content)
        selected = payload.get("selected") if payload else None
        if not isinstance(selected, list):
            return await self._fall_back(ctx, candidates, "malformed_json")

        reasons: Dict[str, str] = {}
        for entry in selected:
            if not isinstance(entry, dict):
                continue
            url = normalize_url(str(entry.get("url") or ""))
            if url and url not in reasons:
                reasons[url] = str(entry.get("why_selected") or "").strip()[:_MAX_WHY_LEN]

        boosted: List[CandidateResource] = []
        matched = 0
        for candidate in candidates:
            key = normalize_url(candidate.url)
            if key in reasons:
                matched += 1
                boosted.append(
                    candidate.model_copy(
                        update={
                            "context_fit_score": min(100.0, candidate.context_fit_score + self.selection_bonus),
                            "why_selected": reasons[key] or candidate.why_selected,
                        }
                    )
                )
            else:
                boosted.append(candidate)

        if not matched:
            return await self._fall_back(ctx, candidates, "no_matching_selection")

        logger.info("llm rerank module=%s selected=%s of=%s", ctx.module_id, matched, len(candidates))
        return RankOutcome(candidates=sort_by_score(boosted), strategy=self.name)


def build_ranker(settings: Any = None) -> ResourceRanker:
    """LLM re-ranker when enabled and a provider key is configured, heuristic otherwise."""
    if settings is None:
        from config import get_settings
        settings = get_settings()

    reranker_settings = settings.reranker
    if not reranker_settings.enabled:
        return HeuristicRanker()

    from intelligence.llm import get_llm, provider_api_key

    if not provider_api_key(settings.llm):
        logger.warning("reranker enabled but no api key for provider=%s; using heuristic", settings.llm.provider)
        return HeuristicRanker()

    llm = get_llm(settings=settings.llm, timeout=reranker_settings.timeout)
    return LLMReranker(
        llm,
        timeout=reranker_settings.timeout,
        selection_bonus=reranker_settings.selection_bonus,
    )
