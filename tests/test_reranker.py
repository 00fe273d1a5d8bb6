from __future__ import annotations

import asyncio
from typing import List

import pytest

from config.settings import LLMSettings, RerankerSettings, Settings
from core import CandidateResource, ModuleContext
from intelligence.llm import BaseLLM, LLMResponse, Message, OpenAILLM
from resource_pipeline.reranker import (
    STRATEGY_HEURISTIC,
    STRATEGY_LLM,
    HeuristicRanker,
    LLMReranker,
    build_ranker,
    parse_llm_json,
)


class _FakeLLM(BaseLLM):
    def __init__(self, content: str = "", *, error: Exception = None, delay: float = 0.0) -> None:
        super().__init__(model="fake")
        self.content = content
        self.error = error
        self.delay = delay
        self.calls: List[List[Message]] = []

    @property
    def provider(self) -> str:
        return "fake"

    async def acomplete(self, messages, *, json_mode: bool = False, **kwargs) -> LLMResponse:
        self.calls.append(list(messages))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return LLMResponse(content=self.content, model=self.model)


def _ctx() -> ModuleContext:
    return ModuleContext(
        module_id="m1",
        topic="Python",
        title="Decorators",
        description="Function decorators",
        learning_objectives=("Write a decorator",),
        goal="conceptual",
        level="beginner",
        estimated_hours=1.0,
        budget_minutes=60,
    )


def _candidates() -> List[CandidateResource]:
    return [
        CandidateResource(title="A", url="https://example.com/a", type="article", context_fit_score=70),
        CandidateResource(title="B", url="https://example.com/b", type="article", context_fit_score=65),
        CandidateResource(title="C", url="https://example.com/c", type="article", context_fit_score=95),
    ]


@pytest.mark.asyncio
async def test_heuristic_ranker_sorts_by_score() -> None:
    outcome = await HeuristicRanker().rank(_ctx(), _candidates())
    assert [c.title for c in outcome.candidates] == ["C", "A", "B"]
    assert outcome.strategy == STRATEGY_HEURISTIC
    assert outcome.fell_back is False


@pytest.mark.asyncio
async def test_llm_selection_adds_bonus_and_reason() -> None:
    llm = _FakeLLM('{"selected": [{"url": "https://www.example.com/b/", "why_selected": "Short worked example"}]}')
    outcome = await LLMReranker(llm).rank(_ctx(), _candidates())

    assert outcome.strategy == STRATEGY_LLM
    assert outcome.fell_back is False
    assert [c.title for c in outcome.candidates] == ["C", "B", "A"]
    picked = outcome.candidates[1]
    assert picked.context_fit_score == 77
    assert picked.why_selected == "Short worked example"
    assert llm.calls[0][0].role.value == "system"
    assert "https://example.com/a" in llm.calls[0][1].content


@pytest.mark.asyncio
async def test_llm_bonus_is_clamped_to_100() -> None:
    llm = _FakeLLM('{"selected": [{"url": "https://example.com/c"}]}')
    outcome = await LLMReranker(llm).rank(_ctx(), _candidates())
    assert outcome.candidates[0].context_fit_score == 100


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "llm",
    [
        _FakeLLM("this is not json"),
        _FakeLLM('{"picked": []}'),
        _FakeLLM('{"selected": [{"url": "https://elsewhere.org/x"}]}'),
        _FakeLLM(error=RuntimeError("rate limited")),
    ],
)
async def test_llm_failures_fall_back_to_heuristic(llm) -> None:
    outcome = await LLMReranker(llm).rank(_ctx(), _candidates())
    assert outcome.fell_back is True
    assert outcome.strategy == STRATEGY_HEURISTIC
    assert [c.title for c in outcome.candidates] == ["C", "A", "B"]
    assert all(c.why_selected is None for c in outcome.candidates)


@pytest.mark.asyncio
async def test_llm_timeout_falls_back() -> None:
    llm = _FakeLLM('{"selected": []}', delay=1.0)
    outcome = await LLMReranker(llm, timeout=0.1).rank(_ctx(), _candidates())
    assert outcome.fell_back is True


@pytest.mark.asyncio
async def test_llm_reranker_skips_call_for_empty_pool() -> None:
    llm = _FakeLLM("{}")
    outcome = await LLMReranker(llm).rank(_ctx(), [])
    assert outcome.candidates == []
    assert llm.calls == []


def test_parse_llm_json_variants() -> None:
    assert parse_llm_json('{"selected": []}') == {"selected": []}
    assert parse_llm_json('Sure!\n```json\n{"selected": [1]}\n```') == {"selected": [1]}
    assert parse_llm_json('Here you go: {"a": 1} hope it helps') == {"a": 1}
    assert parse_llm_json('{"why": "line\x01break"}') == {"why": "line break"}
    assert parse_llm_json("[1, 2]") is None
    assert parse_llm_json("") is None


def test_build_ranker_defaults_to_heuristic() -> None:
    settings = Settings(reranker=RerankerSettings(enabled=False), llm=LLMSettings(openai_api_key="sk-test"))
    assert isinstance(build_ranker(settings), HeuristicRanker)


def test_build_ranker_requires_provider_key() -> None:
    settings = Settings(
        reranker=RerankerSettings(enabled=True),
        llm=LLMSettings(provider="anthropic", anthropic_api_key=None, openai_api_key="sk-test"),
    )
    assert isinstance(build_ranker(settings), HeuristicRanker)


def test_build_ranker_uses_configured_llm() -> None:
    settings = Settings(
        reranker=RerankerSettings(enabled=True, timeout=5.0, selection_bonus=8),
        llm=LLMSettings(provider="openai", openai_api_key="sk-test"),
    )
    ranker = build_ranker(settings)
    assert isinstance(ranker, LLMReranker)
    assert isinstance(ranker.llm, OpenAILLM)
    assert ranker.llm.timeout == 5.0
    assert ranker.selection_bonus == 8
