from __future__ import annotations

from types import SimpleNamespace

import pytest

from intelligence.llm import AnthropicLLM, Message, OpenAILLM
from utils.exceptions import LLMError


class _Recorder:
    def __init__(self, response) -> None:
        self.response = response
        self.kwargs = None
        self.closed = False

    async def create(self, **kwargs):
        self.kwargs = kwargs
        return self.response

    async def close(self) -> None:
        self.closed = True


def _openai_response(content: str = '{"selected": []}', choices: bool = True):
    choice = SimpleNamespace(message=SimpleNamespace(content=content), finish_reason="stop")
    return SimpleNamespace(
        choices=[choice] if choices else [],
        model="gpt-4o-mini",
        usage=SimpleNamespace(prompt_tokens=10, completion_tokens=5, total_tokens=15),
    )


def _openai_with(recorder: _Recorder) -> OpenAILLM:
    llm = OpenAILLM(api_key="sk")
    llm._async_client = SimpleNamespace(chat=SimpleNamespace(completions=recorder), close=recorder.close)
    return llm


@pytest.mark.asyncio
async def test_openai_json_mode_requests_json_object() -> None:
    recorder = _Recorder(_openai_response())
    llm = _openai_with(recorder)

    response = await llm.acomplete([Message.system("sys"), Message.user("hi")], json_mode=True)

    assert response.content == '{"selected": []}'
    assert response.usage["total_tokens"] == 15
    assert recorder.kwargs["response_format"] == {"type": "json_object"}
    assert recorder.kwargs["messages"][0] == {"role": "system", "content": "sys"}


@pytest.mark.asyncio
async def test_openai_empty_choices_raise_llm_error() -> None:
    llm = _openai_with(_Recorder(_openai_response(choices=False)))
    with pytest.raises(LLMError):
        await llm.acomplete([Message.user("hi")])


@pytest.mark.asyncio
async def test_openai_aclose_closes_client_once() -> None:
    recorder = _Recorder(_openai_response())
    llm = _openai_with(recorder)
    await llm.aclose()
    await llm.aclose()
    assert recorder.closed is True
    assert llm._async_client is None


def test_anthropic_moves_system_prompt_out_of_messages() -> None:
    system, messages = AnthropicLLM._convert_messages([Message.system("be brief"), Message.user("hello")])
    assert system == "be brief"
    assert messages == [{"role": "user", "content": "hello"}]


@pytest.mark.asyncio
async def test_anthropic_json_mode_extends_system_prompt() -> None:
    response = SimpleNamespace(
        content=[SimpleNamespace(type="text", text='{"selected": []}')],
        model="claude",
        usage=SimpleNamespace(input_tokens=3, output_tokens=4),
        stop_reason="end_turn",
    )
    recorder = _Recorder(response)
    llm = AnthropicLLM(api_key="ak")
    llm._async_client = SimpleNamespace(messages=recorder)

    result = await llm.acomplete([Message.system("rank these"), Message.user("list")], json_mode=True)

    assert result.content == '{"selected": []}'
    assert result.usage["total_tokens"] == 7
    assert recorder.kwargs["system"].startswith("rank these")
    assert "JSON" in recorder.kwargs["system"]
