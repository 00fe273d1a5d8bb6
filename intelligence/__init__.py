"""
Intelligence Module
LLM abstraction used by the optional resource re-ranker
"""
from .llm import (
    BaseLLM,
    LLMResponse,
    Message,
    OpenAILLM,
    AnthropicLLM,
    get_llm,
)

__all__ = [
    "BaseLLM",
    "LLMResponse",
    "Message",
    "OpenAILLM",
    "AnthropicLLM",
    "get_llm",
]
