"""
LLM Module
Provider abstraction for the optional re-ranking layer
"""
from .base import BaseLLM, LLMResponse, Message, MessageRole
from .openai_llm import OpenAILLM
from .anthropic_llm import AnthropicLLM
from .factory import get_llm, provider_api_key

__all__ = [
    "BaseLLM",
    "LLMResponse",
    "Message",
    "MessageRole",
    "OpenAILLM",
    "AnthropicLLM",
    "get_llm",
    "provider_api_key",
]
