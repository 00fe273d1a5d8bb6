"""
LLM Factory
Build the configured LLM provider for the re-ranker
"""
from typing import Optional
import logging

from config.settings import LLMSettings
from utils.exceptions import ConfigurationError

from .base import BaseLLM
from .openai_llm import OpenAILLM
from .anthropic_llm import AnthropicLLM


logger = logging.getLogger(__name__)


DEFAULT_MODELS = {
    "openai": "gpt-4o-mini",
    "anthropic": "claude-3-5-haiku-latest",
}


def provider_api_key(settings: LLMSettings, provider: Optional[str] = None) -> Optional[str]:
    provider = (provider or settings.provider or "").strip().lower()
    return {
        "openai": settings.openai_api_key,
        "anthropic": settings.anthropic_api_key,
    }.get(provider)


def get_llm(
    provider: Optional[str] = None,
    model: Optional[str] = None,
    settings: Optional[LLMSettings] = None,
    **kwargs,
) -> BaseLLM:
    """
    Create an LLM instance from settings, with optional overrides.

    Args:
        provider: openai or anthropic (settings value when omitted)
        model: model name (provider default when omitted)
        settings: LLM settings (global settings when omitted)
        **kwargs: temperature, max_tokens, timeout, api_key, base_url

    Example:
        llm = get_llm()
        llm = get_llm(provider="anthropic", timeout=12.0)
    """
    if settings is None:
        from config import get_llm_settings
        settings = get_llm_settings()

    provider = (provider or settings.provider or "openai").strip().lower()
    model = model or settings.model_name or DEFAULT_MODELS.get(provider)
    api_key = kwargs.pop("api_key", None) or provider_api_key(settings, provider)

    kwargs.setdefault("temperature", settings.temperature)
    kwargs.setdefault("max_tokens", settings.max_tokens)

    if provider == "openai":
        return OpenAILLM(
            model=model,
            api_key=api_key,
            base_url=kwargs.pop("base_url", None) or settings.base_url,
            **kwargs,
        )
    if provider == "anthropic":
        return AnthropicLLM(model=model, api_key=api_key, **kwargs)
    raise ConfigurationError(f"Unsupported LLM provider: {provider}", {"provider": provider})
