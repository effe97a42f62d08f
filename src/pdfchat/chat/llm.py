"""LLM initialisation — single place to swap providers.

Supports two modes:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **OpenAI-compatible endpoint** — set ``LLM_BASE_URL`` (vLLM, LM Studio,
   …).  ``ChatOpenAI`` works unchanged against any server exposing
   ``/v1/chat/completions``.
"""

from __future__ import annotations

import logging

from langchain_openai import ChatOpenAI

from pdfchat.config import settings

logger = logging.getLogger(__name__)


def get_llm(
    temperature: float = settings.llm_temperature,
    max_tokens: int = settings.llm_max_tokens,
    *,
    model_name: str = settings.llm_model_name,
    base_url: str = settings.llm_base_url,
    api_key: str = settings.openai_api_key,
) -> ChatOpenAI:
    """Return the configured streaming chat model."""
    kwargs: dict = {
        "model": model_name,
        "temperature": temperature,
        "max_tokens": max_tokens,
        "streaming": True,
    }

    if base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", base_url)
        kwargs["base_url"] = base_url
        # Local servers don't need a real key; LangChain requires a non-empty value.
        kwargs["api_key"] = api_key or "EMPTY"
    else:
        kwargs["api_key"] = api_key

    return ChatOpenAI(**kwargs)
