"""Chat model factory with timeout and token limits.

Usage:
    from app.services.llm_service.llm import get_llm

    llm = get_llm(temperature=1.0)
    response = await llm.ainvoke([SystemMessage(...), HumanMessage(...)])

The client is built with its own retries disabled; transient failures are
retried by :mod:`app.services.llm_service.retry`.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from langchain_openai import ChatOpenAI

from app.core.config import settings

logger = logging.getLogger(__name__)

# ── LLM instance cache (keyed on frozen kwargs) ───────────────
_llm_cache: Dict[tuple, Any] = {}
_LLM_CACHE_MAX = 16


def _build_openai(temperature: float, model: Optional[str] = None, max_tokens: Optional[int] = None):
    """Build OpenAI chat client."""
    kw = {
        "model": model or settings.OPENAI_MODEL,
        "temperature": temperature,
        "timeout": settings.LLM_TIMEOUT,
        "api_key": settings.OPENAI_API_KEY or None,
        "max_retries": 0,
    }
    if max_tokens:
        kw["max_tokens"] = max_tokens
    return ChatOpenAI(**kw)


# ── Public API ────────────────────────────────────────────────


def get_llm(
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    max_tokens: Optional[int] = None,
):
    """Return a LangChain chat model instance.

    Args:
        model: Model identifier (default: OPENAI_MODEL).
        temperature: Sampling temperature (default: QUESTIONS_TEMPERATURE).
        max_tokens: Max tokens to generate (default: LLM_MAX_TOKENS).

    Returns:
        Cached model instance for the requested parameters.
    """
    temp = temperature if temperature is not None else settings.QUESTIONS_TEMPERATURE
    tokens = max_tokens if max_tokens is not None else settings.LLM_MAX_TOKENS

    cache_key = (model, temp, tokens)
    cached = _llm_cache.get(cache_key)
    if cached is not None:
        return cached

    logger.info("Building chat model (model=%s, temperature=%s)", model or settings.OPENAI_MODEL, temp)
    instance = _build_openai(temperature=temp, model=model, max_tokens=tokens)
    if len(_llm_cache) >= _LLM_CACHE_MAX:
        _llm_cache.pop(next(iter(_llm_cache)))
    _llm_cache[cache_key] = instance
    return instance


def clear_llm_cache() -> None:
    """Drop all cached model instances (settings changes, tests)."""
    _llm_cache.clear()
