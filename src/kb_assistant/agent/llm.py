"""LLM initialisation and the completion call — single place to swap providers.

Supports two modes:

1. **OpenAI cloud** (default) — set ``OPENAI_API_KEY``.
2. **OpenAI-compatible endpoint** — set ``LLM_BASE_URL`` to a self-hosted
   server (vLLM, LiteLLM, …) exposing ``/v1/chat/completions``;
   ``ChatOpenAI`` works unchanged.
"""

from __future__ import annotations

import logging

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import HumanMessage, SystemMessage
from langchain_core.runnables import Runnable
from langchain_openai import ChatOpenAI

from kb_assistant.config import Settings, settings
from kb_assistant.exceptions import CompletionError, ConfigurationError
from kb_assistant.resources import LazyResource

logger = logging.getLogger(__name__)


def get_llm(temperature: float = 0.0, max_tokens: int | None = None, config: Settings = settings) -> ChatOpenAI:
    """Return the configured chat model.

    When ``llm_base_url`` is set the client is pointed at that endpoint
    instead of the OpenAI cloud API and a dummy key (``"EMPTY"``) is
    accepted.
    """
    kwargs: dict = {
        "model": config.llm_model_name,
        "temperature": temperature,
    }
    if max_tokens is not None:
        kwargs["max_tokens"] = max_tokens

    if config.llm_base_url:
        logger.info("Using OpenAI-compatible endpoint: %s", config.llm_base_url)
        kwargs["base_url"] = config.llm_base_url
        kwargs["api_key"] = config.openai_api_key or "EMPTY"
    else:
        if not config.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not set; the chat model cannot be initialised.")
        kwargs["api_key"] = config.openai_api_key

    return ChatOpenAI(**kwargs)


class CompletionClient:
    """``complete(system, user, temperature, max_tokens) -> text``.

    Parameters
    ----------
    llm:
        Chat model to call.  When *None*, :func:`get_llm` builds one from
        *config* on first use.  Temperature and token cap are bound per
        call, so one model instance serves both answer paths.
    config:
        Settings used to build the default model.
    """

    def __init__(self, llm: BaseChatModel | None = None, *, config: Settings = settings) -> None:
        if llm is not None:
            self._llm = LazyResource("chat model", lambda: llm)
        else:
            self._llm = LazyResource("chat model", lambda: get_llm(config=config))

    def _model(self, temperature: float, max_tokens: int) -> Runnable:
        return self._llm.get().bind(temperature=temperature, max_tokens=max_tokens)

    async def complete(self, system_prompt: str, user_prompt: str, *, temperature: float, max_tokens: int) -> str:
        model = self._model(temperature, max_tokens)
        try:
            response = await model.ainvoke(
                [SystemMessage(content=system_prompt), HumanMessage(content=user_prompt)]
            )
        except Exception as exc:
            logger.error("Completion request failed: %s", exc)
            raise CompletionError(f"Failed to generate response: {exc}") from exc
        return response.content if isinstance(response.content, str) else str(response.content)
