# integrations/llm_interface.py
"""
LLM Interface Module: text-generation primitive for the apply engine.

Wraps ``litellm`` behind the two calls the rest of the code base needs:
``generate_text(prompt, system_prompt)`` and ``is_available()``.  The
primary model comes from :class:`config.settings.AIConfig`; optional
fallback models are tried in order when the primary errors.  API keys
are read by ``litellm`` from the environment.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Optional

import litellm

from config.settings import AIConfig

__all__ = ["LLMInterface"]

logger = logging.getLogger(__name__)


class LLMInterface:
    """
    Async text-generation client with a primary/fallback model chain.

    Every call is retried ``max_retries`` times with exponential backoff
    per model before moving on to the next fallback model.
    """

    def __init__(self, config: AIConfig, max_retries: int = 3) -> None:
        self.config = config
        self.max_retries = max(1, max_retries)
        self.logger = logging.getLogger(f"{__name__}.LLMInterface")

    def _model_chain(self) -> list[str]:
        chain = [self.config.qualified_model]
        for model in self.config.fallback_models:
            if model not in chain:
                chain.append(model)
        return chain

    def _completion_kwargs(
        self,
        model: str,
        messages: list[dict[str, str]],
        max_tokens: Optional[int] = None,
    ) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": self.config.temperature,
            "max_tokens": max_tokens or self.config.max_tokens,
        }
        # base_url only applies to the primary (local providers)
        if self.config.base_url and model == self.config.qualified_model:
            kwargs["api_base"] = self.config.base_url
        return kwargs

    async def generate_text(
        self, prompt: str, system_prompt: Optional[str] = None
    ) -> str:
        """
        Generate a completion for ``prompt``.

        Args:
            prompt: User message content.
            system_prompt: Optional system message.

        Returns:
            The stripped completion text.

        Raises:
            RuntimeError: If every model in the chain failed on every retry.
        """
        messages: list[dict[str, str]] = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        last_error: Optional[str] = None
        for model in self._model_chain():
            for attempt in range(self.max_retries):
                try:
                    response = await litellm.acompletion(
                        **self._completion_kwargs(model, messages)
                    )
                    content = response.choices[0].message.content or ""
                    return content.strip()
                except Exception as e:  # noqa: BLE001
                    last_error = str(e)
                    self.logger.warning(
                        "generate_text %s attempt %d failed: %s",
                        model,
                        attempt + 1,
                        e,
                    )
                    if attempt < self.max_retries - 1:
                        await asyncio.sleep(2**attempt)
            self.logger.info("Falling back from model %s", model)

        raise RuntimeError(f"All LLM providers failed: {last_error}")

    async def is_available(self) -> bool:
        """
        Ping the primary model with a single-token request.

        Does not raise; returns ``False`` on any provider error.
        """
        start = time.perf_counter()
        model = self.config.qualified_model
        try:
            response = await litellm.acompletion(
                **self._completion_kwargs(
                    model, [{"role": "user", "content": "Hi"}], max_tokens=1
                )
            )
            reachable = bool(response and response.choices)
        except Exception as e:  # noqa: BLE001
            logger.warning("LLM provider %s unreachable: %s", model, e)
            return False

        logger.info(
            "LLM provider %s reachable=%s (%.0f ms)",
            model,
            reachable,
            (time.perf_counter() - start) * 1000,
        )
        return reachable
