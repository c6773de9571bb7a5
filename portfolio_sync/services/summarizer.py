"""
Summarizer: prompt -> best-effort text from an LLM.

ModelRouterSummarizer tries each configured provider in order (OpenAI first,
Anthropic as fallback) and only fails when every provider failed. Output is
not trusted to be JSON; see insight_parser for the structured decode.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from portfolio_sync.core.exceptions import ConfigurationError, SummarizerError
from portfolio_sync.utils.timeout_handler import TimeoutConfig

logger = logging.getLogger(__name__)


class Summarizer(ABC):
    """Interface for a text completion backend."""

    @abstractmethod
    async def complete(self, prompt: str, max_tokens: int, system_prompt: Optional[str] = None) -> str:
        pass


@dataclass
class ProviderModel:
    provider: str  # "openai" | "anthropic"
    model: str


class ModelRouterSummarizer(Summarizer):
    """Ordered provider fallback with lazily created async clients."""

    def __init__(
        self,
        openai_key: Optional[str],
        anthropic_key: Optional[str],
        model: str = "gpt-4o-mini",
        fallback_model: Optional[str] = "claude-haiku-4-5",
        temperature: float = 0.2,
    ):
        self.openai_key = openai_key
        self.anthropic_key = anthropic_key
        self.temperature = temperature
        self.openai_client = None
        self.anthropic_client = None

        self.models: List[ProviderModel] = []
        if openai_key:
            self.models.append(ProviderModel("openai", model))
        if anthropic_key and fallback_model:
            self.models.append(ProviderModel("anthropic", fallback_model))
        if not self.models:
            raise ConfigurationError(
                "No summarizer configured: set OPENAI_API_KEY or ANTHROPIC_API_KEY",
                setting="OPENAI_API_KEY",
            )

    def _init_clients_if_needed(self):
        if self.openai_key and self.openai_client is None:
            from openai import AsyncOpenAI
            self.openai_client = AsyncOpenAI(api_key=self.openai_key)
        if self.anthropic_key and self.anthropic_client is None:
            from anthropic import AsyncAnthropic
            self.anthropic_client = AsyncAnthropic(api_key=self.anthropic_key)

    async def _call_openai(self, model: str, prompt: str, system: Optional[str], max_tokens: int) -> str:
        messages = []
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": prompt})

        kwargs: Dict[str, Any] = {
            "model": model,
            "messages": messages,
            "temperature": self.temperature,
        }
        # Newer OpenAI models take max_completion_tokens
        if any(m in model.lower() for m in ("gpt-5", "gpt-4o", "o1")):
            kwargs["max_completion_tokens"] = max_tokens
        else:
            kwargs["max_tokens"] = max_tokens

        response = await self.openai_client.chat.completions.create(**kwargs)
        if not response.choices:
            raise ValueError("OpenAI API returned empty choices")
        content = response.choices[0].message.content
        if content is None:
            raise ValueError("OpenAI API returned None content")
        return content

    async def _call_anthropic(self, model: str, prompt: str, system: Optional[str], max_tokens: int) -> str:
        response = await self.anthropic_client.messages.create(
            model=model,
            max_tokens=max_tokens,
            temperature=self.temperature,
            system=system or "You are a helpful AI assistant.",
            messages=[{"role": "user", "content": prompt}],
        )
        if not response.content:
            raise ValueError("Anthropic API returned empty content")
        block = response.content[0]
        text = getattr(block, "text", None)
        if text is None and isinstance(block, dict):
            text = block.get("text", "")
        return text or ""

    async def complete(self, prompt: str, max_tokens: int, system_prompt: Optional[str] = None) -> str:
        self._init_clients_if_needed()
        failures: Dict[str, str] = {}

        for entry in self.models:
            call = self._call_openai if entry.provider == "openai" else self._call_anthropic
            logger.info(f"[SUMMARIZER] {entry.provider}/{entry.model}: prompt {len(prompt):,} chars, max_tokens {max_tokens}")
            try:
                return await asyncio.wait_for(
                    call(entry.model, prompt, system_prompt, max_tokens),
                    timeout=TimeoutConfig.get_timeout(entry.provider),
                )
            except Exception as e:
                logger.warning(f"[SUMMARIZER] {entry.provider}/{entry.model} failed: {e}")
                failures[f"{entry.provider}/{entry.model}"] = str(e) or type(e).__name__

        raise SummarizerError("All summarizer providers failed", details={"failures": failures})
