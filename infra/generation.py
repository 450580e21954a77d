"""Text generation clients.

The chat flow only needs "prompt in, text out"; anything implementing
``TextGenerator`` can stand in for Gemini (tests use fakes).
"""
from __future__ import annotations

import time
from typing import Any, Optional, Protocol

import structlog
from langchain_google_genai import ChatGoogleGenerativeAI

from api.shared.exceptions import GenerationFailure

logger = structlog.get_logger("support_chat.generation")


class TextGenerator(Protocol):
    async def generate(self, prompt: str) -> str:
        """Return generated text for ``prompt`` or raise ``GenerationFailure``."""
        ...


def _content_text(content: Any) -> str:
    """Flatten a chat model message content (str or list of parts) to text."""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict) and part.get("type", "text") == "text":
                parts.append(str(part.get("text", "")))
        return "".join(parts)
    raise TypeError(f"unexpected content type {type(content).__name__}")


class GeminiTextGenerator:
    """Gemini-backed generator via LangChain.

    The client is created on first use so the app can boot without an API
    key; calls then fail with ``GenerationFailure`` and callers fall back.
    SDK-level retries are disabled: a failed call fails once.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gemini-2.5-flash",
        temperature: float = 0.3,
    ):
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self._llm: Optional[ChatGoogleGenerativeAI] = None

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    def _client(self) -> ChatGoogleGenerativeAI:
        if self._llm is None:
            if not self.configured:
                raise GenerationFailure("GEMINI_API_KEY is not configured", self.model)
            self._llm = ChatGoogleGenerativeAI(
                model=self.model,
                google_api_key=self.api_key,
                temperature=self.temperature,
                max_retries=0,
            )
        return self._llm

    async def generate(self, prompt: str) -> str:
        start_time = time.time()
        try:
            result = await self._client().ainvoke(prompt)
            text = _content_text(result.content)
        except GenerationFailure:
            raise
        except Exception as e:
            logger.warning(
                "generation_error",
                model=self.model,
                error=str(e),
                latency_ms=(time.time() - start_time) * 1000,
            )
            raise GenerationFailure(str(e), self.model) from e

        if not text.strip():
            raise GenerationFailure("empty response", self.model)

        logger.info(
            "generation_completed",
            model=self.model,
            prompt_chars=len(prompt),
            reply_chars=len(text),
            latency_ms=(time.time() - start_time) * 1000,
        )
        return text
