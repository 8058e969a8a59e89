"""Mistral chat wrapper used as the verification judge.

Wraps ``chat.complete_async`` with:
- low temperature, small token budget
- a hard ``asyncio.wait_for`` timeout
- text extraction that handles both plain-string content and typed chunk
  lists (reasoning models return thinking chunks that must be skipped)
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from mistralai import Mistral
from mistralai.models.sdkerror import SDKError

from rolescout.sources.base import SourceError

logger = logging.getLogger(__name__)


class JudgeError(SourceError):
    """Raised when the language model call fails or times out."""


class CreditExhaustedException(JudgeError):
    """Raised when Mistral API returns 402 (Payment Required)."""


class RateLimitException(JudgeError):
    """Raised when Mistral API returns 429 (Too Many Requests)."""


def response_text(response: Any) -> str:
    """Return the text content of a chat completion response.

    Content may be a plain string or a list of chunk objects; only chunks
    with ``type == 'text'`` are kept.
    """
    if not getattr(response, "choices", None):
        return ""
    content = response.choices[0].message.content
    if content is None:
        return ""
    if isinstance(content, str):
        return content.strip()
    if isinstance(content, list):
        parts: list[str] = []
        for chunk in content:
            chunk_type = getattr(chunk, "type", None)
            if chunk_type == "text":
                parts.append(getattr(chunk, "text", "") or "")
            elif isinstance(chunk, dict) and chunk.get("type") == "text":
                parts.append(chunk.get("text") or "")
        return "".join(parts).strip()
    return str(content).strip()


class MistralJudge:
    """Short-answer judge for role verification.

    Usage:
        judge = MistralJudge(api_key="...")
        text = await judge.judge("Did ... play ...? Answer CONF|YES/NO|reason")
    """

    def __init__(
        self,
        api_key: str | None,
        model: str = "mistral-small-latest",
        timeout: float = 20.0,
        client: Any | None = None,
    ) -> None:
        self.api_key = api_key
        self._model = model
        self._timeout = timeout
        self._client = client
        if self._client is None and api_key:
            self._client = Mistral(api_key=api_key)
        self.call_count = 0
        self.credits_exhausted = False

    @property
    def is_configured(self) -> bool:
        return self._client is not None and not self.credits_exhausted

    async def judge(
        self,
        prompt: str,
        system_prompt: str | None = None,
        max_tokens: int = 80,
        temperature: float = 0.05,
    ) -> str:
        """Send *prompt* and return the raw text answer.

        Raises:
            CreditExhaustedException: On 402; later calls fail without a request.
            RateLimitException: On 429.
            JudgeError: On timeout, other SDK errors or when not configured.
        """
        if self._client is None:
            raise JudgeError("Mistral API key not configured")
        if self.credits_exhausted:
            raise CreditExhaustedException("Mistral credits exhausted earlier in this run")

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})

        self.call_count += 1
        try:
            response = await asyncio.wait_for(
                self._client.chat.complete_async(
                    model=self._model,
                    messages=messages,
                    temperature=temperature,
                    max_tokens=max_tokens,
                ),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError as e:
            raise JudgeError(f"Mistral judge timed out after {self._timeout}s") from e
        except SDKError as e:
            if e.status_code == 402:
                self.credits_exhausted = True
                raise CreditExhaustedException(
                    f"Mistral credits exhausted (HTTP 402): {e}"
                ) from e
            if e.status_code == 429:
                raise RateLimitException(
                    f"Mistral rate limit exceeded (HTTP 429): {e}"
                ) from e
            raise JudgeError(f"Mistral judge failed: {e}") from e
        except httpx.HTTPError as e:
            raise JudgeError(f"Mistral judge request failed: {e}") from e

        return response_text(response)
