"""LLM client: HTTP connection to the text-generation backend.

The generator injects an LLM callable matching the protocol:

    async def __call__(self, system: str, prompt: str) -> str: ...

`system` is the fixed style directive, `prompt` the per-channel request.

HttpLLM talks to the OpenAI Responses API (POST /v1/responses). Tests use a
StubLLM (see conftest.py) instead.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

import httpx

logger = logging.getLogger(__name__)

MAX_ERROR_BODY = 300


# ---------------------------------------------------------------------------
# Protocol: every LLM implementation must match this signature
# ---------------------------------------------------------------------------

class LLM(Protocol):
    async def __call__(self, system: str, prompt: str) -> str: ...


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class LLMError(RuntimeError):
    """Raised when the LLM backend cannot be reached or returns an error."""


class GenerationError(LLMError):
    """The backend answered with a non-success status."""

    def __init__(self, status_code: int, body: str) -> None:
        if len(body) > MAX_ERROR_BODY:
            body = body[:MAX_ERROR_BODY] + "..."
        self.status_code = status_code
        self.body = body
        super().__init__(f"OpenAI {status_code}: {body}")


class EmptyResponseError(LLMError):
    """The backend answered successfully but produced no text."""

    def __init__(self, message: str = "OpenAI returned no text.") -> None:
        super().__init__(message)


# ---------------------------------------------------------------------------
# HttpLLM: connects to the real backend
# ---------------------------------------------------------------------------

class HttpLLM:
    """Async client for the OpenAI Responses API.

    Request:  POST {base_url}/v1/responses
              {"model": ..., "input": [system, user], "temperature": ...,
               "max_output_tokens": ...}
    Response: {"output": [{"content": [{"type": "output_text", "text": ...}]}]}

    Args:
        api_key:           Bearer token.
        model:             Model identifier.
        base_url:          API root, e.g. "https://api.openai.com".
        temperature:       Sampling temperature.
        max_output_tokens: Cap on generated tokens.
        timeout:           HTTP timeout in seconds; None waits indefinitely.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4.1-mini",
        base_url: str = "https://api.openai.com",
        temperature: float = 1.0,
        max_output_tokens: int = 70,
        timeout: float | None = None,
    ) -> None:
        self._api_key = api_key
        self._model = model
        self._base_url = base_url.rstrip("/")
        self._temperature = temperature
        self._max_output_tokens = max_output_tokens
        self._timeout = timeout

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

    def _build_request(self, system: str, prompt: str) -> tuple[str, dict]:
        """Return (url, body)."""
        url = f"{self._base_url}/v1/responses"
        body = {
            "model": self._model,
            "input": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "temperature": self._temperature,
            "max_output_tokens": self._max_output_tokens,
        }
        return url, body

    @staticmethod
    def _parse_response(data: Any) -> str:
        """Join every output_text fragment of the response."""
        if not isinstance(data, dict):
            return ""
        parts: list[str] = []
        for item in data.get("output") or []:
            if not isinstance(item, dict):
                continue
            for content in item.get("content") or []:
                if isinstance(content, dict) and content.get("type") == "output_text":
                    parts.append(content.get("text") or "")
        return "".join(parts).strip()

    async def __call__(self, system: str, prompt: str) -> str:
        url, body = self._build_request(system, prompt)
        logger.debug("llm call url=%s model=%s prompt_len=%d", url, self._model, len(prompt))

        try:
            async with httpx.AsyncClient(timeout=self._timeout) as client:
                resp = await client.post(url, json=body, headers=self._headers())
        except httpx.ConnectError as e:
            raise LLMError(f"Cannot connect to LLM backend at {self._base_url}") from e
        except httpx.TimeoutException as e:
            raise LLMError(f"LLM backend timed out after {self._timeout}s") from e

        if resp.status_code >= 400:
            logger.error("llm error status=%d body=%s", resp.status_code, resp.text)
            raise GenerationError(resp.status_code, resp.text)

        try:
            data = resp.json()
        except json.JSONDecodeError:
            data = None
        text = self._parse_response(data)
        if not text:
            logger.error("llm empty response: %s", resp.text[:800])
            raise EmptyResponseError()

        logger.debug("llm response len=%d", len(text))
        return text
