"""
Chat-completion client for the upstream language-model gateway.
The gateway speaks the OpenAI chat-completions format. Failures are raised
as LLMError subclasses so callers can tell rate limits and exhausted quota
apart from plain transport problems and fall back to heuristics.
"""

from __future__ import annotations

import json
import logging
from collections import deque
from typing import Any, Deque, Dict, List, Optional

import httpx

from .config import get_settings

logger = logging.getLogger(__name__)


class LLMError(RuntimeError):
    """Base class for upstream language-model failures."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class LLMFallbackError(LLMError):
    """Raised when the language-model layer is not configured and must be skipped."""


class LLMTransportError(LLMError):
    """Network failure, timeout, non-success status or unusable response body."""


class LLMRateLimitError(LLMError):
    """Upstream answered HTTP 429."""


class LLMQuotaExceededError(LLMError):
    """Upstream answered HTTP 402 (credits exhausted)."""


class LLMAdapter:
    """
    Thin async wrapper over the gateway.
    - complete: one system instruction plus one user turn
    - chat: arbitrary message list (used by the help assistant)
    """

    def __init__(
        self,
        *,
        api_key: str | None = None,
        api_url: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        settings = get_settings()
        self._api_key = api_key if api_key is not None else settings.llm_api_key
        self._api_url = api_url or settings.llm_api_url
        self.model = model or settings.llm_model
        self._timeout = timeout if timeout is not None else settings.llm_timeout
        self._transport = transport
        self._llm_logs: Deque[Dict[str, Any]] = deque(maxlen=200)

    @property
    def is_configured(self) -> bool:
        return bool(self._api_key)

    @property
    def logs(self) -> List[Dict[str, Any]]:
        return list(self._llm_logs)

    # Public API -----------------------------------------------------
    async def complete(self, system_prompt: str, user_prompt: str, *, model: str | None = None) -> str:
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ]
        content = self._extract_content(await self._post(messages, model or self.model))
        if content is None:
            raise LLMTransportError("Upstream response has no message content")
        return content

    async def chat(self, messages: List[Dict[str, str]], *, model: str | None = None) -> Optional[str]:
        """Returns None when the gateway answered without any content."""
        return self._extract_content(await self._post(messages, model or self.model))

    # Internal helpers ----------------------------------------------
    async def _post(self, messages: List[Dict[str, str]], model: str) -> Dict[str, Any]:
        if not self.is_configured:
            raise LLMFallbackError("LLM_API_KEY is not configured")

        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }
        payload = {"model": model, "messages": messages}
        self._log_event("request", {"model": model, "prompt": messages[-1].get("content", "")})

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.post(self._api_url, json=payload, headers=headers)
            except httpx.TimeoutException as exc:
                logger.error(f"AI gateway timeout after {self._timeout}s")
                raise LLMTransportError("AI gateway timeout") from exc
            except httpx.HTTPError as exc:
                logger.error(f"AI gateway request failed: {exc}")
                raise LLMTransportError(f"AI gateway request failed: {exc}") from exc

        if response.status_code == 429:
            logger.error("AI gateway rate limit exceeded")
            raise LLMRateLimitError("Rate limit exceeded", status_code=429)
        if response.status_code == 402:
            logger.error("AI gateway payment required")
            raise LLMQuotaExceededError("AI credits exhausted", status_code=402)
        if not response.is_success:
            logger.error(f"AI gateway error: {response.status_code} {response.text[:200]}")
            raise LLMTransportError(
                f"AI gateway error: {response.status_code}", status_code=response.status_code
            )

        try:
            data = response.json()
        except ValueError as exc:
            raise LLMTransportError("AI gateway returned a non-JSON body") from exc
        if not isinstance(data, dict):
            raise LLMTransportError("AI gateway returned an unexpected body")
        return data

    def _extract_content(self, data: Dict[str, Any]) -> Optional[str]:
        choices = data.get("choices") or []
        if not choices or not isinstance(choices[0], dict):
            return None
        message = choices[0].get("message") or {}
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            return None
        self._log_event("response", {"output": content})
        return content

    def _log_event(self, event: str, payload: Dict[str, Any]) -> None:
        short_payload = payload.copy()
        if "prompt" in short_payload:
            short_payload["prompt"] = (short_payload["prompt"] or "")[:200]
        if "output" in short_payload and isinstance(short_payload["output"], str):
            short_payload["output"] = short_payload["output"][:200]
        short_payload["event"] = event
        self._llm_logs.append(short_payload)
        logger.debug("LLM event: %s", json.dumps(short_payload, ensure_ascii=False))
