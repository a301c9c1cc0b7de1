"""
AI-backed authenticity classifier.

The model is asked for a single JSON object; whatever comes back is parsed
loosely and then whitelisted field by field, so the result always has a
terminal status and a confidence inside [0, 1]. classify() never raises:
upstream failures fall back to the heuristic scorer.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any, Callable, Optional

from .heuristics import score_message
from .llm_adapter import (
    LLMAdapter,
    LLMError,
    LLMFallbackError,
    LLMQuotaExceededError,
    LLMRateLimitError,
)
from .models import ClassificationResult, VerificationStatus
from .prompts import CLASSIFIER_SYSTEM_PROMPT, build_classification_prompt

logger = logging.getLogger(__name__)

DEFAULT_CONFIDENCE = 0.5
MAX_REASON_LENGTH = 500
MISSING_REASON = "No explanation provided by the model."

SAFE_DEFAULT = ClassificationResult(
    status=VerificationStatus.NEEDS_VERIFICATION,
    confidence=DEFAULT_CONFIDENCE,
    reason="Unable to analyze message automatically. Manual verification recommended.",
)

_JSON_FENCE = re.compile(r"```json\n?")
_FENCE = re.compile(r"```\n?")

Scorer = Callable[[str, str], ClassificationResult]


class ClassifierParseError(ValueError):
    """Model output is not a JSON object."""


def strip_code_fences(text: str) -> str:
    if "```json" in text:
        text = _FENCE.sub("", _JSON_FENCE.sub("", text))
    elif "```" in text:
        text = _FENCE.sub("", text)
    return text.strip()


def coerce_confidence(value: Any) -> float:
    if isinstance(value, bool) or value is None:
        return DEFAULT_CONFIDENCE
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_CONFIDENCE
    if math.isnan(number):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, number))


def coerce_reason(value: Any) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()[:MAX_REASON_LENGTH]
    return MISSING_REASON


def parse_model_output(text: str) -> dict[str, Any]:
    try:
        data = json.loads(strip_code_fences(text or ""))
    except (ValueError, RecursionError) as exc:
        raise ClassifierParseError(f"Invalid JSON from model: {exc}") from exc
    if not isinstance(data, dict):
        raise ClassifierParseError(f"Expected a JSON object, got {type(data).__name__}")
    return data


def to_classification(text: str) -> ClassificationResult:
    """Parse raw model text into a validated result; unparseable text yields SAFE_DEFAULT."""
    try:
        data = parse_model_output(text)
    except ClassifierParseError as exc:
        logger.warning(f"Could not parse model response: {exc} Raw: {(text or '')[:200]}")
        return SAFE_DEFAULT

    status = VerificationStatus.coerce(data.get("status"))
    if status.value != data.get("status"):
        logger.warning(f"Model returned unknown status {data.get('status')!r}; using {status.value}")

    return ClassificationResult(
        status=status,
        confidence=coerce_confidence(data.get("confidence")),
        reason=coerce_reason(data.get("reason")),
    )


class AIClassifier:
    """Language-model classifier with the heuristic scorer as fallback."""

    def __init__(self, llm: Optional[LLMAdapter] = None, *, fallback: Scorer = score_message) -> None:
        self._llm = llm
        self._fallback = fallback

    @property
    def enabled(self) -> bool:
        return self._llm is not None and self._llm.is_configured

    async def classify_strict(self, message: str, location: str) -> ClassificationResult:
        """
        Classify through the model. Rate limit, quota and transport errors
        propagate; malformed output is coerced, never raised.
        """
        if not self.enabled:
            raise LLMFallbackError("AI classifier is not configured")
        text = await self._llm.complete(
            CLASSIFIER_SYSTEM_PROMPT,
            build_classification_prompt(message, location),
        )
        return to_classification(text)

    async def classify_with_source(self, message: str, location: str) -> tuple[ClassificationResult, str]:
        """Same as classify() but also reports which path answered ("ai" or "heuristic")."""
        if not self.enabled:
            return self._fallback(message, location), "heuristic"
        try:
            return await self.classify_strict(message, location), "ai"
        except (LLMRateLimitError, LLMQuotaExceededError) as exc:
            logger.warning(f"AI classifier unavailable ({exc}); falling back to heuristics")
        except LLMError as exc:
            logger.warning(f"AI classifier failed ({exc}); falling back to heuristics")
        except Exception as exc:
            logger.error(f"Unexpected AI classifier error: {exc}", exc_info=True)
        return self._fallback(message, location), "heuristic"

    async def classify(self, message: str, location: str) -> ClassificationResult:
        result, _ = await self.classify_with_source(message, location)
        return result
