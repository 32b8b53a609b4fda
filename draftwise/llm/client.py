"""LLM completion providers.

Every caller talks to a provider through one method:

    complete(system_prompt, user_prompt, temperature) -> str  (JSON text)

GeminiProvider calls Vertex AI with transport retries. HeuristicProvider is
the offline stand-in used when DRAFTWISE_USE_LLM is off: it finds common
misspellings, doubled words and weak phrases with regexes and answers in the
same JSON shape the model would.
"""

from __future__ import annotations

import json
import os
import re
from functools import lru_cache
from typing import Any, Protocol

from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from draftwise.config import LLM_MAX_RETRIES, LLM_TIMEOUT_SECONDS
from draftwise.errors import ModelCallFailed
from draftwise.infrastructure.settings import GEMINI_MAX_TOKENS, GEMINI_MODEL
from draftwise.llm.gemini import GeminiInitializationError, get_gemini_model_with_options
from draftwise.observability.logging import get_logger
from draftwise.observability.telemetry import counter, log_event

logger = get_logger(__name__)


class LLMProvider(Protocol):
    name: str

    def complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str: ...


# ============================================================================
# Gemini
# ============================================================================


class GeminiProvider:
    """Vertex AI Gemini with exponential-backoff retries on transport errors."""

    name = "gemini"

    def complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        counter("llm.gemini.call")
        try:
            return self._generate(system_prompt, user_prompt, temperature)
        except GeminiInitializationError as e:
            logger.error("Gemini unavailable: %s", e)
            raise ModelCallFailed("Language model is not configured") from e
        except (TimeoutError, ConnectionError, OSError) as e:
            counter("llm.gemini.exhausted")
            log_event("llm.gemini.failed", error=type(e).__name__, model=GEMINI_MODEL)
            raise ModelCallFailed(f"Language model call failed: {e}") from e

    @retry(
        stop=stop_after_attempt(LLM_MAX_RETRIES),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((TimeoutError, ConnectionError, OSError)),
        reraise=True,
    )
    def _generate(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        """
        Raises:
            TimeoutError: On deadline exceeded (retryable)
            ConnectionError: On service unavailable or internal error (retryable)
            OSError: On resource exhausted / rate limited (retryable)
            ModelCallFailed: On any other provider error (not retried)
        """
        from google.api_core.exceptions import (
            DeadlineExceeded,
            InternalServerError,
            ResourceExhausted,
            ServiceUnavailable,
        )

        model = get_gemini_model_with_options(system_instruction=system_prompt)
        generation_config = {
            "temperature": temperature,
            "max_output_tokens": GEMINI_MAX_TOKENS,
            "response_mime_type": "application/json",
        }

        try:
            response = model.generate_content(user_prompt, generation_config=generation_config)
            return response.text
        except DeadlineExceeded as e:
            counter("llm.gemini.timeout")
            logger.warning("LLM call timed out after %ds", LLM_TIMEOUT_SECONDS)
            raise TimeoutError(f"LLM call timed out: {e}") from e
        except ServiceUnavailable as e:
            counter("llm.gemini.service_unavailable")
            logger.warning("LLM service unavailable, will retry: %s", e)
            raise ConnectionError(f"LLM service unavailable: {e}") from e
        except ResourceExhausted as e:
            counter("llm.gemini.rate_limited")
            logger.warning("LLM rate limited (429), will retry: %s", e)
            raise OSError(f"LLM rate limited: {e}") from e
        except InternalServerError as e:
            counter("llm.gemini.internal_error")
            logger.warning("LLM internal error (500), will retry: %s", e)
            raise ConnectionError(f"LLM internal error: {e}") from e
        except GeminiInitializationError:
            raise
        except Exception as e:
            logger.error("LLM call failed: %s", e)
            raise ModelCallFailed(f"Language model call failed: {e}") from e


# ============================================================================
# Offline heuristics
# ============================================================================

COMMON_MISSPELLINGS = {
    "teh": "the",
    "recieve": "receive",
    "definately": "definitely",
    "seperate": "separate",
    "occured": "occurred",
    "accomodate": "accommodate",
    "neccessary": "necessary",
}

WEAK_PHRASES = (
    ("very good", "excellent", "engagement"),
    ("pretty nice", "appealing", "engagement"),
    ("kind of", "somewhat", "clarity"),
    ("a lot of", "many", "clarity"),
    ("really cool", "impressive", "engagement"),
)

_REPEATED_WORD = re.compile(r"\b(\w+)\s+\1\b", re.IGNORECASE)
_ANALYZED_BLOCK = re.compile(r'"""\n(.*)\n"""', re.DOTALL)


def _match_case(replacement: str, original: str) -> str:
    return replacement.capitalize() if original[:1].isupper() else replacement


def heuristic_suggestions(text: str) -> list[dict[str, Any]]:
    """Regex-detectable issues in ``text``, overlapping spans removed (first wins)."""
    found: list[dict[str, Any]] = []

    for wrong, right in COMMON_MISSPELLINGS.items():
        for match in re.finditer(rf"\b{wrong}\b", text, re.IGNORECASE):
            suggested = _match_case(right, match.group(0))
            found.append(
                {
                    "type": "spelling",
                    "category": "error",
                    "severity": "high",
                    "originalText": match.group(0),
                    "suggestedText": suggested,
                    "explanation": f"Spelling error: '{match.group(0)}' should be '{suggested}'",
                    "startIndex": match.start(),
                    "endIndex": match.end(),
                    "confidence": 0.95,
                }
            )

    for match in _REPEATED_WORD.finditer(text):
        found.append(
            {
                "type": "clarity",
                "category": "improvement",
                "severity": "medium",
                "originalText": match.group(0),
                "suggestedText": match.group(1),
                "explanation": (
                    f"Remove repetitive word: '{match.group(0)}' can be simplified to "
                    f"'{match.group(1)}'"
                ),
                "startIndex": match.start(),
                "endIndex": match.end(),
                "confidence": 0.8,
            }
        )

    lowered = text.lower()
    for weak, strong, suggestion_type in WEAK_PHRASES:
        index = lowered.find(weak)
        if index == -1:
            continue
        found.append(
            {
                "type": suggestion_type,
                "category": "enhancement",
                "severity": "low",
                "originalText": text[index : index + len(weak)],
                "suggestedText": strong,
                "explanation": f"Consider using '{strong}' instead of '{weak}' for more impact",
                "startIndex": index,
                "endIndex": index + len(weak),
                "confidence": 0.7,
            }
        )

    found.sort(key=lambda s: s["startIndex"])
    kept: list[dict[str, Any]] = []
    last_end = -1
    for item in found:
        if item["startIndex"] >= last_end:
            kept.append(item)
            last_end = item["endIndex"]
    return kept


class HeuristicProvider:
    """Offline provider: answers any prompt with regex-based suggestions for the quoted text."""

    name = "heuristic"

    def complete(self, system_prompt: str, user_prompt: str, temperature: float) -> str:
        counter("llm.heuristic.call")
        match = _ANALYZED_BLOCK.search(user_prompt)
        text = match.group(1) if match else user_prompt
        return json.dumps({"suggestions": heuristic_suggestions(text)})


@lru_cache(maxsize=1)
def get_provider() -> LLMProvider:
    """Gemini when DRAFTWISE_USE_LLM=true, otherwise the offline heuristics."""
    if os.getenv("DRAFTWISE_USE_LLM", "false").lower() == "true":
        logger.info("Using Gemini provider (model=%s)", GEMINI_MODEL)
        return GeminiProvider()

    counter("llm.disabled")
    logger.warning(
        "LLM DISABLED: DRAFTWISE_USE_LLM=%s - using heuristic suggestions",
        os.getenv("DRAFTWISE_USE_LLM", "not_set"),
    )
    return HeuristicProvider()
