from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import httpx
import openai
from openai import OpenAI

from .errors import SummarizationError
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

SUMMARY_SYSTEM_PROMPT = "You are a helpful assistant that summarizes task descriptions concisely in one sentence."
SUMMARY_USER_PROMPT = "Please summarize this task description in one clear, concise sentence: {description}"


# PUBLIC_INTERFACE
class Summarizer(ABC):
    """
    Narrow text-summarization capability.

    Implementations return the summary text or raise SummarizationError; they
    must never return an empty string.
    """

    @abstractmethod
    def summarize(self, text: str) -> str:
        """Summarize `text` in one concise sentence."""


def _make_timeout(total_s: float) -> httpx.Timeout:
    # Connect gets a shorter budget so an unreachable provider fails fast
    return httpx.Timeout(total_s, connect=min(5.0, total_s))


def _extract_content(completion: Any) -> Optional[str]:
    try:
        content = completion.choices[0].message.content
    except (AttributeError, IndexError, TypeError):
        return None
    if not isinstance(content, str):
        return None
    return content.strip() or None


class OpenRouterSummarizer(Summarizer):
    """
    Summarizer backed by an OpenAI-compatible chat completions endpoint
    (OpenRouter by default).

    The client is created lazily, so no API key is needed at import time.
    Automatic retries are disabled: a failure is reported to the caller, who
    decides whether to ask again.
    """

    def __init__(self, settings: Settings, client: Optional[OpenAI] = None) -> None:
        self._settings = settings
        self._client = client

    def _get_client(self) -> OpenAI:
        if self._client is not None:
            return self._client
        if not self._settings.openrouter_api_key:
            raise SummarizationError("Summarization provider is not configured (missing OPENROUTER_API_KEY)")
        self._client = OpenAI(
            base_url=self._settings.openrouter_base_url,
            api_key=self._settings.openrouter_api_key,
            timeout=_make_timeout(self._settings.summary_timeout_seconds),
            max_retries=0,
        )
        return self._client

    def _headers(self) -> Dict[str, str]:
        return {
            "HTTP-Referer": self._settings.app_referer,
            "X-Title": self._settings.app_title,
        }

    def summarize(self, text: str) -> str:
        client = self._get_client()
        model = self._settings.summary_model
        logger.info("Summarizer: requesting summary model=%s chars=%d", model, len(text))
        try:
            completion = client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                    {"role": "user", "content": SUMMARY_USER_PROMPT.format(description=text)},
                ],
                temperature=self._settings.summary_temperature,
                max_tokens=self._settings.summary_max_tokens,
                extra_headers=self._headers(),
                timeout=_make_timeout(self._settings.summary_timeout_seconds),
            )
        except openai.APITimeoutError as e:
            raise SummarizationError(
                f"Summarization timed out after {self._settings.summary_timeout_seconds:.0f}s"
            ) from e
        except openai.APIConnectionError as e:
            raise SummarizationError(f"Could not reach summarization provider: {e}") from e
        except openai.APIStatusError as e:
            raise SummarizationError(f"Summarization provider returned HTTP {e.status_code}: {e.message}") from e
        except openai.OpenAIError as e:
            raise SummarizationError(f"Summarization request failed: {e}") from e

        summary = _extract_content(completion)
        if summary is None:
            raise SummarizationError("Summarization provider returned an empty or malformed response")
        logger.debug("Summarizer: produced summary len=%d", len(summary))
        return summary


# PUBLIC_INTERFACE
def get_summarizer(settings: Optional[Settings] = None) -> Summarizer:
    """Return the configured summarization capability."""
    return OpenRouterSummarizer(settings or get_settings())
