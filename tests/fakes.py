from __future__ import annotations

from types import SimpleNamespace
from typing import Any, Dict, List, Optional

from task_api.errors import SummarizationError
from task_api.summarizer import Summarizer


class FakeSummarizer(Summarizer):
    """
    Deterministic summarizer for unit tests.

    - Captures the texts it was asked to summarize
    - Returns `next_text`, or raises `error` when set
    """

    def __init__(self, next_text: str = "A short summary.", error: Optional[Exception] = None) -> None:
        self.next_text = next_text
        self.error = error
        self.calls: List[str] = []

    def summarize(self, text: str) -> str:
        self.calls.append(text)
        if self.error is not None:
            raise self.error
        return self.next_text


class TimeoutSummarizer(FakeSummarizer):
    def __init__(self) -> None:
        super().__init__(error=SummarizationError("Summarization timed out after 20s"))


class _FakeCompletions:
    def __init__(self, owner: "FakeOpenAIClient") -> None:
        self._owner = owner

    def create(self, **kwargs: Any) -> Any:
        self._owner.requests.append(kwargs)
        if self._owner.error is not None:
            raise self._owner.error
        return self._owner.response


class FakeOpenAIClient:
    """Stands in for openai.OpenAI: only chat.completions.create is used."""

    def __init__(self, content: Optional[str] = "Write the release notes.", error: Optional[Exception] = None) -> None:
        self.error = error
        self.requests: List[Dict[str, Any]] = []
        self.response = completion(content)
        self.chat = SimpleNamespace(completions=_FakeCompletions(self))


def completion(content: Optional[str]) -> Any:
    message = SimpleNamespace(role="assistant", content=content)
    return SimpleNamespace(choices=[SimpleNamespace(index=0, message=message)])
