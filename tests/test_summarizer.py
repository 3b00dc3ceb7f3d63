from dataclasses import replace

import httpx
import openai
import pytest

from task_api.errors import SummarizationError
from task_api.summarizer import SUMMARY_SYSTEM_PROMPT, OpenRouterSummarizer, get_summarizer

from .fakes import FakeOpenAIClient

_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


class TestOpenRouterSummarizer:
    def test_builds_single_shot_request(self, settings):
        client = FakeOpenAIClient(content="  Write the release notes.  ")
        summary = OpenRouterSummarizer(settings, client=client).summarize("Collect changes and write notes")

        assert summary == "Write the release notes."
        assert len(client.requests) == 1
        req = client.requests[0]
        assert req["model"] == settings.summary_model
        assert req["max_tokens"] == settings.summary_max_tokens
        assert req["messages"][0] == {"role": "system", "content": SUMMARY_SYSTEM_PROMPT}
        assert req["messages"][1]["role"] == "user"
        assert req["messages"][1]["content"].endswith("Collect changes and write notes")
        assert req["extra_headers"]["X-Title"] == settings.app_title
        assert isinstance(req["timeout"], httpx.Timeout)

    def test_timeout(self, settings):
        client = FakeOpenAIClient(error=openai.APITimeoutError(request=_REQUEST))
        with pytest.raises(SummarizationError) as exc_info:
            OpenRouterSummarizer(settings, client=client).summarize("text")
        assert "timed out" in exc_info.value.detail

    def test_connection_error(self, settings):
        client = FakeOpenAIClient(error=openai.APIConnectionError(request=_REQUEST))
        with pytest.raises(SummarizationError) as exc_info:
            OpenRouterSummarizer(settings, client=client).summarize("text")
        assert "Could not reach" in exc_info.value.detail

    def test_status_error(self, settings):
        response = httpx.Response(401, request=_REQUEST, json={"error": {"message": "bad key"}})
        error = openai.AuthenticationError("bad key", response=response, body=None)
        client = FakeOpenAIClient(error=error)
        with pytest.raises(SummarizationError) as exc_info:
            OpenRouterSummarizer(settings, client=client).summarize("text")
        assert "HTTP 401" in exc_info.value.detail

    @pytest.mark.parametrize("content", [None, "", "   "])
    def test_empty_or_missing_content(self, settings, content):
        client = FakeOpenAIClient(content=content)
        with pytest.raises(SummarizationError):
            OpenRouterSummarizer(settings, client=client).summarize("text")

    def test_no_choices(self, settings):
        client = FakeOpenAIClient()
        client.response.choices = []
        with pytest.raises(SummarizationError):
            OpenRouterSummarizer(settings, client=client).summarize("text")

    def test_missing_api_key(self, settings):
        summarizer = get_summarizer(replace(settings, openrouter_api_key=None))
        with pytest.raises(SummarizationError) as exc_info:
            summarizer.summarize("text")
        assert "OPENROUTER_API_KEY" in exc_info.value.detail
