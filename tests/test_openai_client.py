"""Tests for the OpenAI client wrapper (no network)."""

from unittest.mock import MagicMock, patch

import httpx
import pytest
from openai import APIError, APITimeoutError

from focusflow.errors import ExternalParseFailure, ExternalParseTimeout
from focusflow.integrations.openai_client import OpenAIClient

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _chat_response(content):
    choice = MagicMock()
    choice.message.content = content
    response = MagicMock()
    response.choices = [choice]
    return response


@pytest.fixture
def mock_openai():
    with patch("focusflow.integrations.openai_client.OpenAI") as mock_cls:
        yield mock_cls.return_value


@pytest.fixture
def client(mock_openai):
    return OpenAIClient(api_key="test-key", model="test-model", timeout=5)


class TestParseTask:
    def test_returns_json_object(self, client, mock_openai):
        mock_openai.chat.completions.create.return_value = _chat_response(
            '{"title": "Call mom", "type": "habit", "frequency": "every sunday 9am", "priority": 2}'
        )

        result = client.parse_task("call mom every sunday 9am")

        assert result["title"] == "Call mom"
        assert result["frequency"] == "every sunday 9am"
        kwargs = mock_openai.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}

    def test_strips_code_fences(self, client, mock_openai):
        mock_openai.chat.completions.create.return_value = _chat_response('```json\n{"title": "Buy milk"}\n```')

        assert client.parse_task("buy milk") == {"title": "Buy milk"}

    @pytest.mark.parametrize("content", ["not json", "[1, 2]", ""])
    def test_garbage_response_is_a_failure(self, client, mock_openai, content):
        mock_openai.chat.completions.create.return_value = _chat_response(content)

        with pytest.raises(ExternalParseFailure):
            client.parse_task("buy milk")

    def test_timeout(self, client, mock_openai):
        mock_openai.chat.completions.create.side_effect = APITimeoutError(request=REQUEST)

        with pytest.raises(ExternalParseTimeout):
            client.parse_task("buy milk")

    def test_api_error(self, client, mock_openai):
        mock_openai.chat.completions.create.side_effect = APIError("boom", request=REQUEST, body=None)

        with pytest.raises(ExternalParseFailure):
            client.parse_task("buy milk")

    def test_without_api_key_fails_closed(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)
        unconfigured = OpenAIClient()

        assert unconfigured.available is False
        with pytest.raises(ExternalParseFailure):
            unconfigured.parse_task("buy milk")


class TestSuggest:
    def test_returns_stripped_suggestion(self, client, mock_openai):
        mock_openai.chat.completions.create.return_value = _chat_response("  Start small.  ")

        assert client.suggest("Clean garage", "the whole thing") == "Start small."
        prompt = mock_openai.chat.completions.create.call_args.kwargs["messages"][1]["content"]
        assert "Clean garage - the whole thing" in prompt

    def test_api_error_returns_empty(self, client, mock_openai):
        mock_openai.chat.completions.create.side_effect = APIError("quota", request=REQUEST, body=None)

        assert client.suggest("Clean garage") == ""

    def test_empty_title_returns_empty(self, client, mock_openai):
        assert client.suggest("   ") == ""
        mock_openai.chat.completions.create.assert_not_called()

    def test_without_api_key_returns_empty(self, monkeypatch):
        monkeypatch.delenv("OPENAI_API_KEY", raising=False)

        assert OpenAIClient().suggest("Clean garage") == ""
