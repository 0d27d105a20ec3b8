"""Tests for the AI README summarizer clients."""

import json
from unittest.mock import MagicMock, patch

import pytest
from httpx import ConnectError, RemoteProtocolError, TimeoutException, UnsupportedProtocol

from ctxfile.model import (
    ANTHROPIC_MODEL,
    OPENROUTER_FREE_MODELS,
    AnthropicClient,
    ModelError,
    OllamaClient,
    OpenRouterClient,
    detect_provider,
    parse_ai_response,
    provider_status,
    summarize_readme,
)
from ctxfile.prompts import readme_analysis_prompt

ANSWER = {
    "description": "A log search tool",
    "who": "Site reliability engineers",
    "what": "Fast grep over compressed logs",
    "why": None,
    "where": "Linux servers",
    "when": "",
    "how": "Pipe logs into it",
    "topics": ["logs", "search"],
    "projectType": "cli",
}


def _response(status=200, body=None, text=""):
    resp = MagicMock()
    resp.status_code = status
    resp.json.return_value = body
    resp.text = text
    return resp


def _anthropic_body(text):
    return {"content": [{"type": "text", "text": text}]}


def _openrouter_body(text):
    return {"choices": [{"message": {"content": text}}]}


class TestParseAiResponse:
    def test_bare_json(self):
        summary = parse_ai_response(json.dumps(ANSWER), "anthropic")
        assert summary.description == "A log search tool"
        assert summary.who == "Site reliability engineers"
        assert summary.why is None
        assert summary.when is None
        assert summary.topics == ["logs", "search"]
        assert summary.project_type == "cli"
        assert summary.source == "anthropic"

    def test_fenced_json(self):
        text = "Here you go:\n```json\n" + json.dumps(ANSWER) + "\n```\nHope it helps."
        assert parse_ai_response(text, "openrouter").what == "Fast grep over compressed logs"

    def test_json_inside_prose(self):
        text = "Sure! " + json.dumps({"description": "X"}) + " Done."
        assert parse_ai_response(text, "ollama").description == "X"

    def test_not_json(self):
        assert parse_ai_response("I cannot help with that.", "anthropic") is None

    def test_json_array_rejected(self):
        assert parse_ai_response("[1, 2, 3]", "anthropic") is None

    def test_bad_topics_ignored(self):
        assert parse_ai_response('{"topics": "logs"}', "anthropic").topics == []


class TestPrompt:
    def test_readme_truncated(self):
        prompt = readme_analysis_prompt("a" * 5000 + "TAIL", ["Go (100.0%)"], "proj")
        assert "TAIL" not in prompt
        assert "a" * 4000 in prompt
        assert "DETECTED LANGUAGES: Go (100.0%)" in prompt
        assert "PROJECT NAME: proj" in prompt

    def test_no_languages(self):
        assert "DETECTED LANGUAGES: Unknown" in readme_analysis_prompt("x", [], "p")


class TestDetectProvider:
    def test_anthropic_first(self):
        env = {"ANTHROPIC_API_KEY": "a", "OPENROUTER_API_KEY": "o"}
        assert detect_provider(env) == "anthropic"

    def test_openrouter(self):
        assert detect_provider({"OPENROUTER_API_KEY": "o"}) == "openrouter"

    def test_none(self):
        assert detect_provider({}) is None

    def test_status(self):
        status = {s["name"]: s for s in provider_status({"OPENROUTER_API_KEY": "o"})}
        assert status["anthropic"]["configured"] is False
        assert status["openrouter"]["configured"] is True
        assert status["ollama"]["configured"] is True


class TestAnthropicClient:
    @patch("httpx.Client.post")
    def test_complete(self, mock_post):
        mock_post.return_value = _response(body=_anthropic_body("hello"))
        client = AnthropicClient("key")
        assert client.complete("prompt", system="sys") == "hello"

        _, kwargs = mock_post.call_args
        assert kwargs["headers"]["x-api-key"] == "key"
        assert kwargs["json"]["model"] == ANTHROPIC_MODEL
        assert kwargs["json"]["system"] == "sys"

    @patch("httpx.Client.post")
    def test_error_status(self, mock_post):
        mock_post.return_value = _response(status=401, text="invalid x-api-key")
        with pytest.raises(ModelError, match="401"):
            AnthropicClient("key").complete("prompt")

    @patch("httpx.Client.post")
    def test_timeout(self, mock_post):
        mock_post.side_effect = TimeoutException("timed out")
        with pytest.raises(ModelError, match="timed out"):
            AnthropicClient("key").complete("prompt")

    @patch("httpx.Client.post")
    def test_non_json_body(self, mock_post):
        resp = _response(text="<html>")
        resp.json.side_effect = ValueError("no json")
        mock_post.return_value = resp
        with pytest.raises(ModelError, match="non-JSON"):
            AnthropicClient("key").complete("prompt")

    @patch("httpx.Client.post")
    def test_malformed_content_blocks(self, mock_post):
        mock_post.return_value = _response(body={"content": ["oops"]})
        with pytest.raises(ModelError, match="malformed"):
            AnthropicClient("key").complete("prompt")

    @patch("httpx.Client.post")
    def test_transport_error(self, mock_post):
        mock_post.side_effect = RemoteProtocolError("Server disconnected")
        with pytest.raises(ModelError, match="Server disconnected"):
            AnthropicClient("key").complete("prompt")

    def test_context_manager_closes_client(self):
        with AnthropicClient("key") as client:
            assert client._client.is_closed is False
        assert client._client.is_closed is True


class TestOpenRouterClient:
    @patch("httpx.Client.post")
    def test_falls_through_models(self, mock_post):
        mock_post.side_effect = [
            _response(status=429, text="rate limited"),
            _response(body=_openrouter_body("")),
            _response(body=_openrouter_body("not json at all")),
            _response(body=_openrouter_body(json.dumps(ANSWER))),
        ]
        summary = OpenRouterClient("key").summarize("prompt")

        assert summary.source == "openrouter"
        assert summary.description == "A log search tool"
        models = [c.kwargs["json"]["model"] for c in mock_post.call_args_list]
        assert models == list(OPENROUTER_FREE_MODELS[:4])

    @patch("httpx.Client.post")
    def test_all_models_fail(self, mock_post):
        mock_post.side_effect = ConnectError("offline")
        assert OpenRouterClient("key").summarize("prompt") is None
        assert mock_post.call_count == len(OPENROUTER_FREE_MODELS)

    @patch("httpx.Client.post")
    def test_malformed_choices(self, mock_post):
        mock_post.return_value = _response(body={"choices": ["oops"]})
        with pytest.raises(ModelError, match="malformed"):
            OpenRouterClient("key").complete("prompt", OPENROUTER_FREE_MODELS[0])

    @patch("httpx.Client.post")
    def test_malformed_answers_fall_through(self, mock_post):
        mock_post.side_effect = [
            _response(body={"choices": ["oops"]}),
            _response(body={"choices": [{"message": "oops"}]}),
            _response(body=_openrouter_body(json.dumps(ANSWER))),
        ]
        assert OpenRouterClient("key").summarize("prompt").who == "Site reliability engineers"


class TestOllamaClient:
    def test_default_host(self, monkeypatch):
        monkeypatch.delenv("OLLAMA_HOST", raising=False)
        assert "11434" in OllamaClient().base_url

    def test_host_from_env(self, monkeypatch):
        monkeypatch.setenv("OLLAMA_HOST", "http://gpu-box:11434/")
        assert OllamaClient().base_url == "http://gpu-box:11434"

    def test_bare_host_gets_scheme(self, monkeypatch):
        monkeypatch.setenv("OLLAMA_HOST", "127.0.0.1:11434")
        assert OllamaClient().base_url == "http://127.0.0.1:11434"

    @patch("httpx.Client.get")
    def test_is_running_bad_url(self, mock_get):
        mock_get.side_effect = UnsupportedProtocol("missing protocol")
        assert OllamaClient().is_running() is False

    @patch("httpx.Client.get")
    def test_is_running_false(self, mock_get):
        mock_get.side_effect = ConnectError("connection refused")
        assert OllamaClient().is_running() is False

    @patch("httpx.Client.post")
    def test_complete(self, mock_post):
        mock_post.return_value = _response(body={"response": '{"description": "X"}'})
        assert OllamaClient().complete("prompt") == '{"description": "X"}'
        assert mock_post.call_args.kwargs["json"]["format"] == "json"

    @patch("httpx.Client.post")
    def test_connect_error(self, mock_post):
        mock_post.side_effect = ConnectError("refused")
        with pytest.raises(ModelError, match="Cannot connect"):
            OllamaClient().complete("prompt")

    @patch("httpx.Client.post")
    def test_dropped_connection(self, mock_post):
        mock_post.side_effect = RemoteProtocolError("Server disconnected")
        with pytest.raises(ModelError, match="Ollama request failed"):
            OllamaClient().complete("prompt")

    @patch("httpx.Client.post")
    def test_non_string_response(self, mock_post):
        mock_post.return_value = _response(body={"response": {"nested": True}})
        assert OllamaClient().complete("prompt") == ""


class TestSummarizeReadme:
    def test_off(self):
        assert summarize_readme("# X", [], "x", provider="off") is None

    def test_auto_without_keys(self, monkeypatch):
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        assert summarize_readme("# X", [], "x") is None

    @patch("httpx.Client.post")
    def test_auto_uses_anthropic(self, mock_post, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "key")
        mock_post.return_value = _response(body=_anthropic_body(json.dumps(ANSWER)))

        summary = summarize_readme("# Logs\n\nSearch logs.", ["Rust (100.0%)"], "logs")
        assert summary.source == "anthropic"
        assert summary.project_type == "cli"

    @patch("httpx.Client.post")
    def test_failure_returns_none(self, mock_post, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "key")
        mock_post.return_value = _response(status=500, text="boom")
        assert summarize_readme("# X", [], "x", provider="anthropic") is None

    def test_explicit_provider_without_key(self, monkeypatch):
        monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
        assert summarize_readme("# X", [], "x", provider="openrouter") is None

    @patch("httpx.Client.post")
    def test_ollama_explicit_model(self, mock_post):
        mock_post.return_value = _response(body={"response": json.dumps(ANSWER)})
        summary = summarize_readme("# X", [], "x", provider="ollama", model="llama3")
        assert summary.source == "ollama"
        assert mock_post.call_args.kwargs["json"]["model"] == "llama3"

    @patch("httpx.Client.post")
    def test_ollama_transport_error_returns_none(self, mock_post, monkeypatch):
        monkeypatch.delenv("OLLAMA_HOST", raising=False)
        mock_post.side_effect = RemoteProtocolError("Server disconnected")
        assert summarize_readme("# X", [], "x", provider="ollama") is None

    @patch("httpx.Client.post")
    def test_ollama_unsupported_protocol_returns_none(self, mock_post):
        mock_post.side_effect = UnsupportedProtocol("Request URL is missing an 'http://' or 'https://' protocol.")
        assert summarize_readme("# X", [], "x", provider="ollama") is None

    @patch("httpx.Client.post")
    def test_malformed_anthropic_body_returns_none(self, mock_post, monkeypatch):
        monkeypatch.setenv("ANTHROPIC_API_KEY", "key")
        mock_post.return_value = _response(body={"content": ["oops"]})
        assert summarize_readme("# X", [], "x", provider="anthropic") is None

    def test_blank_readme(self):
        assert summarize_readme("   ", [], "x", provider="anthropic") is None
