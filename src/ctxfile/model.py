"""AI README summarizer. Optional remote or local model inference.

Sends the README excerpt to one provider and parses the structured JSON
answer into a ReadmeSummary. Every failure path ends in ``None``: the
pipeline always has the local README parse to fall back on.
"""

from __future__ import annotations

import json
import os
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

import httpx

from .logging import get_logger
from .prompts import SYSTEM_PROMPT, readme_analysis_prompt

logger = get_logger("model")

DEFAULT_TIMEOUT = 20  # seconds per request; summaries are optional
MAX_TOKENS = 500

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MODEL = "claude-haiku-4-5-20251001"

OPENROUTER_URL = "https://openrouter.ai/api/v1/chat/completions"
OPENROUTER_REFERER = "https://github.com/ctxfile/ctxfile"
OPENROUTER_TITLE = "ctxfile"
# Tried in order; the first model that returns parseable JSON wins.
OPENROUTER_FREE_MODELS = (
    "google/gemma-3-12b-it:free",
    "google/gemma-3-27b-it:free",
    "meta-llama/llama-3.3-70b-instruct:free",
    "mistralai/mistral-small-3.1-24b-instruct:free",
    "nvidia/nemotron-nano-9b-v2:free",
    "google/gemma-3-4b-it:free",
    "openrouter/free",
)

OLLAMA_BASE_URL = "http://localhost:11434"
OLLAMA_MODEL = "qwen2.5-coder:7b"

PROVIDERS = ("anthropic", "openrouter", "ollama")

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*([\s\S]*?)```")


class ModelError(Exception):
    """Error communicating with the model."""


def _json_body(resp: httpx.Response, provider: str) -> dict:
    try:
        data = resp.json()
    except ValueError:
        raise ModelError(f"{provider} returned a non-JSON body: {resp.text[:200]}")
    if not isinstance(data, dict):
        raise ModelError(f"{provider} returned an unexpected body")
    return data


def _with_scheme(url: str) -> str:
    # OLLAMA_HOST is often set as bare host:port.
    url = url.strip().rstrip("/")
    if "://" not in url:
        url = f"http://{url}"
    return url


@dataclass
class ReadmeSummary:
    """What a model extracted from the README."""

    description: str = ""
    who: str | None = None
    what: str | None = None
    why: str | None = None
    where: str | None = None
    when: str | None = None
    how: str | None = None
    topics: list[str] = field(default_factory=list)
    project_type: str | None = None
    source: str = ""

    def human_fields(self) -> dict[str, str | None]:
        return {
            "who": self.who,
            "what": self.what,
            "why": self.why,
            "where": self.where,
            "when": self.when,
            "how": self.how,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "description": self.description,
            **self.human_fields(),
            "topics": self.topics,
            "project_type": self.project_type,
            "source": self.source,
        }


def _text_or_none(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def parse_ai_response(text: str, source: str) -> ReadmeSummary | None:
    """Parse a model answer into a ReadmeSummary.

    Accepts bare JSON, JSON inside a ```json fence, or JSON surrounded by
    prose. Returns None when no JSON object can be decoded.
    """
    candidate = text.strip()
    fenced = _FENCED_JSON_RE.search(candidate)
    if fenced:
        candidate = fenced.group(1).strip()
    start = candidate.find("{")
    end = candidate.rfind("}")
    if start != -1 and end > start:
        candidate = candidate[start:end + 1]

    try:
        parsed = json.loads(candidate)
    except json.JSONDecodeError:
        logger.debug(f"{source} returned non-JSON output: {text[:120]!r}")
        return None
    if not isinstance(parsed, dict):
        return None

    topics = parsed.get("topics")
    return ReadmeSummary(
        description=_text_or_none(parsed.get("description")) or "",
        who=_text_or_none(parsed.get("who")),
        what=_text_or_none(parsed.get("what")),
        why=_text_or_none(parsed.get("why")),
        where=_text_or_none(parsed.get("where")),
        when=_text_or_none(parsed.get("when")),
        how=_text_or_none(parsed.get("how")),
        topics=[str(t) for t in topics if t] if isinstance(topics, list) else [],
        project_type=_text_or_none(parsed.get("projectType")),
        source=source,
    )


class _HTTPModelClient:
    """Owns one httpx.Client; use as a context manager to release it."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT):
        self._client = httpx.Client(timeout=timeout)

    def close(self) -> None:
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class AnthropicClient(_HTTPModelClient):
    """Client for the Anthropic Messages API."""

    def __init__(self, api_key: str, model: str = ANTHROPIC_MODEL, timeout: float = DEFAULT_TIMEOUT):
        super().__init__(timeout)
        self.api_key = api_key
        self.model = model

    def complete(self, prompt: str, system: str = "") -> str:
        payload: dict[str, Any] = {
            "model": self.model,
            "max_tokens": MAX_TOKENS,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "content-type": "application/json",
        }

        try:
            resp = self._client.post(ANTHROPIC_URL, json=payload, headers=headers)
        except httpx.TimeoutException:
            raise ModelError(f"Anthropic request timed out ({self.model})")
        except httpx.HTTPError as e:
            raise ModelError(f"Anthropic request failed: {e}")
        if resp.status_code != 200:
            raise ModelError(f"Anthropic returned {resp.status_code}: {resp.text[:200]}")

        blocks = _json_body(resp, "Anthropic").get("content") or []
        if not isinstance(blocks, list) or not all(isinstance(b, dict) for b in blocks):
            raise ModelError("Anthropic returned malformed content blocks")
        return "".join(str(b.get("text") or "") for b in blocks if b.get("type") == "text")


class OpenRouterClient(_HTTPModelClient):
    """Client for OpenRouter chat completions with a model fallback list."""

    def __init__(
        self,
        api_key: str,
        models: tuple[str, ...] = OPENROUTER_FREE_MODELS,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(timeout)
        self.api_key = api_key
        self.models = models

    def complete(self, prompt: str, model: str, system: str = "") -> str:
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": OPENROUTER_REFERER,
            "X-Title": OPENROUTER_TITLE,
        }

        try:
            resp = self._client.post(
                OPENROUTER_URL,
                json={"model": model, "messages": messages, "max_tokens": MAX_TOKENS},
                headers=headers,
            )
        except httpx.TimeoutException:
            raise ModelError(f"OpenRouter request timed out ({model})")
        except httpx.HTTPError as e:
            raise ModelError(f"OpenRouter request failed ({model}): {e}")
        if resp.status_code != 200:
            raise ModelError(f"OpenRouter returned {resp.status_code} for {model}")

        choices = _json_body(resp, "OpenRouter").get("choices") or []
        if not choices:
            return ""
        if not isinstance(choices, list) or not isinstance(choices[0], dict):
            raise ModelError(f"OpenRouter returned malformed choices for {model}")
        message = choices[0].get("message") or {}
        if not isinstance(message, dict):
            raise ModelError(f"OpenRouter returned a malformed message for {model}")
        content = message.get("content")
        return content if isinstance(content, str) else ""

    def summarize(self, prompt: str, system: str = "") -> ReadmeSummary | None:
        """Walk the model list once; return the first parseable answer."""
        for model in self.models:
            try:
                text = self.complete(prompt, model, system=system)
            except ModelError as e:
                logger.debug(f"{e}; trying next model")
                continue
            if not text:
                logger.debug(f"OpenRouter {model} returned an empty answer")
                continue
            summary = parse_ai_response(text, "openrouter")
            if summary is not None:
                logger.debug(f"README summarized by OpenRouter {model}")
                return summary
        return None


class OllamaClient(_HTTPModelClient):
    """Client for a local Ollama server."""

    def __init__(
        self,
        model: str = OLLAMA_MODEL,
        base_url: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        super().__init__(timeout)
        self.model = model
        self.base_url = _with_scheme(base_url or os.environ.get("OLLAMA_HOST") or OLLAMA_BASE_URL)

    def is_running(self) -> bool:
        """Check if Ollama server is reachable."""
        try:
            resp = self._client.get(f"{self.base_url}/api/tags", timeout=5)
            return resp.status_code == 200
        except httpx.HTTPError:
            return False

    def complete(self, prompt: str, system: str = "") -> str:
        payload: dict[str, Any] = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
            "options": {"temperature": 0.2, "num_predict": MAX_TOKENS},
        }
        if system:
            payload["system"] = system

        try:
            resp = self._client.post(f"{self.base_url}/api/generate", json=payload)
        except httpx.TimeoutException:
            raise ModelError(f"Ollama generation timed out ({self.model})")
        except httpx.ConnectError:
            raise ModelError("Cannot connect to Ollama. Is it running? Try: ollama serve")
        except httpx.HTTPError as e:
            raise ModelError(f"Ollama request failed: {e}")
        if resp.status_code != 200:
            raise ModelError(f"Ollama returned {resp.status_code}: {resp.text[:200]}")
        text = _json_body(resp, "Ollama").get("response")
        return text if isinstance(text, str) else ""


def detect_provider(env: Mapping[str, str] | None = None) -> str | None:
    """Pick a remote provider from credentials: Anthropic, then OpenRouter."""
    env = os.environ if env is None else env
    if env.get("ANTHROPIC_API_KEY"):
        return "anthropic"
    if env.get("OPENROUTER_API_KEY"):
        return "openrouter"
    return None


def provider_status(env: Mapping[str, str] | None = None) -> list[dict[str, Any]]:
    """Describe each provider and whether it can be used right now."""
    env = os.environ if env is None else env
    return [
        {
            "name": "anthropic",
            "configured": bool(env.get("ANTHROPIC_API_KEY")),
            "credential": "ANTHROPIC_API_KEY",
            "model": ANTHROPIC_MODEL,
        },
        {
            "name": "openrouter",
            "configured": bool(env.get("OPENROUTER_API_KEY")),
            "credential": "OPENROUTER_API_KEY",
            "model": OPENROUTER_FREE_MODELS[0],
        },
        {
            "name": "ollama",
            "configured": True,
            "credential": f"OLLAMA_HOST ({env.get('OLLAMA_HOST') or OLLAMA_BASE_URL})",
            "model": OLLAMA_MODEL,
        },
    ]


def summarize_readme(
    readme_text: str,
    languages: list[str],
    project_name: str,
    provider: str = "auto",
    model: str | None = None,
    timeout: float = DEFAULT_TIMEOUT,
) -> ReadmeSummary | None:
    """Ask a model for a structured summary of the README.

    ``provider`` is ``"auto"`` (Anthropic, then OpenRouter, by available
    key), ``"off"``, or one provider name. Ollama is never picked
    automatically. Returns None when no provider is usable or the answer
    cannot be parsed.
    """
    if provider == "off" or not readme_text.strip():
        return None
    if provider == "auto":
        provider = detect_provider()
        if provider is None:
            logger.debug("No AI credentials found, using local README parse only")
            return None

    prompt = readme_analysis_prompt(readme_text, languages, project_name)
    try:
        if provider == "anthropic":
            api_key = os.environ.get("ANTHROPIC_API_KEY")
            if not api_key:
                raise ModelError("ANTHROPIC_API_KEY is not set")
            with AnthropicClient(api_key, model=model or ANTHROPIC_MODEL, timeout=timeout) as client:
                text = client.complete(prompt, system=SYSTEM_PROMPT)
            return parse_ai_response(text, "anthropic")
        if provider == "openrouter":
            api_key = os.environ.get("OPENROUTER_API_KEY")
            if not api_key:
                raise ModelError("OPENROUTER_API_KEY is not set")
            models = (model,) if model else OPENROUTER_FREE_MODELS
            with OpenRouterClient(api_key, models=models, timeout=timeout) as client:
                return client.summarize(prompt, system=SYSTEM_PROMPT)
        if provider == "ollama":
            with OllamaClient(model=model or OLLAMA_MODEL, timeout=timeout) as client:
                text = client.complete(prompt, system=SYSTEM_PROMPT)
            return parse_ai_response(text, "ollama")
        raise ModelError(f"Unknown AI provider: {provider}")
    except ModelError as e:
        logger.warning(f"AI README analysis skipped: {e}")
        return None
