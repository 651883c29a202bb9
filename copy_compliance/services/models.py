"""
Model invocation utilities for the semantic reviewer.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlparse, urlunparse

import requests

ANTHROPIC_VERSION = "2023-06-01"
RETRYABLE_STATUS_CODES = frozenset({408, 409, 425, 429, 500, 502, 503, 504, 529})


class LLMRequestError(RuntimeError):
    """Transport or protocol failure talking to the classifier provider."""

    def __init__(self, message: str, *, retryable: bool = False, status_code: Optional[int] = None):
        super().__init__(message)
        self.retryable = retryable
        self.status_code = status_code


def ensure_ollama_endpoint(endpoint: str, default_path: str) -> str:
    """
    Normalise a user-supplied Ollama endpoint.

    Accepts bare hosts (e.g. http://localhost:11434) or `/api` roots and ensures
    the required path suffix is present. Custom paths (e.g. reverse proxies that
    already point at `/api/generate`) are preserved as-is.
    """
    if not endpoint:
        return endpoint

    target_suffix = "/" + default_path.strip("/")
    parsed = urlparse(endpoint.strip())
    path = (parsed.path or "").rstrip("/")

    if not path:
        new_path = target_suffix
    elif path.endswith(target_suffix):
        new_path = path
    elif path == "/api" and target_suffix.startswith("/api/"):
        new_path = "/api" + target_suffix[len("/api") :]
    else:
        new_path = path

    normalised = parsed._replace(path=new_path or "/")
    return urlunparse(normalised).rstrip("/")


def _preview(response: requests.Response, limit: int) -> str:
    body = (response.text or "").strip()
    preview = body[:limit]
    if len(body) > len(preview):
        preview += "…"
    return preview


def _post_json(
    *,
    endpoint: str,
    payload: Dict[str, Any],
    headers: Dict[str, str],
    timeout: float,
    model: str,
) -> Dict[str, Any]:
    try:
        response = requests.post(endpoint, json=payload, headers=headers, timeout=timeout)
    except requests.Timeout as exc:
        raise LLMRequestError(
            f"Request timed out after {timeout}s for model '{model}' at {endpoint}", retryable=True
        ) from exc
    except requests.RequestException as exc:
        raise LLMRequestError(
            f"Request failed for model '{model}' at {endpoint}: {exc}", retryable=True
        ) from exc

    try:
        response.raise_for_status()
    except requests.HTTPError as exc:
        raise LLMRequestError(
            f"HTTP {response.status_code} for model '{model}' at {endpoint}: {_preview(response, 1000)}",
            retryable=response.status_code in RETRYABLE_STATUS_CODES,
            status_code=response.status_code,
        ) from exc

    try:
        data = response.json()
    except ValueError as exc:
        raise LLMRequestError(
            f"Non-JSON payload for model '{model}' at {endpoint}: {_preview(response, 500)}"
        ) from exc
    if not isinstance(data, dict):
        raise LLMRequestError(f"Unexpected payload type {type(data).__name__} for model '{model}' at {endpoint}")
    return data


@dataclass(slots=True)
class LLMResponse:
    """Container for raw LLM output and metadata."""

    text: str
    model: str
    prompt: str
    temperature: float
    max_tokens: int


class LLMClient:
    """Thin wrapper around Anthropic, OpenAI-compatible, or local Ollama HTTP APIs."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        auth_token: Optional[str] = None,
        api_mode: Optional[str] = None,
    ):
        mode = api_mode or os.getenv("LLM_API_MODE", "anthropic")
        self.api_mode = mode.lower()
        if self.api_mode not in {"anthropic", "openai", "ollama", "ollama_chat"}:
            raise ValueError(
                f"Unsupported LLM_API_MODE '{self.api_mode}'. "
                "Expected 'anthropic', 'openai', 'ollama', or 'ollama_chat'."
            )

        if self.api_mode == "anthropic":
            self.endpoint = endpoint or os.getenv("ANTHROPIC_ENDPOINT", "https://api.anthropic.com/v1/messages")
            self.auth_token = auth_token or os.getenv("ANTHROPIC_API_KEY")
        elif self.api_mode == "openai":
            default_endpoint = "http://localhost:8000/v1/chat/completions"
            self.endpoint = endpoint or os.getenv("OPENAI_ENDPOINT", default_endpoint)
            self.auth_token = auth_token or os.getenv("OPENAI_API_KEY")
        elif self.api_mode == "ollama_chat":
            raw_endpoint = endpoint or os.getenv("OLLAMA_CHAT_ENDPOINT", "http://localhost:11434/api/chat")
            self.endpoint = ensure_ollama_endpoint(raw_endpoint, "api/chat")
            self.auth_token = auth_token or os.getenv("OLLAMA_BEARER")
        else:
            raw_endpoint = endpoint or os.getenv("OLLAMA_ENDPOINT", "http://localhost:11434/api/generate")
            self.endpoint = ensure_ollama_endpoint(raw_endpoint, "api/generate")
            self.auth_token = auth_token or os.getenv("OLLAMA_BEARER")

    def call(
        self,
        model: str,
        prompt: str,
        *,
        system: Optional[str] = None,
        temperature: float = 0.0,
        max_tokens: int = 2000,
        timeout: float = 20.0,
    ) -> LLMResponse:
        if self.api_mode == "anthropic":
            text = self._call_anthropic(model, prompt, system, temperature, max_tokens, timeout)
        elif self.api_mode == "openai":
            text = self._call_openai(model, prompt, system, temperature, max_tokens, timeout)
        elif self.api_mode == "ollama_chat":
            text = self._call_ollama_chat(model, prompt, system, temperature, max_tokens, timeout)
        else:
            text = self._call_ollama(model, prompt, system, temperature, max_tokens, timeout)
        return LLMResponse(
            text=text,
            model=model,
            prompt=prompt,
            temperature=temperature,
            max_tokens=max_tokens,
        )

    def _bearer_headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {"Content-Type": "application/json"}
        if self.auth_token:
            headers["Authorization"] = f"Bearer {self.auth_token}"
        return headers

    def _call_anthropic(
        self,
        model: str,
        prompt: str,
        system: Optional[str],
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> str:
        headers = {
            "Content-Type": "application/json",
            "anthropic-version": ANTHROPIC_VERSION,
        }
        if self.auth_token:
            headers["x-api-key"] = self.auth_token

        payload: Dict[str, Any] = {
            "model": model,
            "max_tokens": int(max_tokens),
            "temperature": temperature,
            "messages": [{"role": "user", "content": prompt}],
        }
        if system:
            payload["system"] = system

        data = _post_json(endpoint=self.endpoint, payload=payload, headers=headers, timeout=timeout, model=model)
        blocks = data.get("content") or []
        return "".join(
            block.get("text", "")
            for block in blocks
            if isinstance(block, dict) and block.get("type") == "text"
        )

    def _call_openai(
        self,
        model: str,
        prompt: str,
        system: Optional[str],
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> str:
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        payload = {
            "model": model,
            "messages": messages,
            "temperature": temperature,
            "max_tokens": int(max_tokens),
        }

        data = _post_json(
            endpoint=self.endpoint, payload=payload, headers=self._bearer_headers(), timeout=timeout, model=model
        )
        choices = data.get("choices") or []
        if not choices:
            return ""
        choice = choices[0]
        message = choice.get("message") or {}
        return message.get("content", "") or choice.get("text", "")

    def _call_ollama(
        self,
        model: str,
        prompt: str,
        system: Optional[str],
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> str:
        payload: Dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": int(max_tokens)},
        }
        if system:
            payload["system"] = system

        data = _post_json(
            endpoint=self.endpoint, payload=payload, headers=self._bearer_headers(), timeout=timeout, model=model
        )
        return data.get("response", "")

    def _call_ollama_chat(
        self,
        model: str,
        prompt: str,
        system: Optional[str],
        temperature: float,
        max_tokens: int,
        timeout: float,
    ) -> str:
        messages = [{"role": "user", "content": prompt}]
        if system:
            messages.insert(0, {"role": "system", "content": system})
        payload = {
            "model": model,
            "messages": messages,
            "stream": False,
            "options": {"temperature": temperature, "num_predict": int(max_tokens)},
        }

        data = _post_json(
            endpoint=self.endpoint, payload=payload, headers=self._bearer_headers(), timeout=timeout, model=model
        )
        message = data.get("message") or {}
        return message.get("content", "")


__all__ = ["LLMClient", "LLMRequestError", "LLMResponse", "ensure_ollama_endpoint"]
