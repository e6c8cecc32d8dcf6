"""Minimal OpenRouter chat-completions client."""

from __future__ import annotations

import json
import logging
import os
import urllib.error
import urllib.request
from typing import Any

logger = logging.getLogger(__name__)

API_KEY_ENV_VAR = "OPENROUTER_API_KEY"
DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"


class GenerationError(RuntimeError):
    """Raised when the generation service cannot produce text."""


class OpenRouterClient:
    """Send one user prompt, return the first completion's text."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "",
        base_url: str = DEFAULT_BASE_URL,
        timeout_s: float = 120.0,
    ) -> None:
        self.api_key = api_key if api_key is not None else os.environ.get(API_KEY_ENV_VAR, "")
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s

    def complete(self, prompt: str, model: str | None = None) -> str:
        if not self.api_key:
            raise GenerationError(
                f"OpenRouter API key is not set. Please set the {API_KEY_ENV_VAR} environment variable."
            )
        payload = {
            "model": model or self.model,
            "messages": [{"role": "user", "content": prompt}],
        }
        req = urllib.request.Request(
            f"{self.base_url}/chat/completions",
            data=json.dumps(payload).encode("utf-8"),
            headers={
                "Authorization": f"Bearer {self.api_key}",
                "Content-Type": "application/json",
            },
            method="POST",
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout_s) as resp:
                body = resp.read().decode("utf-8")
        except urllib.error.HTTPError as e:
            try:
                detail = e.read().decode("utf-8", errors="replace")
            except OSError:
                detail = ""
            raise GenerationError(f"OpenRouter API request failed ({e.code}): {detail}") from e
        except urllib.error.URLError as e:
            raise GenerationError(f"Could not reach OpenRouter: {e.reason}") from e
        except TimeoutError as e:
            raise GenerationError("OpenRouter request timed out.") from e

        try:
            data: Any = json.loads(body)
        except json.JSONDecodeError as e:
            raise GenerationError(f"OpenRouter returned invalid JSON: {body[:500]}") from e
        return extract_content(data)


def extract_content(data: Any) -> str:
    """Pull the first choice's message text out of a chat-completions response."""
    if not isinstance(data, dict):
        raise GenerationError("OpenRouter response root must be a JSON object.")
    error = data.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else error
        raise GenerationError(f"OpenRouter reported an error: {message}")
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        raise GenerationError("No content in OpenRouter API response")
    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content.strip():
        raise GenerationError("No content in OpenRouter API response")
    return content
