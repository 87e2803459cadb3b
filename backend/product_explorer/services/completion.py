"""
Hosted text-completion client (OpenRouter-style chat completions over HTTP).

Contract: prompt in, text out. Non-2xx status or a missing text field is a
failure. Rate-limit failures are classified so callers can switch models.
"""
from __future__ import annotations

import logging
from typing import Any, Optional, Protocol

import httpx

from product_explorer.core.config import Settings, get_settings

logger = logging.getLogger(__name__)

# Provider-specific rate-limit markers seen in error bodies (lowercase)
RATE_LIMIT_MARKERS = (
    "rate limit",
    "rate-limit",
    "rate_limit",
    "ratelimit",
    "too many requests",
    "resource_exhausted",
    "quota exceeded",
)


class CompletionError(Exception):
    """Any failed completion attempt."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def to_payload(self) -> dict[str, Any]:
        return {
            "error": str(self),
            "type": type(self).__name__,
            "status": self.status_code,
            "body": self.body[:1000],
        }


class RateLimitedError(CompletionError):
    """HTTP 429 or a provider rate-limit marker in the error body."""


class CompletionUnavailableError(CompletionError):
    """No credential configured; nothing was sent."""


def is_rate_limit(status_code: Optional[int], body: str) -> bool:
    if status_code == 429:
        return True
    lowered = (body or "").lower()
    return any(marker in lowered for marker in RATE_LIMIT_MARKERS)


class CompletionClient(Protocol):
    def complete(self, prompt: str, model: str, temperature: float, max_tokens: int) -> str:
        ...


class OpenRouterClient:
    """Synchronous chat-completions client; one POST per call, no client-side retry."""

    def __init__(
        self,
        api_key: Optional[str],
        base_url: str = "https://openrouter.ai/api/v1",
        site_url: str = "http://localhost:3000",
        app_title: str = "AI Product Explorer",
        http_client: Optional[httpx.Client] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.site_url = site_url
        self.app_title = app_title
        self._http = http_client

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "OpenRouterClient":
        settings = settings or get_settings()
        return cls(
            api_key=settings.openrouter_api_key,
            base_url=settings.openrouter_base_url,
            site_url=settings.site_url,
            app_title=settings.app_title,
        )

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": self.site_url,
            "X-Title": self.app_title,
        }

    def _post(self, url: str, payload: dict[str, Any]) -> httpx.Response:
        if self._http is not None:
            return self._http.post(url, json=payload, headers=self._headers())
        with httpx.Client() as client:
            return client.post(url, json=payload, headers=self._headers())

    def complete(self, prompt: str, model: str, temperature: float, max_tokens: int) -> str:
        if not self.api_key:
            raise CompletionUnavailableError("OPENROUTER_API_KEY is not set")

        payload = {
            "model": model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        try:
            resp = self._post(f"{self.base_url}/chat/completions", payload)
        except httpx.RequestError as e:
            raise CompletionError(f"completion request failed: {e}") from e

        if resp.status_code >= 400:
            body = resp.text
            error_cls = RateLimitedError if is_rate_limit(resp.status_code, body) else CompletionError
            raise error_cls(
                f"completion service returned HTTP {resp.status_code}",
                status_code=resp.status_code,
                body=body,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise CompletionError("completion service returned non-JSON body", resp.status_code, resp.text) from e

        # Some providers report errors (including rate limits) inside a 200 body
        if isinstance(data, dict) and data.get("error"):
            body = str(data["error"])
            error_cls = RateLimitedError if is_rate_limit(None, body) else CompletionError
            raise error_cls("completion service reported an error", resp.status_code, body)

        text = _extract_text(data)
        if not text:
            raise CompletionError("no text in completion response", resp.status_code, resp.text)
        return text


def _extract_text(data: Any) -> Optional[str]:
    """choices[0].message.content, trimmed; None if any level is missing."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return None
    if not isinstance(content, str):
        return None
    content = content.strip()
    return content or None
