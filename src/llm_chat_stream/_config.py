"""
This module manages connection settings for the chat endpoint.
It resolves the base URL, chat path, timeout and optional API key from
explicit values or environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field

ENV_BASE_URL = "LLM_CHAT_BASE_URL"
ENV_CHAT_PATH = "LLM_CHAT_PATH"
ENV_TIMEOUT_S = "LLM_CHAT_TIMEOUT_S"
ENV_API_KEY = "LLM_CHAT_API_KEY"
ENV_HTTP_DEBUG = "LLM_CHAT_HTTP_DEBUG"

DEFAULT_BASE_URL = "http://localhost:8787"
DEFAULT_CHAT_PATH = "/api/chat"
DEFAULT_TIMEOUT_S = 120.0


def http_debug_enabled() -> bool:
    return os.getenv(ENV_HTTP_DEBUG, "").lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True, slots=True)
class ClientSettings:
    """
    Configuration container for the chat endpoint.
    Explicit values take precedence over the environment.
    """

    base_url: str = DEFAULT_BASE_URL
    chat_path: str = DEFAULT_CHAT_PATH
    timeout_s: float = DEFAULT_TIMEOUT_S
    api_key: str | None = field(default=None, repr=False)

    @staticmethod
    def from_env_or_value(
        *,
        base_url: str | None = None,
        chat_path: str | None = None,
        timeout_s: float | None = None,
        api_key: str | None = None,
    ) -> ClientSettings:
        """
        Create a ClientSettings instance from provided values or environment variables.

        Args:
            base_url: Optional server origin, e.g. "https://chat.example.workers.dev".
            chat_path: Optional path of the streaming chat endpoint.
            timeout_s: Optional request timeout in seconds.
            api_key: Optional bearer token; most deployments need none.

        Returns:
            An initialized ClientSettings instance.

        Raises:
            ValueError: If the timeout is not a positive number.
        """
        url = base_url or os.getenv(ENV_BASE_URL) or DEFAULT_BASE_URL
        path = chat_path or os.getenv(ENV_CHAT_PATH) or DEFAULT_CHAT_PATH
        if not path.startswith("/"):
            path = "/" + path

        if timeout_s is None:
            raw_timeout = os.getenv(ENV_TIMEOUT_S)
            try:
                timeout_s = float(raw_timeout) if raw_timeout else DEFAULT_TIMEOUT_S
            except ValueError as e:
                raise ValueError(f"{ENV_TIMEOUT_S} must be a number, got {raw_timeout!r}") from e
        if timeout_s <= 0:
            raise ValueError(f"timeout_s must be positive, got {timeout_s!r}")

        return ClientSettings(
            base_url=url.rstrip("/"),
            chat_path=path,
            timeout_s=timeout_s,
            api_key=api_key or os.getenv(ENV_API_KEY) or None,
        )
