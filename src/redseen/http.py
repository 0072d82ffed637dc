"""Shared HTTP client factory."""

from __future__ import annotations

import httpx

from redseen.settings import DEFAULT_USER_AGENT


def create_http_client(
    *,
    proxy_url: str | None = None,
    user_agent: str = DEFAULT_USER_AGENT,
    timeout: float = 30.0,
    **kwargs,
) -> httpx.Client:
    """Create an httpx.Client with a descriptive User-Agent and optional proxy."""
    headers = {"User-Agent": user_agent}
    if "headers" in kwargs:
        headers.update(kwargs.pop("headers"))
    kwargs.setdefault("follow_redirects", True)
    return httpx.Client(
        headers=headers,
        timeout=timeout,
        proxy=proxy_url,
        **kwargs,
    )
