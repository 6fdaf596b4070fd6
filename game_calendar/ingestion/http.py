"""
Bounded HTTP fetch: the only place the pipelines touch the network.

Every upstream call goes through ``fetch_json()`` or ``fetch_text()``:
  - a hard whole-request deadline (default 12 s) enforced with
    ``asyncio.timeout``; on expiry the in-flight request is cancelled;
  - a default ``User-Agent`` when the caller did not set one;
  - a uniform error taxonomy (see below) instead of raw ``httpx`` errors.

No retries happen here. Resilience against transient failures comes from the
result cache's freshness window.

Error taxonomy::

    UpstreamError                 (RuntimeError)
      ├── UpstreamStatusError     non-2xx response; url, status, body snippet
      ├── UpstreamTimeoutError    deadline exceeded (also a TimeoutError)
      └── UpstreamPayloadError    body was not valid JSON
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Mapping, Optional

import httpx

from game_calendar.config import DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 12_000
BODY_SNIPPET_CHARS = 200


# ── Custom exceptions ─────────────────────────────────────────────────────────


class UpstreamError(RuntimeError):
    """Base class for any failed upstream call.

    Attributes:
        url: The requested URL.
    """

    def __init__(self, url: str, message: str) -> None:
        self.url = url
        super().__init__(message)


class UpstreamStatusError(UpstreamError):
    """Raised when an upstream answers with a non-2xx status.

    Attributes:
        url:          The requested URL.
        status:       HTTP status code.
        body_snippet: First 200 characters of the response body.
    """

    def __init__(self, url: str, status: int, body_snippet: str) -> None:
        self.status = status
        self.body_snippet = body_snippet
        super().__init__(url, f"Upstream error {status}: {body_snippet}")


class UpstreamTimeoutError(UpstreamError, TimeoutError):
    """Raised when a request does not complete within its deadline.

    Attributes:
        url:        The requested URL.
        timeout_ms: The deadline that was exceeded.
    """

    def __init__(self, url: str, timeout_ms: int) -> None:
        self.timeout_ms = timeout_ms
        super().__init__(url, f"Upstream request timed out after {timeout_ms} ms: {url}")


class UpstreamPayloadError(UpstreamError):
    """Raised when a 2xx response body cannot be decoded as JSON."""


# ── Fetch helpers ─────────────────────────────────────────────────────────────


async def _request(
    client: httpx.AsyncClient,
    url: str,
    *,
    method: str = "GET",
    headers: Optional[Mapping[str, str]] = None,
    params: Optional[Mapping[str, Any]] = None,
    data: Optional[Mapping[str, Any]] = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    user_agent: str = DEFAULT_USER_AGENT,
) -> httpx.Response:
    merged = httpx.Headers(headers or {})
    if "user-agent" not in merged:
        merged["user-agent"] = user_agent

    logger.debug("%s %s", method, url)
    try:
        async with asyncio.timeout(timeout_ms / 1000):
            resp = await client.request(
                method,
                url,
                headers=merged,
                params=params,
                data=data,
                timeout=timeout_ms / 1000,
            )
    except (TimeoutError, httpx.TimeoutException) as exc:
        logger.warning("Timeout after %d ms: %s %s", timeout_ms, method, url)
        raise UpstreamTimeoutError(url, timeout_ms) from exc
    except httpx.HTTPError as exc:
        logger.warning("Transport failure: %s %s (%s)", method, url, exc)
        raise UpstreamError(url, f"Upstream request failed: {exc}") from exc

    if not resp.is_success:
        snippet = resp.text[:BODY_SNIPPET_CHARS]
        logger.warning("Upstream %s returned %d", url, resp.status_code)
        raise UpstreamStatusError(url, resp.status_code, snippet)

    return resp


async def fetch_json(
    client: httpx.AsyncClient,
    url: str,
    *,
    method: str = "GET",
    headers: Optional[Mapping[str, str]] = None,
    params: Optional[Mapping[str, Any]] = None,
    data: Optional[Mapping[str, Any]] = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    user_agent: str = DEFAULT_USER_AGENT,
) -> Any:
    """Request ``url`` and decode the body as JSON.

    Raises:
        UpstreamStatusError: On a non-2xx status.
        UpstreamTimeoutError: When ``timeout_ms`` elapses first.
        UpstreamPayloadError: When the body is not JSON.
        UpstreamError: On any other transport failure.
    """
    resp = await _request(
        client, url,
        method=method, headers=headers, params=params, data=data,
        timeout_ms=timeout_ms, user_agent=user_agent,
    )
    try:
        return resp.json()
    except ValueError as exc:
        raise UpstreamPayloadError(url, f"Upstream returned non-JSON body: {url}") from exc


async def fetch_text(
    client: httpx.AsyncClient,
    url: str,
    *,
    method: str = "GET",
    headers: Optional[Mapping[str, str]] = None,
    params: Optional[Mapping[str, Any]] = None,
    data: Optional[Mapping[str, Any]] = None,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    user_agent: str = DEFAULT_USER_AGENT,
) -> str:
    """Request ``url`` and return the decoded body text.

    Raises the same errors as ``fetch_json()`` except ``UpstreamPayloadError``.
    """
    resp = await _request(
        client, url,
        method=method, headers=headers, params=params, data=data,
        timeout_ms=timeout_ms, user_agent=user_agent,
    )
    return resp.text
