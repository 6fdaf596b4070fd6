"""
Endfield bulletin-code discovery.

The Hypergryph bulletin API wants a ``code`` query parameter that is not
published anywhere except inside the webview's bundled JavaScript, and it
changes from time to time. Resolution is two-tier:

  1. ``discover()``: fetch the bootstrap webview HTML, locate the bundled
     ``commons.*.js`` script, fetch it, and pick the code. Returns a
     ``DiscoveryResult`` holding either the code or the error; never raises.
  2. ``resolve()``: configured override, else a still-fresh discovered
     value, else ``discover()``, else the hardcoded last-known-good code.

A failed discovery is logged and never fails the pipeline.
"""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urljoin

import httpx

from game_calendar.ingestion.http import DEFAULT_TIMEOUT_MS, UpstreamError, fetch_text

logger = logging.getLogger(__name__)

ENDFIELD_WEBVIEW_DEFAULT = "https://ef-webview.hypergryph.com/page/game_bulletin?target=IOS"

# Last code observed in the webview bundle.
ENDFIELD_CODE_FALLBACK = "endfield_5SD9TN"
CODE_PREFIX = "endfield_"
CODE_CACHE_TTL_SECONDS = 6 * 60 * 60

_SCRIPT_SRC_RE = re.compile(r"<script[^>]+src=\"([^\"]+/commons\.[^\"]+\.js)\"", re.IGNORECASE)
_BARE_SCRIPT_URL_RE = re.compile(r"https?://[^\s\"'<>]+/commons\.[^\s\"'<>]+\.js", re.IGNORECASE)
_DIRECT_CODE_RE = re.compile(r"\"code\",\"(endfield_[A-Za-z0-9]+)\"")
_ANY_CODE_RE = re.compile(r"endfield_[A-Za-z0-9]+")
_IGNORED_TOKENS = frozenset({"endfield_webview"})


class DiscoveryError(RuntimeError):
    """Raised inside discovery when a step finds nothing usable."""


@dataclass(frozen=True)
class DiscoveryResult:
    """Outcome of one discovery attempt: exactly one of ``value``/``error`` is set."""

    value: Optional[str] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.value is not None

    def unwrap_or(self, fallback: str) -> str:
        return self.value if self.value is not None else fallback


def extract_commons_js_url(html: str, base_url: Optional[str] = None) -> Optional[str]:
    """Find the bundled ``commons.*.js`` URL in the webview HTML."""
    m = _SCRIPT_SRC_RE.search(html)
    if m:
        src = m.group(1)
        return urljoin(base_url, src) if base_url else src
    m = _BARE_SCRIPT_URL_RE.search(html)
    return m.group(0) if m else None


def score_code_candidate(code: str) -> int:
    """Longer suffixes win; digits (+10) and uppercase letters (+5) add weight."""
    suffix = code[len(CODE_PREFIX):]
    score = len(suffix)
    if re.search(r"[0-9]", suffix):
        score += 10
    if re.search(r"[A-Z]", suffix):
        score += 5
    return score


def extract_code_from_js(js: str) -> Optional[str]:
    """Pick the bulletin code out of the bundle source.

    The exact ``"code","endfield_XXXX"`` pair wins; otherwise the
    best-scoring ``endfield_*`` token (first seen on ties).
    """
    m = _DIRECT_CODE_RE.search(js)
    if m:
        return m.group(1)

    candidates = [t for t in _ANY_CODE_RE.findall(js) if t not in _IGNORED_TOKENS]
    if not candidates:
        return None
    return max(candidates, key=score_code_candidate)


class EndfieldCodeResolver:
    """Resolves the bulletin code, caching discovered values in-process.

    Args:
        client: Shared HTTP client.
        webview_url: Bootstrap page to scrape; defaults to the IOS webview.
        override: Pre-known code; when set no network call is ever made.
        ttl_seconds: How long a discovered code is reused.
        timeout_ms: Per-request deadline for the discovery calls.
        clock: Monotonic seconds source; injectable for tests.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        webview_url: Optional[str] = None,
        override: Optional[str] = None,
        ttl_seconds: float = CODE_CACHE_TTL_SECONDS,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.webview_url = webview_url or ENDFIELD_WEBVIEW_DEFAULT
        self.override = (override or "").strip() or None
        self.ttl_seconds = ttl_seconds
        self.timeout_ms = timeout_ms
        self._clock = clock
        self._cached: Optional[tuple[str, float]] = None

    async def discover(self) -> DiscoveryResult:
        """Scrape the webview bundle for the current code. Never raises."""
        try:
            html = await fetch_text(self.client, self.webview_url, timeout_ms=self.timeout_ms)
            commons_url = extract_commons_js_url(html, base_url=self.webview_url)
            if not commons_url:
                raise DiscoveryError("Failed to find commons.*.js in webview HTML")

            js = await fetch_text(self.client, commons_url, timeout_ms=self.timeout_ms)
            code = extract_code_from_js(js)
            if not code:
                raise DiscoveryError("Failed to discover Endfield bulletin code")
        except (UpstreamError, DiscoveryError) as exc:
            return DiscoveryResult(error=exc)

        return DiscoveryResult(value=code)

    async def resolve(self) -> str:
        """Return the code to use right now; falls back instead of failing."""
        if self.override:
            return self.override

        if self._cached is not None and self._cached[1] > self._clock():
            return self._cached[0]

        result = await self.discover()
        if result.ok:
            self._cached = (result.value, self._clock() + self.ttl_seconds)  # type: ignore[assignment]
            logger.info("Discovered Endfield bulletin code %s", result.value)
        else:
            logger.warning(
                "Endfield code discovery failed (%s); using fallback %s",
                result.error, ENDFIELD_CODE_FALLBACK,
            )
        return result.unwrap_or(ENDFIELD_CODE_FALLBACK)
