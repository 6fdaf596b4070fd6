"""
Shared pytest fixtures for the Game Calendar test suite.

Provides:
  - ``fake_upstream``: an in-memory HTTP upstream built on
    ``httpx.MockTransport``. Routes are registered per (method, URL without
    query) and every request is recorded for assertions.
  - ``run_pipeline``: runs a pipeline coroutine function against
    ``fake_upstream`` with a fresh ``FetchContext`` and ``asyncio.run``.
  - Sample ``CalendarEvent`` factories.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional

import httpx
import pytest

from game_calendar.config import UpstreamOverrides
from game_calendar.games.base import FetchContext
from game_calendar.models.event import CalendarEvent

Responder = Callable[[httpx.Request], Any]


def _route_key(method: str, url: Any) -> tuple[str, str]:
    u = httpx.URL(url)
    return method.upper(), f"{u.scheme}://{u.host}{u.path}"


# ── Fake upstream ─────────────────────────────────────────────────────────────


class FakeUpstream:
    """Route table for ``httpx.MockTransport``.

    Unregistered URLs answer 404 so a missing route shows up as an
    ``UpstreamStatusError`` rather than a hang.
    """

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Responder] = {}
        self.requests: list[httpx.Request] = []

    def add(
        self,
        url: str,
        *,
        method: str = "GET",
        json: Any = None,
        text: Optional[str] = None,
        status: int = 200,
        handler: Optional[Responder] = None,
    ) -> None:
        """Register a canned response, or a ``handler(request)`` (sync or async)."""
        if handler is not None:
            responder: Responder = handler
        elif text is not None:
            responder = lambda request: httpx.Response(status, text=text)  # noqa: E731
        else:
            responder = lambda request: httpx.Response(status, json=json)  # noqa: E731
        self.routes[_route_key(method, url)] = responder

    def fail(self, url: str, exc_type: type[Exception] = httpx.ConnectError, method: str = "GET") -> None:
        def raise_(request: httpx.Request) -> httpx.Response:
            raise exc_type("simulated failure", request=request)

        self.add(url, method=method, handler=raise_)

    def handle(self, request: httpx.Request) -> Any:
        self.requests.append(request)
        responder = self.routes.get(_route_key(request.method, request.url))
        if responder is None:
            return httpx.Response(404, text=f"no route for {request.method} {request.url}")
        return responder(request)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handle))

    def requests_to(self, url: str) -> list[httpx.Request]:
        key = _route_key("GET", url)[1]
        return [r for r in self.requests if _route_key(r.method, r.url)[1] == key]


@pytest.fixture
def fake_upstream() -> FakeUpstream:
    """A fresh, empty fake upstream."""
    return FakeUpstream()


@pytest.fixture
def run_pipeline(fake_upstream: FakeUpstream):
    """Return ``run(fn, upstream=None, **ctx_kwargs)`` that awaits ``fn(ctx)``."""

    def run(
        fn: Callable[..., Any],
        upstream: Optional[UpstreamOverrides] = None,
        **ctx_kwargs: Any,
    ) -> Any:
        async def go() -> Any:
            async with fake_upstream.client() as client:
                ctx = FetchContext(
                    client=client,
                    upstream=upstream or UpstreamOverrides(),
                    **ctx_kwargs,
                )
                return await fn(ctx)

        return asyncio.run(go())

    return run


# ── Sample domain object factories ────────────────────────────────────────────


@pytest.fixture
def make_event() -> Callable[..., CalendarEvent]:
    """Factory for valid ``CalendarEvent`` instances with overridable fields."""

    def make(**overrides: Any) -> CalendarEvent:
        fields: dict[str, Any] = {
            "id": 1,
            "title": "测试活动",
            "start_time": "2026-03-01T10:00:00+08:00",
            "end_time": "2026-03-15T03:59:00+08:00",
        }
        fields.update(overrides)
        return CalendarEvent(**fields)

    return make
