"""
Tests for game_calendar.ingestion.http: bounded fetch and error taxonomy.

Covers:
  - fetch_json()/fetch_text(): success paths, default User-Agent
  - non-2xx → UpstreamStatusError with a 200-char body snippet
  - deadline → UpstreamTimeoutError (also a TimeoutError)
  - transport failure → UpstreamError; bad JSON → UpstreamPayloadError
"""

from __future__ import annotations

import asyncio

import httpx
import pytest

from game_calendar.ingestion.http import (
    BODY_SNIPPET_CHARS,
    DEFAULT_USER_AGENT,
    UpstreamError,
    UpstreamPayloadError,
    UpstreamStatusError,
    UpstreamTimeoutError,
    fetch_json,
    fetch_text,
)

URL = "https://api.example.test/feed"


def _run(fake_upstream, call):
    async def go():
        async with fake_upstream.client() as client:
            return await call(client)

    return asyncio.run(go())


class TestFetchSuccess:
    def test_fetch_json_decodes_body(self, fake_upstream):
        fake_upstream.add(URL, json={"data": {"list": [1, 2]}})
        result = _run(fake_upstream, lambda c: fetch_json(c, URL))
        assert result == {"data": {"list": [1, 2]}}

    def test_fetch_text_returns_body(self, fake_upstream):
        fake_upstream.add(URL, text="<html>ok</html>")
        assert _run(fake_upstream, lambda c: fetch_text(c, URL)) == "<html>ok</html>"

    def test_default_user_agent_is_sent(self, fake_upstream):
        fake_upstream.add(URL, json={})
        _run(fake_upstream, lambda c: fetch_json(c, URL))
        assert fake_upstream.requests[0].headers["user-agent"] == DEFAULT_USER_AGENT

    def test_caller_user_agent_wins(self, fake_upstream):
        fake_upstream.add(URL, json={})
        _run(fake_upstream, lambda c: fetch_json(c, URL, headers={"User-Agent": "custom/1.0"}))
        assert fake_upstream.requests[0].headers["user-agent"] == "custom/1.0"

    def test_post_with_headers_and_params(self, fake_upstream):
        fake_upstream.add(URL, method="POST", json={"code": 200})
        _run(
            fake_upstream,
            lambda c: fetch_json(
                c, URL, method="POST", headers={"Wiki_type": "9"}, params={"page": 1}
            ),
        )
        request = fake_upstream.requests[0]
        assert request.method == "POST"
        assert request.headers["wiki_type"] == "9"
        assert request.url.params["page"] == "1"


class TestFetchErrors:
    def test_non_2xx_raises_status_error(self, fake_upstream):
        fake_upstream.add(URL, status=503, text="x" * 500)
        with pytest.raises(UpstreamStatusError) as exc_info:
            _run(fake_upstream, lambda c: fetch_json(c, URL))
        err = exc_info.value
        assert err.status == 503
        assert err.url == URL
        assert len(err.body_snippet) == BODY_SNIPPET_CHARS
        assert "503" in str(err)

    def test_status_error_is_upstream_error(self, fake_upstream):
        fake_upstream.add(URL, status=404, text="missing")
        with pytest.raises(UpstreamError):
            _run(fake_upstream, lambda c: fetch_text(c, URL))

    def test_deadline_exceeded_raises_timeout(self, fake_upstream):
        async def slow(request):
            await asyncio.sleep(5)
            return httpx.Response(200, json={})

        fake_upstream.add(URL, handler=slow)
        with pytest.raises(UpstreamTimeoutError) as exc_info:
            _run(fake_upstream, lambda c: fetch_json(c, URL, timeout_ms=50))
        assert exc_info.value.timeout_ms == 50
        assert isinstance(exc_info.value, TimeoutError)

    def test_transport_timeout_maps_to_timeout_error(self, fake_upstream):
        fake_upstream.fail(URL, httpx.ReadTimeout)
        with pytest.raises(UpstreamTimeoutError):
            _run(fake_upstream, lambda c: fetch_json(c, URL))

    def test_connect_error_maps_to_upstream_error(self, fake_upstream):
        fake_upstream.fail(URL, httpx.ConnectError)
        with pytest.raises(UpstreamError) as exc_info:
            _run(fake_upstream, lambda c: fetch_json(c, URL))
        assert not isinstance(exc_info.value, UpstreamTimeoutError)

    def test_invalid_json_raises_payload_error(self, fake_upstream):
        fake_upstream.add(URL, text="<html>not json</html>")
        with pytest.raises(UpstreamPayloadError):
            _run(fake_upstream, lambda c: fetch_json(c, URL))
