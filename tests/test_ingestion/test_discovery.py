"""
Tests for game_calendar.ingestion.discovery: Endfield bulletin-code lookup.

Covers:
  - extract_commons_js_url(): script tag, relative src, bare URL fallback
  - extract_code_from_js(): exact pair first, then best-scoring token
  - EndfieldCodeResolver.resolve(): override, caching window, fallback
"""

from __future__ import annotations

import asyncio

from game_calendar.ingestion.discovery import (
    ENDFIELD_CODE_FALLBACK,
    ENDFIELD_WEBVIEW_DEFAULT,
    EndfieldCodeResolver,
    extract_code_from_js,
    extract_commons_js_url,
    score_code_candidate,
)

COMMONS_URL = "https://web.hycdn.example/ef/commons.1a2b3c.js"
WEBVIEW_HTML = f'<html><head><script defer src="{COMMONS_URL}"></script></head></html>'


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def _resolve_many(fake_upstream, times: int = 1, clock=None, advance: float = 0.0, **kwargs):
    clock = clock or FakeClock()

    async def go():
        async with fake_upstream.client() as client:
            resolver = EndfieldCodeResolver(client, clock=clock, **kwargs)
            codes = []
            for _ in range(times):
                codes.append(await resolver.resolve())
                clock.now += advance
            return codes

    return asyncio.run(go())


# ── Pure helpers ──────────────────────────────────────────────────────────────


class TestExtractCommonsJsUrl:
    def test_script_src(self):
        assert extract_commons_js_url(WEBVIEW_HTML) == COMMONS_URL

    def test_relative_src_is_joined_with_base(self):
        html = '<script src="/static/js/commons.ff00.js"></script>'
        url = extract_commons_js_url(html, base_url=ENDFIELD_WEBVIEW_DEFAULT)
        assert url == "https://ef-webview.hypergryph.com/static/js/commons.ff00.js"

    def test_bare_url_fallback(self):
        html = 'window.__chunks = ["https://cdn.example/assets/commons.9z.js"];'
        assert extract_commons_js_url(html) == "https://cdn.example/assets/commons.9z.js"

    def test_missing(self):
        assert extract_commons_js_url("<html><script src='/main.js'></script></html>") is None


class TestExtractCode:
    def test_exact_pair_wins(self):
        js = 'a="endfield_LONGERCANDIDATE99";b=["code","endfield_AB12"]'
        assert extract_code_from_js(js) == "endfield_AB12"

    def test_best_scoring_token(self):
        js = "x='endfield_abc';y='endfield_X9Y8Z7';z='endfield_abcdefgh'"
        # X9Y8Z7: 6 + 10 + 5 = 21 beats abcdefgh: 8
        assert extract_code_from_js(js) == "endfield_X9Y8Z7"

    def test_webview_token_ignored(self):
        assert extract_code_from_js("load('endfield_webview')") is None

    def test_no_tokens(self):
        assert extract_code_from_js("console.log('hello')") is None

    def test_score(self):
        assert score_code_candidate("endfield_5SD9TN") == 21
        assert score_code_candidate("endfield_abc") == 3


# ── Resolver ──────────────────────────────────────────────────────────────────


class TestEndfieldCodeResolver:
    def test_override_skips_network(self, fake_upstream):
        codes = _resolve_many(fake_upstream, override="endfield_OVERRIDE1")
        assert codes == ["endfield_OVERRIDE1"]
        assert fake_upstream.requests == []

    def test_discovers_and_caches(self, fake_upstream):
        fake_upstream.add(ENDFIELD_WEBVIEW_DEFAULT, text=WEBVIEW_HTML)
        fake_upstream.add(COMMONS_URL, text='n(["code","endfield_NEW42"])')

        codes = _resolve_many(fake_upstream, times=3, advance=60)

        assert codes == ["endfield_NEW42"] * 3
        assert len(fake_upstream.requests_to(COMMONS_URL)) == 1

    def test_rediscovers_after_window(self, fake_upstream):
        fake_upstream.add(ENDFIELD_WEBVIEW_DEFAULT, text=WEBVIEW_HTML)
        fake_upstream.add(COMMONS_URL, text='n(["code","endfield_NEW42"])')

        _resolve_many(fake_upstream, times=2, advance=7 * 60 * 60)

        assert len(fake_upstream.requests_to(COMMONS_URL)) == 2

    def test_failure_returns_fallback(self, fake_upstream):
        fake_upstream.add(ENDFIELD_WEBVIEW_DEFAULT, status=500, text="down")
        assert _resolve_many(fake_upstream) == [ENDFIELD_CODE_FALLBACK]

    def test_missing_script_returns_fallback(self, fake_upstream):
        fake_upstream.add(ENDFIELD_WEBVIEW_DEFAULT, text="<html></html>")
        assert _resolve_many(fake_upstream) == [ENDFIELD_CODE_FALLBACK]

    def test_failure_is_not_cached(self, fake_upstream):
        fake_upstream.add(ENDFIELD_WEBVIEW_DEFAULT, text=WEBVIEW_HTML)
        fake_upstream.add(COMMONS_URL, text="no code here")

        codes = _resolve_many(fake_upstream, times=2)

        assert codes == [ENDFIELD_CODE_FALLBACK] * 2
        assert len(fake_upstream.requests_to(COMMONS_URL)) == 2

    def test_discover_reports_error(self, fake_upstream):
        fake_upstream.add(ENDFIELD_WEBVIEW_DEFAULT, text="<html></html>")

        async def go():
            async with fake_upstream.client() as client:
                return await EndfieldCodeResolver(client).discover()

        result = asyncio.run(go())
        assert not result.ok
        assert "commons" in str(result.error)
