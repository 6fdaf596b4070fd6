"""Tests for GameId → pipeline dispatch."""

from __future__ import annotations

from game_calendar.games import genshin
from game_calendar.games.registry import fetch_current_version_for_game, fetch_events_for_game
from game_calendar.taxonomy.game_taxonomy import GameId


class TestRegistry:
    def test_events_dispatch(self, fake_upstream, run_pipeline):
        fake_upstream.add(genshin.DEFAULT_LIST_API, json={"data": {"list": []}})
        fake_upstream.add(genshin.DEFAULT_CONTENT_API, json={"data": {"list": []}})

        assert run_pipeline(lambda ctx: fetch_events_for_game(GameId.GENSHIN, ctx)) == []
        assert fake_upstream.requests_to(genshin.DEFAULT_LIST_API)

    def test_endfield_has_no_version_feed(self, fake_upstream, run_pipeline):
        result = run_pipeline(lambda ctx: fetch_current_version_for_game(GameId.ENDFIELD, ctx))
        assert result is None
        assert fake_upstream.requests == []
