"""Tests for CalendarEvent / GameVersionInfo: window validation and wire shape."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from game_calendar.models.event import CalendarEvent, GameVersionInfo
from game_calendar.taxonomy.game_taxonomy import GameId


class TestCalendarEventWindow:
    def test_valid_construction(self, make_event):
        ev = make_event()
        assert ev.id == 1
        assert ev.is_gacha is None
        assert ev.start == datetime(2026, 3, 1, 10, 0, tzinfo=timezone(timedelta(hours=8)))
        assert ev.end > ev.start

    def test_end_before_start_raises(self, make_event):
        with pytest.raises(ValidationError, match="strictly after"):
            make_event(start_time="2026-03-15T00:00:00+08:00", end_time="2026-03-01T00:00:00+08:00")

    def test_zero_length_window_raises(self, make_event):
        with pytest.raises(ValidationError, match="strictly after"):
            make_event(start_time="2026-03-01T10:00:00+08:00", end_time="2026-03-01T10:00:00+08:00")

    def test_window_compares_instants_across_offsets(self, make_event):
        # 10:00+08:00 is 02:00Z; 03:00Z is an hour later.
        ev = make_event(start_time="2026-03-01T10:00:00+08:00", end_time="2026-03-01T03:00:00Z")
        assert ev.end - ev.start == timedelta(hours=1)

    def test_naive_time_rejected(self, make_event):
        with pytest.raises(ValidationError, match="offset-aware"):
            make_event(start_time="2026-03-01T10:00:00")

    def test_garbage_time_rejected(self, make_event):
        with pytest.raises(ValidationError, match="end_time"):
            make_event(end_time="next tuesday")

    def test_frozen(self, make_event):
        ev = make_event()
        with pytest.raises(ValidationError):
            ev.title = "changed"


class TestCalendarEventWire:
    def test_link_url_serialized_as_camel_case(self, make_event):
        wire = make_event(link_url="https://wiki.example/entry/1").to_wire()
        assert wire["linkUrl"] == "https://wiki.example/entry/1"
        assert "link_url" not in wire

    def test_alias_accepted_on_input(self, make_event):
        ev = make_event(linkUrl="https://wiki.example/entry/2")
        assert ev.link_url == "https://wiki.example/entry/2"

    def test_absent_optionals_omitted(self, make_event):
        wire = make_event().to_wire()
        assert set(wire) == {"id", "title", "start_time", "end_time"}

    def test_false_is_gacha_is_kept(self, make_event):
        assert make_event(is_gacha=False).to_wire()["is_gacha"] is False

    def test_string_id_kept_verbatim(self, make_event):
        assert make_event(id="zzz-gacha:123").to_wire()["id"] == "zzz-gacha:123"


class TestGameVersionInfo:
    def test_wire_shape(self):
        info = GameVersionInfo(
            game=GameId.GENSHIN,
            version="5.4",
            start_time="2026-02-12T06:00:00+08:00",
            end_time="2026-03-25T06:00:00+08:00",
            ann_id=9001,
        )
        assert info.to_wire() == {
            "game": "genshin",
            "version": "5.4",
            "start_time": "2026-02-12T06:00:00+08:00",
            "end_time": "2026-03-25T06:00:00+08:00",
            "ann_id": 9001,
        }

    def test_inverted_window_raises(self):
        with pytest.raises(ValidationError):
            GameVersionInfo(
                game=GameId.ZZZ,
                version="2.0",
                start_time="2026-03-25T06:00:00+08:00",
                end_time="2026-02-12T06:00:00+08:00",
            )
