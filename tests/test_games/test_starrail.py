"""Tests for the Honkai: Star Rail pipeline: layered filter and version notice."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from game_calendar.games import starrail


def _item(ann_id, title, start="2026-03-01 10:00:00", end="2026-03-15 03:59:59", **extra):
    return {"ann_id": ann_id, "title": title, "subtitle": "", "start_time": start, "end_time": end, **extra}


class TestIsEventItem:
    @pytest.mark.parametrize(
        "item, expected",
        [
            (_item(1, "「蝶立锋锷」角色活动跃迁"), True),
            # Banner wins even over the id denylist.
            (_item(194, "「流光定影」光锥活动跃迁"), True),
            (_item(194, "「花藏繁生」活动"), False),
            (_item(2, "「星芒战幕」活动说明"), True),
            (_item(3, "米游社有奖活动"), False),
            (_item(4, "模拟宇宙玩法说明"), False),
            (_item(5, "「以太战线」限时活动"), True),
            (_item(6, "活动", end=""), False),
        ],
    )
    def test_filter_order(self, item, expected):
        assert starrail.is_event_item(item) is expected


class TestFetchEvents:
    def test_first_category_fallback(self, fake_upstream, run_pipeline):
        payload = {
            "data": {
                "list": [
                    {
                        "type_id": 99,
                        "type_label": "公告",
                        "list": [
                            _item(10, "「以太战线」限时活动", start="2026-03-03 12:00:00"),
                            _item(11, "「蝶立锋锷」角色活动跃迁"),
                        ],
                    }
                ]
            }
        }
        fake_upstream.add(starrail.DEFAULT_LIST_API, json=payload)
        fake_upstream.add(
            starrail.DEFAULT_CONTENT_API,
            json={"data": {"list": [{"ann_id": 10, "content": "<p>以太战线</p>"}]}},
        )

        events = run_pipeline(starrail.fetch_events)

        assert [e.id for e in events] == [11, 10]
        assert events[0].is_gacha is True
        assert events[1].content == "<p>以太战线</p>"
        assert events[1].start_time == "2026-03-03T12:00:00+08:00"

    def test_content_unreachable(self, fake_upstream, run_pipeline):
        payload = {"data": {"list": [{"type_id": 4, "list": [_item(10, "「以太战线」限时活动")]}]}}
        fake_upstream.add(starrail.DEFAULT_LIST_API, json=payload)
        fake_upstream.fail(starrail.DEFAULT_CONTENT_API)

        events = run_pipeline(starrail.fetch_events)
        assert [e.id for e in events] == [10]


class TestFetchCurrentVersion:
    NOW = datetime(2026, 3, 10, tzinfo=timezone.utc)

    def _payload(self, *items):
        return {"data": {"list": [{"type_id": 4, "type_label": "公告", "list": list(items)}]}}

    def test_numeric_label(self, fake_upstream, run_pipeline):
        fake_upstream.add(
            starrail.DEFAULT_LIST_API,
            json=self._payload(
                _item(1, "3.2版本更新说明", start="2026-02-25 06:00:00", end="2026-04-08 06:00:00"),
                _item(2, "3.3版本更新维护预告", start="2026-04-05 10:00:00", end="2026-04-08 06:00:00"),
            ),
        )
        info = run_pipeline(lambda ctx: starrail.fetch_current_version(ctx, now=self.NOW))
        assert info is not None
        assert info.version == "3.2"
        assert info.ann_id == 1

    def test_upcoming_when_nothing_active(self, fake_upstream, run_pipeline):
        fake_upstream.add(
            starrail.DEFAULT_LIST_API,
            json=self._payload(
                _item(1, "3.1版本更新说明", start="2026-01-10 06:00:00", end="2026-02-20 06:00:00"),
                _item(2, "3.3版本更新公告", start="2026-04-08 06:00:00", end="2026-05-20 06:00:00"),
            ),
        )
        info = run_pipeline(lambda ctx: starrail.fetch_current_version(ctx, now=self.NOW))
        assert info is not None
        assert info.version == "3.3"

    def test_unlabelled_notice_is_none(self, fake_upstream, run_pipeline):
        fake_upstream.add(
            starrail.DEFAULT_LIST_API,
            json=self._payload(_item(1, "版本更新说明", start="2026-02-25 06:00:00", end="2026-04-08 06:00:00")),
        )
        assert run_pipeline(lambda ctx: starrail.fetch_current_version(ctx, now=self.NOW)) is None
