"""
Genshin Impact pipeline (miHoYo CN announcement API).

Events come from the 活动公告 category (``type_id == 1``) of ``getAnnList``;
``getAnnContent`` is fetched alongside and joined by ``ann_id`` for the HTML
body. The content call is optional: when it fails the list alone is used.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

from game_calendar.games.base import (
    FetchContext,
    build_event,
    fetch_optional,
    merge_by_id,
    sort_events,
)
from game_calendar.games.gacha import is_gacha_title
from game_calendar.games.mihoyo import (
    AnnItem,
    ann_categories,
    ann_id_of,
    category_items,
    content_by_id,
    find_category,
    item_window,
    resolve_version,
)
from game_calendar.models.event import CalendarEvent, GameVersionInfo
from game_calendar.taxonomy.game_taxonomy import GameId

logger = logging.getLogger(__name__)

DEFAULT_LIST_API = (
    "https://hk4e-api.mihoyo.com/common/hk4e_cn/announcement/api/getAnnList"
    "?game=hk4e&game_biz=hk4e_cn&lang=zh-cn&bundle_id=hk4e_cn&platform=pc"
    "&region=cn_gf01&level=55&uid=100000000"
)
DEFAULT_CONTENT_API = (
    "https://hk4e-api.mihoyo.com/common/hk4e_cn/announcement/api/getAnnContent"
    "?game=hk4e&game_biz=hk4e_cn&lang=zh-cn&bundle_id=hk4e_cn&platform=pc"
    "&region=cn_gf01&level=55&uid=100000000"
)

EVENT_CATEGORY_TYPE_ID = 1
NOTICE_CATEGORY_TYPE_ID = 2
VERSION_NOTICE_KEYWORD = "版本更新说明"

IGNORE_ANN_IDS = frozenset({495, 1263, 423, 422, 762, 20835})
IGNORE_WORDS = (
    "修复",
    "内容专题页",
    "米游社",
    "调研",
    "防沉迷",
    "问卷",
    "公平运营",
    "纪行",
    "有奖活动",
    "反馈功能",
)


def is_event_item(item: AnnItem) -> bool:
    """Keep items with both times, not denylisted by id or title word."""
    if not item.get("start_time") or not item.get("end_time"):
        return False
    if ann_id_of(item) in IGNORE_ANN_IDS:
        return False
    title = str(item.get("title") or "")
    return not any(word in title for word in IGNORE_WORDS)


async def _fetch_categories(ctx: FetchContext) -> list[dict[str, Any]]:
    payload = await ctx.get_json(ctx.upstream.genshin_api_url or DEFAULT_LIST_API)
    return ann_categories(payload)


async def fetch_events(ctx: FetchContext) -> list[CalendarEvent]:
    content_url = ctx.upstream.genshin_content_api_url or DEFAULT_CONTENT_API
    categories, content_payload = await asyncio.gather(
        _fetch_categories(ctx),
        fetch_optional("genshin content", ctx.get_json(content_url)),
    )
    contents = content_by_id(content_payload)

    items = category_items(find_category(categories, type_id=EVENT_CATEGORY_TYPE_ID))
    events: list[CalendarEvent] = []
    for item in items:
        if not is_event_item(item):
            continue
        ann_id = ann_id_of(item)
        if ann_id is None:
            continue
        detail = contents.get(ann_id, {})
        title = str(item.get("title") or "")
        start_iso, end_iso = item_window(item)
        event = build_event(
            id=ann_id,
            title=title,
            start_time=start_iso,
            end_time=end_iso,
            is_gacha=is_gacha_title(GameId.GENSHIN, title),
            banner=item.get("banner") or detail.get("banner"),
            content=detail.get("content") or item.get("content"),
        )
        if event is not None:
            events.append(event)

    logger.info("genshin: %d events from %d list items", len(events), len(items))
    return sort_events(merge_by_id(events))


async def fetch_current_version(
    ctx: FetchContext, now: Optional[datetime] = None
) -> Optional[GameVersionInfo]:
    categories = await _fetch_categories(ctx)
    category = find_category(
        categories, type_id=NOTICE_CATEGORY_TYPE_ID, label_keyword="游戏公告"
    )
    return resolve_version(
        GameId.GENSHIN,
        category_items(category),
        keywords=(VERSION_NOTICE_KEYWORD,),
        exclude=(),
        loose_label=True,
        subtitle_remainder_keyword=VERSION_NOTICE_KEYWORD,
        now=now,
    )
