"""
Honkai: Star Rail pipeline (miHoYo CN announcement API).

Same wire shape as genshin, but the filter is layered and order matters:

  1. banner titles (跃迁) are always kept;
  2. denylisted ``ann_id`` values are dropped;
  3. allowlisted words (活动说明) keep the item;
  4. denylisted title words drop it;
  5. a bare ``…说明`` suffix drops it.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

from game_calendar.extraction.version import VERSION_NOTICE_KEYWORDS
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
    "https://hkrpg-api-static.mihoyo.com/common/hkrpg_cn/announcement/api/getAnnList"
    "?game=hkrpg&game_biz=hkrpg_cn&lang=zh-cn&bundle_id=hkrpg_cn&platform=pc"
    "&region=prod_gf_cn&level=30&uid=11111111"
)
DEFAULT_CONTENT_API = (
    "https://hkrpg-api-static.mihoyo.com/common/hkrpg_cn/announcement/api/getAnnContent"
    "?game=hkrpg&game_biz=hkrpg_cn&lang=zh-cn&bundle_id=hkrpg_cn&platform=pc"
    "&region=prod_gf_cn&level=30&uid=11111111"
)

CATEGORY_TYPE_ID = 4

IGNORE_ANN_IDS = frozenset({194, 183, 171, 187, 185, 203, 505})
IGNORE_WORDS = (
    "绘画征集",
    "内容专题页",
    "调研",
    "防沉迷",
    "米游社",
    "专项意见",
    "问卷调查",
    "版本更新通知",
    "预下载功能",
    "周边限时",
    "周边上新",
    "角色演示",
    "上新",
    "同行任务",
    "无名勋礼",
    "工具更新",
    "激励计划",
    "攻略征集",
    "更新概览",
    "有奖问卷",
)
INCLUDE_WORDS = ("活动说明",)
IGNORE_SUFFIXES = ("说明",)


def is_event_item(item: AnnItem) -> bool:
    if not item.get("start_time") or not item.get("end_time"):
        return False
    title = str(item.get("title") or "")
    if is_gacha_title(GameId.STARRAIL, title):
        return True
    if ann_id_of(item) in IGNORE_ANN_IDS:
        return False
    if any(word in title for word in INCLUDE_WORDS):
        return True
    if any(word in title for word in IGNORE_WORDS):
        return False
    return not title.endswith(IGNORE_SUFFIXES)


async def _fetch_categories(ctx: FetchContext) -> list[dict[str, Any]]:
    payload = await ctx.get_json(ctx.upstream.starrail_api_url or DEFAULT_LIST_API)
    return ann_categories(payload)


async def fetch_events(ctx: FetchContext) -> list[CalendarEvent]:
    content_url = ctx.upstream.starrail_content_api_url or DEFAULT_CONTENT_API
    categories, content_payload = await asyncio.gather(
        _fetch_categories(ctx),
        fetch_optional("starrail content", ctx.get_json(content_url)),
    )
    contents = content_by_id(content_payload)

    category = find_category(categories, type_id=CATEGORY_TYPE_ID, fallback_first=True)
    items = category_items(category)
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
            is_gacha=is_gacha_title(GameId.STARRAIL, title),
            banner=item.get("banner") or detail.get("banner"),
            content=detail.get("content") or item.get("content"),
        )
        if event is not None:
            events.append(event)

    logger.info("starrail: %d events from %d list items", len(events), len(items))
    return sort_events(merge_by_id(events))


async def fetch_current_version(
    ctx: FetchContext, now: Optional[datetime] = None
) -> Optional[GameVersionInfo]:
    categories = await _fetch_categories(ctx)
    category = find_category(categories, type_id=CATEGORY_TYPE_ID, label_keyword="公告")
    return resolve_version(
        GameId.STARRAIL,
        category_items(category),
        keywords=VERSION_NOTICE_KEYWORDS,
        now=now,
    )
