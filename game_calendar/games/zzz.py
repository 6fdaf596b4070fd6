"""
Zenless Zone Zero pipeline (miHoYo ``nap_cn`` announcement API).

Three upstreams, fetched concurrently:

  - ``getActivityList`` (required): activity names with Unix-second windows
    but no body or image;
  - ``getAnnContent`` (optional): HTML bodies in ``list`` plus image-only
    entries in ``pic_list``;
  - ``getAnnList`` (optional): only used to find the current version notice,
    whose start anchors banner windows that omit their start.

Activities are enriched with the closest content record (fuzzy title
match). Limited banners (限时频段/独家频段) exist only in the content pool;
their windows are read from the body text. Both sets are merged by id and
sorted.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Optional

from game_calendar.extraction.html import normalize_title_key, strip_html
from game_calendar.extraction.matcher import ContentCandidate, pick_best_candidate
from game_calendar.extraction.time_range import extract_time_range
from game_calendar.extraction.version import VERSION_NOTICE_KEYWORDS
from game_calendar.games.base import (
    SOURCE_TZ_OFFSET,
    FetchContext,
    as_list,
    build_event,
    dig,
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
    content_items,
    current_notice,
    find_category,
    resolve_version,
)
from game_calendar.models.event import CalendarEvent, GameVersionInfo
from game_calendar.taxonomy.game_taxonomy import GameId
from game_calendar.utils.time_utils import unix_seconds_to_iso_with_offset

logger = logging.getLogger(__name__)

_API_BASE = "https://announcement-api.mihoyo.com/common/nap_cn/announcement/api/"
_API_QUERY = (
    "?uid=11111111&game=nap&game_biz=nap_cn&lang=zh-cn&bundle_id=nap_cn"
    "&channel_id=1&level=60&platform=pc&region=prod_gf_cn"
)
DEFAULT_ACTIVITY_API = f"{_API_BASE}getActivityList{_API_QUERY}"
DEFAULT_LIST_API = f"{_API_BASE}getAnnList{_API_QUERY}"
DEFAULT_CONTENT_API = f"{_API_BASE}getAnnContent{_API_QUERY}"

NOTICE_CATEGORY_TYPE_ID = 3


def _notice_items(list_payload: Any) -> list[AnnItem]:
    category = find_category(
        ann_categories(list_payload),
        type_id=NOTICE_CATEGORY_TYPE_ID,
        label_keyword="游戏公告",
    )
    return category_items(category)


def _item_banner(item: AnnItem) -> Optional[str]:
    for key in ("banner", "img"):
        value = item.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def build_candidates(items: list[AnnItem]) -> list[ContentCandidate]:
    """Content records that can take part in fuzzy matching."""
    candidates = []
    for item in items:
        candidate = ContentCandidate.from_title(
            item.get("title"), _item_banner(item), item.get("content")
        )
        if candidate.key:
            candidates.append(candidate)
    return candidates


def parse_activity_events(
    activities: list[Any], candidates: list[ContentCandidate]
) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    for activity in activities:
        if not isinstance(activity, dict):
            continue
        name = activity.get("name")
        start, end = activity.get("start_time"), activity.get("end_time")
        if not name or not start or not end:
            continue

        title = str(name)
        matched = pick_best_candidate(title, candidates) if candidates else None
        event = build_event(
            id=activity.get("activity_id") or f"{title}:{start}",
            title=title,
            start_time=unix_seconds_to_iso_with_offset(start, SOURCE_TZ_OFFSET),
            end_time=unix_seconds_to_iso_with_offset(end, SOURCE_TZ_OFFSET),
            is_gacha=is_gacha_title(GameId.ZZZ, title),
            banner=matched.banner if matched else None,
            content=matched.content if matched else None,
        )
        if event is not None:
            events.append(event)
    return events


def parse_gacha_events(
    items: list[AnnItem], *, fallback_start_iso: Optional[str]
) -> list[CalendarEvent]:
    """Limited banners from the content pool, one per ann id (or title key).

    A body that only states the end date starts at ``fallback_start_iso``,
    normally the start of the current version.
    """
    events: list[CalendarEvent] = []
    for item in items:
        title = strip_html(item.get("title"))
        if not is_gacha_title(GameId.ZZZ, title):
            continue

        window = extract_time_range(item.get("content"), SOURCE_TZ_OFFSET)
        ann_id = ann_id_of(item)
        event_id = f"zzz-gacha:{ann_id if ann_id is not None else normalize_title_key(title)}"
        event = build_event(
            id=event_id,
            title=title,
            start_time=window.start_iso or fallback_start_iso,
            end_time=window.end_iso,
            is_gacha=True,
            banner=_item_banner(item),
            content=item.get("content"),
        )
        if event is not None:
            events.append(event)
    return merge_by_id(events)


async def fetch_events(ctx: FetchContext) -> list[CalendarEvent]:
    upstream = ctx.upstream
    activity_payload, content_payload, list_payload = await asyncio.gather(
        ctx.get_json(upstream.zzz_activity_api_url or DEFAULT_ACTIVITY_API),
        fetch_optional("zzz content", ctx.get_json(upstream.zzz_content_api_url or DEFAULT_CONTENT_API)),
        fetch_optional("zzz ann list", ctx.get_json(upstream.zzz_api_url or DEFAULT_LIST_API)),
    )

    notice = current_notice(_notice_items(list_payload), keywords=VERSION_NOTICE_KEYWORDS)
    fallback_start_iso = notice.start_iso if notice is not None else None

    pool = content_items(content_payload, include_pics=True)
    candidates = build_candidates(pool)

    activities = as_list(dig(activity_payload, "data", "activity_list"))
    normal_events = parse_activity_events(activities, candidates)
    gacha_events = parse_gacha_events(pool, fallback_start_iso=fallback_start_iso)

    logger.info(
        "zzz: %d activities, %d banners (content pool %d)",
        len(normal_events), len(gacha_events), len(pool),
    )
    return sort_events(merge_by_id([*normal_events, *gacha_events]))


async def fetch_current_version(
    ctx: FetchContext, now: Optional[datetime] = None
) -> Optional[GameVersionInfo]:
    payload = await ctx.get_json(ctx.upstream.zzz_api_url or DEFAULT_LIST_API)
    return resolve_version(
        GameId.ZZZ,
        _notice_items(payload),
        keywords=VERSION_NOTICE_KEYWORDS,
        plain_title=True,
        now=now,
    )
