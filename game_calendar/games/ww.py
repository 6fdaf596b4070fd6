"""
Wuthering Waves pipeline (Kuro wiki homepage).

The wiki homepage (``POST``, ``Wiki_type: 9``) carries ``sideModules``; the
one titled 版本活动 lists the current activities with a
``countDown.dateRange`` civil-time window. Its ``more.linkConfig.catalogueId``
points at a catalogue whose records map ``entryId`` to a cover image, which
is preferred over the module's own thumbnail.

Entries have no unique id of their own (several share an ``entryId``), so
ids are ``stable_hash64("<title>|<entryId>")``, or ``"<title>|<start>"``
without an entry id.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional

from game_calendar.extraction.version import (
    VERSION_NOTICE_KEYWORDS,
    extract_label_from_notice,
    is_version_notice_text,
    pick_current_notice,
)
from game_calendar.games.base import (
    SOURCE_TZ_OFFSET,
    FetchContext,
    as_dict,
    as_list,
    build_event,
    dig,
    fetch_optional,
    merge_by_id,
    sort_events,
    stable_hash64,
)
from game_calendar.games.gacha import is_gacha_title
from game_calendar.models.event import CalendarEvent, GameVersionInfo
from game_calendar.taxonomy.game_taxonomy import GameId
from game_calendar.utils.time_utils import to_iso_with_offset

logger = logging.getLogger(__name__)

DEFAULT_HOME_API = "https://api.kurobbs.com/wiki/core/homepage/getPage"
DEFAULT_CATALOGUE_API = "https://api.kurobbs.com/wiki/core/catalogue/item/getPage"
WIKI_TYPE = "9"
TARGET_MODULE_TITLE = "版本活动"
CATALOGUE_PAGE_LIMIT = 1000


def side_modules(payload: Any) -> list[dict[str, Any]]:
    modules = as_list(dig(payload, "data", "contentJson", "sideModules"))
    return [m for m in modules if isinstance(m, dict)]


def find_target_module(payload: Any) -> Optional[dict[str, Any]]:
    for module in side_modules(payload):
        if module.get("title") == TARGET_MODULE_TITLE:
            return module
    return None


def entry_window(entry: dict[str, Any]) -> tuple[Optional[str], Optional[str]]:
    """``countDown.dateRange`` as offset ISO strings, or ``(None, None)``."""
    date_range = as_list(dig(entry, "countDown", "dateRange"))
    if len(date_range) < 2 or not date_range[0] or not date_range[1]:
        return None, None
    return (
        to_iso_with_offset(str(date_range[0]), SOURCE_TZ_OFFSET),
        to_iso_with_offset(str(date_range[1]), SOURCE_TZ_OFFSET),
    )


def catalogue_images(payload: Any) -> dict[str, str]:
    """Map ``entryId`` → cover image URL from a catalogue page."""
    images: dict[str, str] = {}
    for record in as_list(dig(payload, "data", "results", "records")):
        entry_id = dig(record, "entryId")
        img = dig(record, "content", "contentUrl")
        if entry_id and isinstance(img, str) and img:
            images[str(entry_id)] = img
    return images


def parse_module_events(
    module: dict[str, Any], images: dict[str, str]
) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    for entry in as_list(module.get("content")):
        if not isinstance(entry, dict):
            continue
        date_range = as_list(dig(entry, "countDown", "dateRange"))
        start_iso, end_iso = entry_window(entry)
        if start_iso is None:
            continue

        title = str(entry.get("title") or "")
        link = as_dict(entry.get("linkConfig"))
        entry_id = str(link["entryId"]) if link.get("entryId") else None
        if entry_id:
            event_id = stable_hash64(f"{title}|{entry_id}")
        else:
            event_id = stable_hash64(f"{title}|{date_range[0]}")

        event = build_event(
            id=event_id,
            title=title,
            start_time=start_iso,
            end_time=end_iso,
            is_gacha=is_gacha_title(GameId.WW, title),
            banner=(images.get(entry_id) if entry_id else None) or entry.get("contentUrl"),
            link_url=link.get("linkUrl"),
        )
        if event is not None:
            events.append(event)
    return events


async def _fetch_home(ctx: FetchContext) -> Any:
    return await ctx.get_json(
        ctx.upstream.ww_home_api_url or DEFAULT_HOME_API,
        method="POST",
        headers={"Wiki_type": WIKI_TYPE},
    )


async def fetch_events(ctx: FetchContext) -> list[CalendarEvent]:
    home = await _fetch_home(ctx)
    module = find_target_module(home)
    if module is None:
        logger.info("ww: no %s module on the wiki homepage", TARGET_MODULE_TITLE)
        return []

    images: dict[str, str] = {}
    catalogue_id = dig(module, "more", "linkConfig", "catalogueId")
    if catalogue_id:
        catalogue = await fetch_optional(
            "ww catalogue",
            ctx.get_json(
                ctx.upstream.ww_catalogue_api_url or DEFAULT_CATALOGUE_API,
                method="POST",
                headers={
                    "Wiki_type": WIKI_TYPE,
                    "content-type": "application/x-www-form-urlencoded",
                },
                params={"catalogueId": catalogue_id, "page": 1, "limit": CATALOGUE_PAGE_LIMIT},
            ),
        )
        images = catalogue_images(catalogue)

    events = parse_module_events(module, images)
    logger.info("ww: %d events (%d catalogue images)", len(events), len(images))
    return sort_events(merge_by_id(events))


async def fetch_current_version(
    ctx: FetchContext, now: Optional[datetime] = None
) -> Optional[GameVersionInfo]:
    """Version-update entries anywhere on the homepage, windowed by their countdown."""
    home = await _fetch_home(ctx)
    entries = [
        entry
        for module in side_modules(home)
        for entry in as_list(module.get("content"))
        if isinstance(entry, dict)
    ]
    notice = pick_current_notice(
        entries,
        is_notice=lambda e: is_version_notice_text(e.get("title"), VERSION_NOTICE_KEYWORDS),
        window=entry_window,
        now=now,
    )
    if notice is None:
        return None

    title = str(notice.item.get("title") or "")
    version = extract_label_from_notice(title, None)
    if not version:
        return None
    return GameVersionInfo(
        game=GameId.WW,
        version=version,
        start_time=notice.start_iso,
        end_time=notice.end_iso,
        title=title,
    )
