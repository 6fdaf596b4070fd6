"""
Arknights: Endfield pipeline (Hypergryph bulletin aggregate).

The aggregate endpoint needs a bulletin ``code`` that only the webview
bundle knows; ``EndfieldCodeResolver`` supplies it. Items on the
``events`` tab carry an HTML body and a Unix ``startAt``; the window is read
from the body, with ``startAt`` standing in for a missing or fuzzy start
("公测开启后"). Items without a readable end are long-running notices and
are not reported.

There is no version-update feed for this game.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

from game_calendar.extraction.html import first_img_src, normalize_title
from game_calendar.extraction.time_range import extract_time_range
from game_calendar.games.base import (
    SOURCE_TZ_OFFSET,
    FetchContext,
    as_list,
    build_event,
    dig,
    merge_by_id,
    sort_events,
)
from game_calendar.games.gacha import is_gacha_title
from game_calendar.ingestion.discovery import EndfieldCodeResolver
from game_calendar.models.event import CalendarEvent
from game_calendar.taxonomy.game_taxonomy import GameId
from game_calendar.utils.time_utils import unix_seconds_to_iso_with_offset

logger = logging.getLogger(__name__)

DEFAULT_AGGREGATE_API = "https://game-hub.hypergryph.com/bulletin/v2/aggregate"
EVENT_TABS = frozenset({"events", "event"})
DEFAULT_TITLE = "活动"


def _resolver_for(ctx: FetchContext) -> EndfieldCodeResolver:
    if ctx.code_resolver is not None:
        return ctx.code_resolver
    return EndfieldCodeResolver(
        ctx.client,
        webview_url=ctx.upstream.endfield_webview_url,
        override=ctx.upstream.endfield_code,
        timeout_ms=ctx.timeout_ms,
    )


def parse_bulletin_item(item: dict[str, Any]) -> Optional[CalendarEvent]:
    """One aggregate item → event, or ``None`` when it is not a dated event."""
    if str(item.get("tab") or "").lower() not in EVENT_TABS:
        return None
    html = dig(item, "data", "html")
    if not isinstance(html, str) or not html:
        return None

    window = extract_time_range(html, SOURCE_TZ_OFFSET, token_fallback=False)
    if window.end_iso is None:
        logger.debug("endfield: %r has no end date; treating as long-running", item.get("title"))
        return None

    start_at = item.get("startAt")
    start_iso = window.start_iso
    if start_iso is None and start_at is not None:
        start_iso = unix_seconds_to_iso_with_offset(start_at, SOURCE_TZ_OFFSET)

    cid = item.get("cid")
    normalized = normalize_title(item.get("title"))
    title = normalized or (str(cid) if cid else "") or DEFAULT_TITLE
    event_id = cid if cid else f"{normalized}:{start_at if start_at is not None else start_iso}"

    return build_event(
        id=event_id,
        title=title,
        start_time=start_iso,
        end_time=window.end_iso,
        is_gacha=is_gacha_title(GameId.ENDFIELD, title),
        banner=first_img_src(html),
        content=html,
    )


async def fetch_events(ctx: FetchContext) -> list[CalendarEvent]:
    code = await _resolver_for(ctx).resolve()
    payload = await ctx.get_json(
        ctx.upstream.endfield_aggregate_api_url or DEFAULT_AGGREGATE_API,
        params={"type": "0", "code": code, "hideDetail": "0"},
    )

    items = [i for i in as_list(dig(payload, "data", "list")) if isinstance(i, dict)]
    events = [e for e in (parse_bulletin_item(i) for i in items) if e is not None]
    logger.info("endfield: %d events from %d bulletin items", len(events), len(items))
    return sort_events(merge_by_id(events))
