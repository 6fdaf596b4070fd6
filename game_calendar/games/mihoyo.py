"""
Shared parsing for miHoYo's announcement API (genshin, starrail, zzz).

``getAnnList`` returns announcements grouped into categories::

    {"data": {"list": [{"type_id": 1, "type_label": "活动公告",
                        "list": [{"ann_id": 1, "title": ..., "subtitle": ...,
                                  "banner": ..., "content": ...,
                                  "start_time": "2026-03-01 10:00:00",
                                  "end_time": ...}]}]}}

``getAnnContent`` returns the full HTML bodies, flat, keyed by ``ann_id``::

    {"data": {"list": [{"ann_id": 1, "title": ..., "banner": ...,
                        "content": "<p>…</p>"}],
              "pic_list": [...]}}

Structured ``start_time``/``end_time`` are civil times in the publisher's
``+08:00`` offset.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Sequence

from game_calendar.extraction.html import strip_html
from game_calendar.extraction.version import (
    MAINTENANCE_NOTICE_KEYWORD,
    VersionNotice,
    extract_label_from_notice,
    is_version_notice_text,
    pick_current_notice,
)
from game_calendar.games.base import SOURCE_TZ_OFFSET, as_dict, as_list, dig
from game_calendar.models.event import GameVersionInfo
from game_calendar.taxonomy.game_taxonomy import GameId
from game_calendar.utils.time_utils import to_iso_with_offset

AnnItem = dict[str, Any]


def ann_categories(payload: Any) -> list[dict[str, Any]]:
    """The category list of a ``getAnnList`` response (dict entries only)."""
    return [c for c in as_list(dig(payload, "data", "list")) if isinstance(c, dict)]


def category_items(category: Optional[dict[str, Any]]) -> list[AnnItem]:
    if category is None:
        return []
    return [i for i in as_list(category.get("list")) if isinstance(i, dict)]


def find_category(
    categories: Sequence[dict[str, Any]],
    *,
    type_id: int,
    label_keyword: Optional[str] = None,
    fallback_first: bool = False,
) -> Optional[dict[str, Any]]:
    """Category by ``type_id``, else first whose label contains ``label_keyword``."""
    for category in categories:
        if category.get("type_id") == type_id:
            return category
    if label_keyword:
        for category in categories:
            if label_keyword in str(category.get("type_label") or ""):
                return category
    if fallback_first and categories:
        return categories[0]
    return None


def content_items(payload: Any, *, include_pics: bool = False) -> list[AnnItem]:
    """Flat item list of a ``getAnnContent`` response.

    ``include_pics`` appends the ``pic_list`` entries, which some games use
    for image-only announcements.
    """
    data = as_dict(dig(payload, "data"))
    items = [i for i in as_list(data.get("list")) if isinstance(i, dict)]
    if include_pics:
        items.extend(i for i in as_list(data.get("pic_list")) if isinstance(i, dict))
    return items


def content_by_id(payload: Any) -> dict[int, AnnItem]:
    """Index ``getAnnContent`` items by integer ``ann_id``."""
    by_id: dict[int, AnnItem] = {}
    for item in content_items(payload):
        ann_id = item.get("ann_id")
        if isinstance(ann_id, int) and not isinstance(ann_id, bool):
            by_id[ann_id] = item
    return by_id


def item_window(item: AnnItem) -> tuple[Optional[str], Optional[str]]:
    """Structured civil times of an ann-list item, as offset ISO strings."""
    start, end = item.get("start_time"), item.get("end_time")
    if not isinstance(start, str) or not isinstance(end, str) or not start or not end:
        return None, None
    return to_iso_with_offset(start, SOURCE_TZ_OFFSET), to_iso_with_offset(end, SOURCE_TZ_OFFSET)


def ann_id_of(item: AnnItem) -> Optional[int]:
    ann_id = item.get("ann_id")
    if isinstance(ann_id, int) and not isinstance(ann_id, bool):
        return ann_id
    return None


def current_notice(
    items: Sequence[AnnItem],
    *,
    keywords: Sequence[str],
    exclude: Sequence[str] = (MAINTENANCE_NOTICE_KEYWORD,),
    now: Optional[datetime] = None,
) -> Optional[VersionNotice[AnnItem]]:
    """The version-update notice that matters now, label or not."""

    def is_notice(item: AnnItem) -> bool:
        return is_version_notice_text(
            item.get("title"), keywords, exclude
        ) or is_version_notice_text(item.get("subtitle"), keywords, exclude)

    return pick_current_notice(items, is_notice=is_notice, window=item_window, now=now)


def resolve_version(
    game: GameId,
    items: Sequence[AnnItem],
    *,
    keywords: Sequence[str],
    exclude: Sequence[str] = (MAINTENANCE_NOTICE_KEYWORD,),
    loose_label: bool = False,
    subtitle_remainder_keyword: Optional[str] = None,
    plain_title: bool = False,
    now: Optional[datetime] = None,
) -> Optional[GameVersionInfo]:
    """Pick the current version-update notice among ``items`` and label it.

    Args:
        game: Game the result is reported for.
        items: Ann-list items of the notice category.
        keywords: Title/subtitle substrings marking a version notice.
        exclude: Substrings that disqualify an otherwise matching notice.
        loose_label: Also accept ``<word>版本`` labels.
        subtitle_remainder_keyword: Fall back to the subtitle minus this text.
        plain_title: Report the title with markup stripped.
        now: Reference instant for active/upcoming/past classification.

    Returns:
        ``GameVersionInfo``, or ``None`` when no notice qualifies or the
        winning notice carries no recognizable label.
    """
    notice = current_notice(items, keywords=keywords, exclude=exclude, now=now)
    if notice is None:
        return None

    item = notice.item
    version = extract_label_from_notice(
        item.get("title"),
        item.get("subtitle"),
        loose=loose_label,
        subtitle_remainder_keyword=subtitle_remainder_keyword,
    )
    if not version:
        return None

    title = item.get("title")
    if isinstance(title, str) and plain_title:
        title = strip_html(title)
    return GameVersionInfo(
        game=game,
        version=version,
        start_time=notice.start_iso,
        end_time=notice.end_iso,
        ann_id=ann_id_of(item),
        title=title if isinstance(title, str) else None,
    )
