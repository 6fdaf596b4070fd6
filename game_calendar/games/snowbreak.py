"""
Snowbreak: Containment Zone pipeline (Seasun announce config JSON).

The publisher ships one static JSON file with every in-game announcement.
There is no activity list: the activities of a patch are described in prose
inside the newest ``…限时活动公告`` announcement, e.g.::

    ✧「深空回响」限时玩法
    活动时间：3月13日维护后-4月3日03:59
    上半期活动时间：3月13日维护后-3月23日03:59

The body is tokenized into lines, grouped into blocks under their headings
(``✧…``, ``一、…``, ``【…】``), and every ``<prefix>活动时间：A - B`` line
becomes an event. Dates may omit the year (inferred around the
announcement's own date), use 月/日 or slashes, and say 维护后 ("after
maintenance", 04:00). 常驻 ("permanent") ranges are skipped. Titles are kept
only when they look like gameplay, not shop or banner notices.

The announcement itself is reported too, spanning its own Unix window.
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from game_calendar.extraction.html import IMG_MARKER, first_img_src, tokenize_lines
from game_calendar.extraction.version import (
    VERSION_NOTICE_KEYWORDS,
    extract_label_from_notice,
    is_version_notice_text,
    pick_current_notice,
)
from game_calendar.games.base import (
    SOURCE_TZ_OFFSET,
    FetchContext,
    as_list,
    build_event,
    dig,
    merge_by_id,
    sort_events,
    stable_hash64,
)
from game_calendar.games.gacha import is_gacha_title
from game_calendar.models.event import CalendarEvent, GameVersionInfo
from game_calendar.taxonomy.game_taxonomy import GameId
from game_calendar.utils.time_utils import (
    to_iso_with_offset,
    unix_seconds_to_iso_with_offset,
    utcnow,
)

logger = logging.getLogger(__name__)

DEFAULT_ANNOUNCE_API = (
    "https://cbjq-content.xoyocdn.com/ob202307/webfile/mainland/announce/config/"
    "pc_jinshan-pc_jinshan.json"
)
ACTIVITY_NOTICE_SUFFIX = "限时活动公告"
MAINTENANCE_HOUR = 4

INCLUDE_WORDS = (
    "玩法",
    "关卡",
    "任务",
    "活动商店",
    "活动开启",
    "限时活动",
    "主线",
    "挑战",
    "联机",
    "签到活动",
)
EXCLUDE_WORDS = (
    "角色共鸣",
    "武器共鸣",
    "定向共鸣",
    "共鸣限时开放",
    "时装",
    "武器外观",
    "限时上架",
    "特别物资补给",
    "凭证",
    "复刻",
    "入队",
    "共鸣活动",
)

_LOCALE_KEYS = ("default", "zh-cn", "zh_cn", "zh", "cn")
_CN_NUMERAL_HEADING_RE = re.compile(r"^[一二三四五六七八九十]+、")
_BRACKET_HEADING_RE = re.compile(r"^【[^】]+】$")
_TIME_LINE_RE = re.compile(r"^([^:：]{0,24}?)活动时间[:：]\s*(.+)$")
_RANGE_SPLIT_RE = re.compile(r"(.+?)\s*(?:-|~|～|至|到|—|–)\s*(.+)")
_CN_DATE_RE = re.compile(r"(?:(\d{4})年)?(\d{1,2})月(\d{1,2})日?")
_SLASH_DATE_RE = re.compile(r"(?:(\d{4})[./-])?(\d{1,2})[./-](\d{1,2})")
_HMS_RE = re.compile(r"(\d{1,2})[:：](\d{1,2})(?:[:：](\d{1,2}))?")
_DIAN_RE = re.compile(r"(\d{1,2})点(?:(\d{1,2})分?)?")
_WS_RE = re.compile(r"\s+")


# ── Text helpers ──────────────────────────────────────────────────────────────


def parse_localized_text(value: Any) -> str:
    """Unwrap a possibly JSON-encoded ``{"zh-cn": "…"}`` string.

    Preferred keys are tried first, then any non-blank string value. Plain
    strings are returned trimmed; non-strings become ``""``.
    """
    if not isinstance(value, str):
        return ""
    raw = value.strip()
    if not raw:
        return ""

    try:
        parsed = json.loads(raw)
    except ValueError:
        return raw
    if not isinstance(parsed, dict):
        return raw

    for key in _LOCALE_KEYS:
        text = parsed.get(key)
        if isinstance(text, str) and text.strip():
            return text.strip()
    for text in parsed.values():
        if isinstance(text, str) and text.strip():
            return text.strip()
    return raw


def _collapse(text: str) -> str:
    return _WS_RE.sub(" ", text).strip()


def _to_number(value: Any) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


# ── Blocks ────────────────────────────────────────────────────────────────────


@dataclass
class Block:
    """A heading and the lines under it; ``banner`` is the image just above."""

    title: str
    banner: Optional[str] = None
    lines: list[str] = field(default_factory=list)


def parse_block_heading(line: str) -> Optional[str]:
    s = _collapse(line)
    if not s:
        return None
    if s.startswith("✧"):
        return _collapse(s[1:])
    if _CN_NUMERAL_HEADING_RE.match(s) or _BRACKET_HEADING_RE.match(s):
        return s
    return None


def parse_blocks(lines: list[str]) -> list[Block]:
    """Group tokenized lines under headings.

    An image line is held and attached to the next heading. Lines before the
    first heading are ignored.
    """
    blocks: list[Block] = []
    current: Optional[Block] = None
    pending_banner: Optional[str] = None

    for line in lines:
        if line.startswith(IMG_MARKER):
            pending_banner = line[len(IMG_MARKER):].strip() or None
            continue

        heading = parse_block_heading(line)
        if heading:
            if current is not None:
                blocks.append(current)
            current = Block(title=heading, banner=pending_banner)
            pending_banner = None
            continue

        if current is not None:
            current.lines.append(line)

    if current is not None:
        blocks.append(current)
    return blocks


# ── Dates ─────────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Anchor:
    """Calendar date the year inference and 维护后 default revolve around."""

    year: int
    month: int
    day: int

    @classmethod
    def from_unix(cls, seconds: float) -> "Anchor":
        dt = datetime.fromtimestamp(seconds, tz=timezone.utc)
        return cls(dt.year, dt.month, dt.day)


def infer_year(month: int, anchor: Anchor) -> int:
    """Year for a year-less month, staying within six months of the anchor."""
    if not 1 <= month <= 12:
        return anchor.year
    if abs(month - anchor.month) >= 6:
        return anchor.year + 1 if month < anchor.month else anchor.year - 1
    return anchor.year


def parse_date_point(raw: str, anchor: Anchor) -> Optional[datetime]:
    """Parse one side of a prose range into a naive civil ``datetime``.

    Returns ``None`` for 常驻, for text without a date (unless it says
    维护后, which means the anchor day at 04:00), and for impossible values.
    """
    source = _WS_RE.sub("", raw)
    if not source or "常驻" in source:
        return None
    after_maintenance = "维护后" in source

    m = _CN_DATE_RE.search(source) or _SLASH_DATE_RE.search(source)
    if m is None:
        if after_maintenance:
            return datetime(anchor.year, anchor.month, anchor.day, MAINTENANCE_HOUR)
        return None

    month, day = int(m.group(2)), int(m.group(3))
    year = int(m.group(1)) if m.group(1) else infer_year(month, anchor)
    rest = source[m.end():]

    hour, minute, second = (MAINTENANCE_HOUR if after_maintenance else 0), 0, 0
    hms = _HMS_RE.search(rest)
    if hms:
        hour, minute, second = int(hms.group(1)), int(hms.group(2)), int(hms.group(3) or 0)
    else:
        dian = _DIAN_RE.search(rest)
        if dian:
            hour, minute, second = int(dian.group(1)), int(dian.group(2) or 0), 0

    try:
        return datetime(year, month, day, hour, minute, second)
    except ValueError:
        return None


# ── Titles ────────────────────────────────────────────────────────────────────


def build_event_title(base_title: str, prefix: str) -> str:
    """Combine the block heading with the time-line prefix (上半期, 关卡…)."""
    base = _collapse(_CN_NUMERAL_HEADING_RE.sub("", base_title).lstrip())
    p = _collapse(re.sub(r"[：:]", "", prefix))
    if not p or p == "活动":
        return base
    if p in ("上半期", "下半期"):
        return f"{base}（{p}）"
    if p in base:
        return base
    return f"{base}·{p}"


def is_wanted_title(title: str) -> bool:
    if not title:
        return False
    if any(word in title for word in EXCLUDE_WORDS):
        return False
    return any(word in title for word in INCLUDE_WORDS)


def extract_block_events(blocks: list[Block], anchor: Anchor) -> list[CalendarEvent]:
    events: list[CalendarEvent] = []
    seen: set[str] = set()

    for block in blocks:
        block_content = "<br>".join([block.title, *block.lines])
        for line in block.lines:
            m = _TIME_LINE_RE.match(line)
            if not m:
                continue
            parts = _RANGE_SPLIT_RE.search(m.group(2))
            if not parts:
                continue

            start = parse_date_point(parts.group(1).strip(), anchor)
            end = parse_date_point(parts.group(2).strip(), anchor)
            if start is None or end is None or end <= start:
                continue

            title = build_event_title(block.title, m.group(1))
            if not is_wanted_title(title):
                continue

            start_iso = to_iso_with_offset(start.strftime("%Y-%m-%d %H:%M:%S"), SOURCE_TZ_OFFSET)
            end_iso = to_iso_with_offset(end.strftime("%Y-%m-%d %H:%M:%S"), SOURCE_TZ_OFFSET)
            dedupe_key = f"{title}|{start_iso}|{end_iso}"
            if dedupe_key in seen:
                continue
            seen.add(dedupe_key)

            event = build_event(
                id=stable_hash64(dedupe_key),
                title=title,
                start_time=start_iso,
                end_time=end_iso,
                is_gacha=is_gacha_title(GameId.SNOWBREAK, title),
                banner=block.banner,
                content=block_content,
            )
            if event is not None:
                events.append(event)
    return events


# ── Pipeline ──────────────────────────────────────────────────────────────────


def _announce_items(payload: Any) -> list[dict[str, Any]]:
    return [i for i in as_list(dig(payload, "announce")) if isinstance(i, dict)]


def pick_activity_notice(items: list[dict[str, Any]]) -> Optional[tuple[dict[str, Any], str]]:
    """Newest (by ``start_time``) item titled ``…限时活动公告``, with its title."""
    best: Optional[tuple[dict[str, Any], str]] = None
    best_start = 0.0
    for item in items:
        title = _collapse(parse_localized_text(item.get("title")))
        if not title.endswith(ACTIVITY_NOTICE_SUFFIX):
            continue
        start = _to_number(item.get("start_time")) or 0.0
        if best is None or start > best_start:
            best, best_start = (item, title), start
    return best


def _anchor_for(item: dict[str, Any]) -> Anchor:
    end = _to_number(item.get("end_time")) or 0
    start = _to_number(item.get("start_time")) or 0
    if end > 0:
        return Anchor.from_unix(end)
    if start > 0:
        return Anchor.from_unix(start)
    now = utcnow()
    return Anchor(now.year, now.month, now.day)


async def fetch_events(ctx: FetchContext) -> list[CalendarEvent]:
    payload = await ctx.get_json(ctx.upstream.snowbreak_announce_api_url or DEFAULT_ANNOUNCE_API)
    picked = pick_activity_notice(_announce_items(payload))
    if picked is None:
        logger.info("snowbreak: no %s in the announce feed", ACTIVITY_NOTICE_SUFFIX)
        return []

    item, title = picked
    content_html = parse_localized_text(item.get("content"))
    if not content_html:
        return []

    blocks = parse_blocks(tokenize_lines(content_html))
    events = extract_block_events(blocks, _anchor_for(item))

    ann_title = title or ACTIVITY_NOTICE_SUFFIX
    start, end = item.get("start_time"), item.get("end_time")
    ann_key = item.get("id") if item.get("id") is not None else f"{start}:{end}"
    announcement = build_event(
        id=f"snowbreak-ann:{ann_key}",
        title=ann_title,
        start_time=unix_seconds_to_iso_with_offset(start, SOURCE_TZ_OFFSET) if start else None,
        end_time=unix_seconds_to_iso_with_offset(end, SOURCE_TZ_OFFSET) if end else None,
        is_gacha=is_gacha_title(GameId.SNOWBREAK, ann_title),
        banner=first_img_src(content_html),
        content=content_html,
    )
    if announcement is not None:
        events.append(announcement)

    logger.info("snowbreak: %d events from %d blocks", len(events), len(blocks))
    return sort_events(merge_by_id(events))


def _unix_window(item: dict[str, Any]) -> tuple[Optional[str], Optional[str]]:
    start, end = _to_number(item.get("start_time")), _to_number(item.get("end_time"))
    if not start or not end:
        return None, None
    return (
        unix_seconds_to_iso_with_offset(start, SOURCE_TZ_OFFSET),
        unix_seconds_to_iso_with_offset(end, SOURCE_TZ_OFFSET),
    )


async def fetch_current_version(
    ctx: FetchContext, now: Optional[datetime] = None
) -> Optional[GameVersionInfo]:
    payload = await ctx.get_json(ctx.upstream.snowbreak_announce_api_url or DEFAULT_ANNOUNCE_API)
    notice = pick_current_notice(
        _announce_items(payload),
        is_notice=lambda i: is_version_notice_text(
            parse_localized_text(i.get("title")), VERSION_NOTICE_KEYWORDS
        ),
        window=_unix_window,
        now=now,
    )
    if notice is None:
        return None

    title = _collapse(parse_localized_text(notice.item.get("title")))
    subtitle = parse_localized_text(notice.item.get("left_title"))
    version = extract_label_from_notice(title, subtitle)
    if not version:
        return None

    ann_id = notice.item.get("id")
    return GameVersionInfo(
        game=GameId.SNOWBREAK,
        version=version,
        start_time=notice.start_iso,
        end_time=notice.end_iso,
        ann_id=ann_id if isinstance(ann_id, int) and not isinstance(ann_id, bool) else None,
        title=title,
    )
