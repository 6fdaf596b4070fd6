"""
"Current version" resolution from version-update announcements.

Given every announcement a game currently lists, pick the version-update
notice that matters *now* and pull a human-readable version label out of it.

Selection (``pick_current_notice``), over notices with a valid window:
  1. active   (start <= now < end): latest start wins;
  2. upcoming (start > now)       : earliest start wins;
  3. past     (end <= now)        : latest end wins;
  4. otherwise nothing.

Label extraction (``extract_version_label``), first hit wins:
  1. quoted title before 更新说明/更新公告 → ``「<title>」``;
  2. ``N.N[.N…]`` followed by 版本;
  3. ``V``-prefixed numeric version;
  4. (opt-in) any short word followed by 版本.

A notice without a label is not reported at all.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Generic, Iterable, Optional, Sequence, TypeVar

from game_calendar.extraction.html import strip_html
from game_calendar.utils.time_utils import parse_iso, utcnow

T = TypeVar("T")

VERSION_NOTICE_KEYWORDS: tuple[str, ...] = ("版本更新说明", "版本更新公告")
MAINTENANCE_NOTICE_KEYWORD = "维护预告"

_QUOTED_RE = re.compile(r"[「“\"]([^「」”\"]+)[」”\"]\s*(?:版本)?(?:更新说明|更新公告)")
_NUMERIC_RE = re.compile(r"(\d+(?:\.\d+)+)\s*版本")
_V_PREFIX_RE = re.compile(r"(?<![A-Za-z0-9])V(\d+(?:\.\d+)+)(?![A-Za-z0-9])", re.IGNORECASE)
_LOOSE_RE = re.compile(r"([^\s，。,；;：:]{1,24})\s*版本")


@dataclass(frozen=True)
class VersionNotice(Generic[T]):
    """A qualifying notice together with its parsed window."""

    item: T
    start_iso: str
    end_iso: str
    start: datetime
    end: datetime


def is_version_notice_text(
    text: Optional[str],
    keywords: Sequence[str] = VERSION_NOTICE_KEYWORDS,
    exclude: Sequence[str] = (MAINTENANCE_NOTICE_KEYWORD,),
) -> bool:
    """``True`` if ``text`` names a version-update notice.

    Maintenance previews mention the upcoming version too, so ``exclude``
    wins over ``keywords``.
    """
    plain = strip_html(text)
    if not plain:
        return False
    if any(word in plain for word in exclude):
        return False
    return any(word in plain for word in keywords)


def pick_current_notice(
    items: Iterable[T],
    *,
    is_notice: Callable[[T], bool],
    window: Callable[[T], tuple[Optional[str], Optional[str]]],
    now: Optional[datetime] = None,
) -> Optional[VersionNotice[T]]:
    """Pick the active, else next upcoming, else most recent past notice.

    Args:
        items: Announcement records of any shape.
        is_notice: Predicate selecting version-update notices.
        window: Returns the record's ``(start_iso, end_iso)``.
        now: Reference instant; defaults to the current UTC time.
    """
    notices: list[VersionNotice[T]] = []
    for item in items:
        if not is_notice(item):
            continue
        start_iso, end_iso = window(item)
        start, end = parse_iso(start_iso), parse_iso(end_iso)
        if start is None or end is None or end <= start:
            continue
        notices.append(VersionNotice(item, start_iso, end_iso, start, end))  # type: ignore[arg-type]

    if not notices:
        return None

    now = now or utcnow()
    active = [n for n in notices if n.start <= now < n.end]
    if active:
        return max(active, key=lambda n: n.start)

    upcoming = [n for n in notices if n.start > now]
    if upcoming:
        return min(upcoming, key=lambda n: n.start)

    return max(notices, key=lambda n: n.end)


def extract_version_label(text: Optional[str], *, loose: bool = False) -> Optional[str]:
    """Pull a version label out of a notice title or subtitle."""
    raw = strip_html(text)
    if not raw:
        return None

    m = _QUOTED_RE.search(raw)
    if m and m.group(1).strip():
        return f"「{m.group(1).strip()}」"

    m = _NUMERIC_RE.search(raw)
    if m:
        return m.group(1)

    m = _V_PREFIX_RE.search(raw)
    if m:
        return m.group(1)

    if loose:
        m = _LOOSE_RE.search(raw)
        if m:
            return m.group(1)

    return None


def extract_label_from_notice(
    title: Optional[str],
    subtitle: Optional[str],
    *,
    loose: bool = False,
    subtitle_remainder_keyword: Optional[str] = None,
) -> Optional[str]:
    """Try the title, then the subtitle.

    When ``subtitle_remainder_keyword`` is given and neither yields a label,
    the subtitle with that keyword removed is used verbatim (if non-empty).
    """
    label = extract_version_label(title, loose=loose) or extract_version_label(
        subtitle, loose=loose
    )
    if label:
        return label

    if subtitle_remainder_keyword:
        remainder = strip_html(subtitle).replace(subtitle_remainder_keyword, "").strip()
        if remainder:
            return remainder

    return None
