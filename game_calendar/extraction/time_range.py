"""
Free-text time-range extraction from announcement bodies.

Some publishers only state an activity window inside the announcement prose,
e.g. ``活动时间：2026/03/01 10:00 ~ 2026/03/15 03:59``. ``extract_time_range``
recovers a (start, end) pair with a tiered strategy, first success wins:

  1. Strip tags, entities and whitespace runs to plain text.
  2. Explicit range: ``<date-time> <sep> <date-time>`` where ``<sep>`` is one
     of ``- ~ ～ 至 到 — –``.
  3. Keyword-prefixed start (开放时间/活动时间/开启时间/开始时间) and,
     independently, keyword-prefixed end (结束时间/截止时间/截至/截止). A range
     whose start is prose ("版本更新后 ~ 2026/03/15 03:59") still yields its
     end. Either side may be missing.
  4. Every date-time token in document order, de-duplicated: none → empty,
     one → end only, two or more → first is start, second is end.

Known weakness of step 4: a body that mentions an unrelated date before the
real window is misread. Kept as-is; callers validate ``start < end``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from game_calendar.extraction.html import strip_html
from game_calendar.utils.time_utils import to_iso_with_offset

_DT = r"\d{4}[/.\-]\d{1,2}[/.\-]\d{1,2}\s*\d{1,2}:\d{2}(?::\d{2})?"
_SEP = r"(?:-|~|～|至|到|—|–)"
_START_KW = r"(?:开放时间|活动时间|开启时间|开始时间)"
_END_KW = r"(?:结束时间|截止时间|截至|截止)"

_TOKEN_RE = re.compile(
    r"^(\d{4})[/.\-](\d{1,2})[/.\-](\d{1,2})\s*(\d{1,2}):(\d{2})(?::(\d{2}))?$"
)
_RANGE_RE = re.compile(rf"({_DT})\s*{_SEP}\s*({_DT})")
_START_KW_RE = re.compile(rf"{_START_KW}[^0-9]{{0,40}}({_DT})")
_END_KW_RE = re.compile(rf"{_END_KW}[^0-9]{{0,40}}({_DT})")
_FUZZY_START_END_RE = re.compile(rf"{_START_KW}[^0-9]{{0,80}}{_SEP}\s*({_DT})")
_ANY_DT_RE = re.compile(rf"({_DT})")


@dataclass(frozen=True)
class TimeRange:
    """Possibly partial result of free-text extraction.

    Both values are ISO-8601 strings carrying the source offset, or ``None``.
    """

    start_iso: Optional[str] = None
    end_iso: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return self.start_iso is None and self.end_iso is None


def normalize_datetime_token(token: Optional[str]) -> Optional[str]:
    """Validate a date-time token and render it as ``YYYY-MM-DD HH:MM:SS``.

    Accepts ``YYYY[-/.]M[-/.]D H:MM[:SS]`` with optional whitespace between
    date and time. Returns ``None`` for anything malformed, including
    impossible calendar values such as ``2026/02/30 10:00``.
    """
    source = re.sub(r"\s+", " ", token or "").strip()
    if not source:
        return None

    m = _TOKEN_RE.match(source)
    if not m:
        return None

    try:
        dt = datetime(
            int(m.group(1)), int(m.group(2)), int(m.group(3)),
            int(m.group(4)), int(m.group(5)), int(m.group(6) or "0"),
        )
    except ValueError:
        return None
    return dt.strftime("%Y-%m-%d %H:%M:%S")


def _iso(token: Optional[str], source_offset: str) -> Optional[str]:
    naive = normalize_datetime_token(token)
    return to_iso_with_offset(naive, source_offset) if naive else None


def extract_time_range(
    html: Optional[str],
    source_offset: str,
    *,
    token_fallback: bool = True,
) -> TimeRange:
    """Recover an activity window from an HTML (or escaped-HTML) body.

    Args:
        html: Announcement body.
        source_offset: Offset to attach to the civil times found, e.g. ``"+08:00"``.
        token_fallback: Fall back to bare date-time tokens (step 4) when no
            range or keyword matched.

    Returns:
        ``TimeRange``; either side may be ``None``.
    """
    text = strip_html(html)
    if not text:
        return TimeRange()

    m = _RANGE_RE.search(text)
    if m:
        return TimeRange(_iso(m.group(1), source_offset), _iso(m.group(2), source_offset))

    start_kw = _START_KW_RE.search(text)
    fuzzy_end = _FUZZY_START_END_RE.search(text)
    if start_kw and fuzzy_end and start_kw.start(1) == fuzzy_end.start(1):
        # "活动时间：更新后 ~ <dt>": the only date is the end.
        start_kw = None
    end_kw = _END_KW_RE.search(text) or fuzzy_end
    if start_kw or end_kw:
        return TimeRange(
            _iso(start_kw.group(1), source_offset) if start_kw else None,
            _iso(end_kw.group(1), source_offset) if end_kw else None,
        )
    if not token_fallback:
        return TimeRange()

    found: list[str] = []
    for token in _ANY_DT_RE.findall(text):
        naive = normalize_datetime_token(token)
        if naive and naive not in found:
            found.append(naive)

    if not found:
        return TimeRange()
    if len(found) == 1:
        return TimeRange(None, to_iso_with_offset(found[0], source_offset))
    return TimeRange(
        to_iso_with_offset(found[0], source_offset),
        to_iso_with_offset(found[1], source_offset),
    )
