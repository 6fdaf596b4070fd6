"""
Timezone canonicalization for upstream timestamps.

Publishers hand us three kinds of time values:
  - civil (wall-clock) strings without any offset, e.g. ``"2026-03-01 04:00:00"``;
  - strings that already carry an offset, possibly in a non-canonical
    spelling, e.g. ``"2026-03-01T04:00:00+0800"``;
  - Unix epoch seconds (as numbers or numeric strings).

Everything leaving a pipeline is an ISO-8601 string with an explicit numeric
offset (``+08:00``) so that the consumer can convert to any display zone
without guessing. Civil times are interpreted in the publisher's fixed
*source offset*.
"""

from __future__ import annotations

import math
import re
from datetime import datetime, timedelta, timezone
from typing import Optional, Union

_PREFIX_RE = re.compile(r"^(UTC|GMT)\s*", re.IGNORECASE)
_OFFSET_RE = re.compile(r"^([+-])(\d{1,2})(?::?(\d{2}))?$")
_COMPACT_SUFFIX_RE = re.compile(r"([+-])(\d{2})(\d{2})$")
_TZ_SUFFIX_RE = re.compile(r"(?:[zZ]|[+-]\d{2}:?\d{2})$")

_ISO_NAIVE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}(:\d{2})?$")
_DATE_ONLY_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_DATE_HM_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}$")
_DATE_HMS_RE = re.compile(r"^\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}$")

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def normalize_offset(text: str) -> str:
    """Canonicalize a UTC offset spelling to ``±HH:MM``.

    Accepts ``+08:00``, ``-0800``, ``+8``, ``UTC+8``, ``GMT+08:00`` and ``Z``.

    Raises:
        ValueError: On empty input, unparsable text, or an hour outside
            0–23 / minute outside 0–59.
    """
    raw = (text or "").strip()
    if not raw:
        raise ValueError("source offset is required")

    s = _PREFIX_RE.sub("", raw).strip()
    if s.upper() == "Z":
        return "+00:00"

    m = _OFFSET_RE.match(s)
    if not m:
        raise ValueError(f"Invalid source offset: {text!r}")

    sign, hh, mm = m.group(1), int(m.group(2)), int(m.group(3) or "0")
    if not 0 <= hh <= 23 or not 0 <= mm <= 59:
        raise ValueError(f"Invalid source offset: {text!r}")

    return f"{sign}{hh:02d}:{mm:02d}"


def offset_to_minutes(offset: str) -> int:
    """Signed minute count of a canonical ``±HH:MM`` offset."""
    canonical = normalize_offset(offset)
    sign = -1 if canonical[0] == "-" else 1
    return sign * (int(canonical[1:3]) * 60 + int(canonical[4:6]))


def _normalize_existing_suffix(s: str) -> str:
    # "+0800" -> "+08:00"; "Z" and "+08:00" are left alone.
    m = _COMPACT_SUFFIX_RE.search(s)
    if not m:
        return s
    return f"{s[:-5]}{m.group(1)}{m.group(2)}:{m.group(3)}"


def to_iso_with_offset(value: str, source_offset: str) -> str:
    """Attach ``source_offset`` to a civil time string.

    Values that already carry a timezone suffix only have that suffix
    canonicalized. Unknown shapes are returned untouched so that we never
    corrupt data we don't understand.

    Example::

        to_iso_with_offset("2026-03-01 04:00:00", "+08:00")
        # → "2026-03-01T04:00:00+08:00"
    """
    offset = normalize_offset(source_offset)
    s = (value or "").strip()
    if not s:
        return value

    if _TZ_SUFFIX_RE.search(s):
        return _normalize_existing_suffix(s)

    if _ISO_NAIVE_RE.match(s):
        with_seconds = f"{s}:00" if len(s) == 16 else s
        return f"{with_seconds}{offset}"
    if _DATE_ONLY_RE.match(s):
        return f"{s}T00:00:00{offset}"
    if _DATE_HM_RE.match(s):
        return f"{s.replace(' ', 'T')}:00{offset}"
    if _DATE_HMS_RE.match(s):
        return f"{s.replace(' ', 'T')}{offset}"

    return value


def unix_seconds_to_iso_with_offset(
    value: Union[int, float, str],
    source_offset: str,
) -> str:
    """Render epoch seconds as wall-clock time in ``source_offset``.

    The instant is shifted by the offset, its calendar fields are read as if
    it were UTC, and the original offset is appended, so the result denotes
    the same instant as ``value``. Non-numeric input is returned as ``str``.
    """
    offset = normalize_offset(source_offset)
    try:
        n = float(value)
    except (TypeError, ValueError):
        return str(value)
    if not math.isfinite(n):
        return str(value)

    shifted = _EPOCH + timedelta(seconds=math.trunc(n) + offset_to_minutes(offset) * 60)
    return f"{shifted.strftime('%Y-%m-%dT%H:%M:%S')}{offset}"


def parse_iso(value: Optional[str]) -> Optional[datetime]:
    """Parse an offset-aware ISO-8601 string.

    Returns ``None`` for empty, malformed, or naive (offset-less) values,
    since those cannot be placed on the timeline.
    """
    if not value:
        return None
    try:
        dt = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if dt.tzinfo is None:
        return None
    return dt


def utcnow() -> datetime:
    """Return the current UTC datetime with timezone info."""
    return datetime.now(tz=timezone.utc)
