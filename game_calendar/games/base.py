"""
Shared building blocks for the per-game pipelines.

Every pipeline follows the same shape:

    fetch  → filter → extract time → merge content → dedupe/merge → sort

The pieces that do not depend on a publisher's wire format live here:
  - ``FetchContext``: the client, endpoint overrides and request settings a
    pipeline runs with;
  - ``fetch_optional``: secondary-call degradation (failure → ``None``);
  - ``build_event``: record → ``CalendarEvent`` or a logged local skip;
  - ``merge_events`` / ``merge_by_id`` / ``sort_events``;
  - ``collation_key``: zh-CN ordering for id tie-breaks;
  - ``stable_hash64``: deterministic ids for sources without one.
"""

from __future__ import annotations

import logging
import unicodedata
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Iterable, Optional, TypeVar

import httpx
from pydantic import ValidationError
from pypinyin import Style, lazy_pinyin

from game_calendar.config import UpstreamOverrides
from game_calendar.ingestion.http import (
    DEFAULT_TIMEOUT_MS,
    DEFAULT_USER_AGENT,
    UpstreamError,
    fetch_json,
    fetch_text,
)
from game_calendar.models.event import CalendarEvent

if TYPE_CHECKING:
    from game_calendar.ingestion.discovery import EndfieldCodeResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")

SOURCE_TZ_OFFSET = "+08:00"

_FNV64_OFFSET = 0xCBF29CE484222325
_FNV64_PRIME = 0x100000001B3
_MASK64 = 0xFFFFFFFFFFFFFFFF


# ── Fetch context ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class FetchContext:
    """Everything a pipeline needs to talk to its upstreams.

    Attributes:
        client:        Shared async HTTP client.
        upstream:      Per-endpoint URL overrides.
        timeout_ms:    Whole-request deadline for every call.
        user_agent:    Default ``User-Agent`` header.
        code_resolver: Endfield bulletin-code resolver; only that pipeline
                       uses it.
    """

    client: httpx.AsyncClient
    upstream: UpstreamOverrides = UpstreamOverrides()
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    user_agent: str = DEFAULT_USER_AGENT
    code_resolver: Optional["EndfieldCodeResolver"] = None

    async def get_json(self, url: str, **kwargs: Any) -> Any:
        return await fetch_json(
            self.client, url,
            timeout_ms=self.timeout_ms, user_agent=self.user_agent, **kwargs,
        )

    async def get_text(self, url: str, **kwargs: Any) -> str:
        return await fetch_text(
            self.client, url,
            timeout_ms=self.timeout_ms, user_agent=self.user_agent, **kwargs,
        )


async def fetch_optional(label: str, call: Awaitable[T]) -> Optional[T]:
    """Await a secondary upstream call; failure degrades to ``None``.

    Only ``UpstreamError`` is absorbed. Programming errors still propagate.
    """
    try:
        return await call
    except UpstreamError as exc:
        logger.warning("Secondary fetch %s failed; continuing without it: %s", label, exc)
        return None


# ── Payload access ────────────────────────────────────────────────────────────


def as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def dig(payload: Any, *path: str) -> Any:
    """Walk nested dicts; any missing or non-dict hop yields ``None``."""
    cur = payload
    for key in path:
        if not isinstance(cur, dict):
            return None
        cur = cur.get(key)
    return cur


def text_or_none(value: Any) -> Optional[str]:
    """Non-blank string, else ``None``."""
    if isinstance(value, str) and value.strip():
        return value
    return None


# ── Events ────────────────────────────────────────────────────────────────────


def build_event(
    *,
    id: int | str,
    title: str,
    start_time: Optional[str],
    end_time: Optional[str],
    is_gacha: Optional[bool] = None,
    banner: Optional[str] = None,
    content: Optional[str] = None,
    link_url: Optional[str] = None,
) -> Optional[CalendarEvent]:
    """Build a ``CalendarEvent`` or return ``None`` for an unusable record.

    Missing times, unparsable times and non-positive windows are per-record
    skips, never pipeline failures.
    """
    if not start_time or not end_time:
        logger.debug("Skipping %r: missing start or end", title)
        return None
    try:
        return CalendarEvent(
            id=id,
            title=title,
            start_time=start_time,
            end_time=end_time,
            is_gacha=is_gacha,
            banner=text_or_none(banner),
            content=text_or_none(content),
            link_url=text_or_none(link_url),
        )
    except ValidationError as exc:
        logger.debug("Skipping %r: %s", title, exc.errors()[0].get("msg", exc))
        return None


def merge_events(existing: CalendarEvent, incoming: CalendarEvent) -> CalendarEvent:
    """Combine two records for the same event.

    The window becomes the union of both windows; ``banner``/``content`` keep
    the existing value when it has one. ``is_gacha`` is true if either is.
    """
    start_time = existing.start_time if existing.start <= incoming.start else incoming.start_time
    end_time = existing.end_time if existing.end >= incoming.end else incoming.end_time

    is_gacha: Optional[bool] = None
    if existing.is_gacha is not None or incoming.is_gacha is not None:
        is_gacha = bool(existing.is_gacha) or bool(incoming.is_gacha)

    return existing.model_copy(
        update={
            "start_time": start_time,
            "end_time": end_time,
            "is_gacha": is_gacha,
            "banner": existing.banner or incoming.banner,
            "content": existing.content or incoming.content,
            "link_url": existing.link_url or incoming.link_url,
        }
    )


def merge_by_id(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    """Collapse records sharing ``str(id)`` into one through ``merge_events``.

    First-seen order is kept and the earlier record is the ``existing`` side,
    so the result carries the widest window and the first non-empty
    ``banner``/``content`` of the group.
    """
    by_id: dict[str, CalendarEvent] = {}
    for event in events:
        key = str(event.id)
        prev = by_id.get(key)
        by_id[key] = merge_events(prev, event) if prev is not None else event
    return list(by_id.values())


def _char_weight(ch: str) -> tuple[int, str]:
    # Group order follows the zh collation: punctuation, digits, Latin, Han, rest.
    if ch.isspace() or unicodedata.category(ch)[0] in "PSZ":
        return (0, ch)
    if ch.isdigit():
        return (1, ch)
    if ch.isascii() and ch.isalpha():
        return (2, ch.casefold())
    if "\u3400" <= ch <= "\u9fff" or "\uf900" <= ch <= "\ufaff":
        return (3, lazy_pinyin(ch, style=Style.TONE3)[0])
    return (4, ch)


def collation_key(text: str) -> tuple[tuple[tuple[int, str], ...], str]:
    """Sort key approximating ``zh-Hans-CN`` collation.

    Han characters order by pinyin (with tone number), Latin letters ignore
    case, and the raw string breaks any remaining tie.

    Example::

        sorted(["中秋:1", "安魂:1"], key=collation_key)  # → ["安魂:1", "中秋:1"]
    """
    return tuple(_char_weight(ch) for ch in text), text


def sort_events(events: Iterable[CalendarEvent]) -> list[CalendarEvent]:
    """Order by start instant, then end instant, then ``collation_key(str(id))``."""
    return sorted(events, key=lambda e: (e.start, e.end, collation_key(str(e.id))))


def stable_hash64(text: str) -> str:
    """FNV-1a 64-bit over the UTF-16 code units of ``text``, as 16 hex chars.

    Example::

        stable_hash64("")  # → "cbf29ce484222325"
    """
    encoded = text.encode("utf-16-le")
    h = _FNV64_OFFSET
    for i in range(0, len(encoded), 2):
        h ^= encoded[i] | (encoded[i + 1] << 8)
        h = (h * _FNV64_PRIME) & _MASK64
    return f"{h:016x}"
