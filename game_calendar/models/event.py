"""
Calendar event models: the normalized output of every game pipeline.

``CalendarEvent`` is one limited-time activity; ``GameVersionInfo`` is the
"current version" window for a game. Both carry ISO-8601 strings with an
explicit numeric offset, and both refuse to exist with a non-positive window:
``end_time`` must be strictly after ``start_time``.

Pipelines build these through ``games.base.build_event`` which turns a
validation failure into a silent per-record skip.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from game_calendar.taxonomy.game_taxonomy import GameId
from game_calendar.utils.time_utils import parse_iso


def _validate_window(start_time: str, end_time: str) -> None:
    start = parse_iso(start_time)
    end = parse_iso(end_time)
    if start is None:
        raise ValueError(f"start_time is not an offset-aware ISO-8601 value: {start_time!r}.")
    if end is None:
        raise ValueError(f"end_time is not an offset-aware ISO-8601 value: {end_time!r}.")
    if end <= start:
        raise ValueError(
            f"end_time ({end_time}) must be strictly after start_time ({start_time})."
        )


class CalendarEvent(BaseModel):
    """A limited-time activity window for one game.

    Attributes:
        id: Publisher id or a stable hash; unique within one game's result set.
        title: Display title (tags stripped).
        start_time: ISO-8601 with explicit offset, e.g. ``"2026-02-10T12:00:00+08:00"``.
        end_time: ISO-8601 with explicit offset; strictly after ``start_time``.
        is_gacha: ``True`` for limited pull banners, ``None`` when the
            pipeline does not classify.
        banner: Optional image URL.
        content: Optional raw (HTML) announcement body.
        link_url: Optional deep link; serialized as ``linkUrl``.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Union[int, str]
    title: str
    start_time: str
    end_time: str
    is_gacha: Optional[bool] = None
    banner: Optional[str] = None
    content: Optional[str] = None
    link_url: Optional[str] = Field(default=None, alias="linkUrl")

    @model_validator(mode="after")
    def validate_window(self) -> "CalendarEvent":
        _validate_window(self.start_time, self.end_time)
        return self

    @property
    def start(self) -> datetime:
        return parse_iso(self.start_time)  # type: ignore[return-value]

    @property
    def end(self) -> datetime:
        return parse_iso(self.end_time)  # type: ignore[return-value]

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the JSON shape consumed by the serving layer."""
        return self.model_dump(by_alias=True, exclude_none=True)


class GameVersionInfo(BaseModel):
    """The currently relevant version-update window for a game.

    Attributes:
        game: Which game this version belongs to.
        version: Free-text label, e.g. ``"5.4"`` or ``"「空月之歌」"``.
        start_time: ISO-8601 with explicit offset.
        end_time: ISO-8601 with explicit offset; strictly after ``start_time``.
        ann_id: Publisher announcement id, when there is one.
        title: Title of the announcement the window came from.
    """

    model_config = ConfigDict(frozen=True)

    game: GameId
    version: str
    start_time: str
    end_time: str
    ann_id: Optional[int] = None
    title: Optional[str] = None

    @model_validator(mode="after")
    def validate_window(self) -> "GameVersionInfo":
        _validate_window(self.start_time, self.end_time)
        return self

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", exclude_none=True)
