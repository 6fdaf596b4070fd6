"""
Game taxonomy: the closed set of supported games.

``GameId`` is the only place a game is declared. Dispatch sites
(``games.registry``, ``games.gacha``) ``match`` on it and end with
``typing.assert_never`` so a new member that is not handled everywhere is a
type-check error rather than a runtime surprise.

This module has NO imports from any other ``game_calendar`` package.
"""

from enum import StrEnum


class GameId(StrEnum):
    """Supported game identifiers (also the public URL/CLI slug)."""

    GENSHIN = "genshin"
    """Genshin Impact (miHoYo, CN announcement API)."""

    STARRAIL = "starrail"
    """Honkai: Star Rail (miHoYo, CN announcement API)."""

    WW = "ww"
    """Wuthering Waves (Kuro wiki homepage modules)."""

    ZZZ = "zzz"
    """Zenless Zone Zero (miHoYo activity list + announcement content)."""

    SNOWBREAK = "snowbreak"
    """Snowbreak: Containment Zone (Seasun announce config JSON)."""

    ENDFIELD = "endfield"
    """Arknights: Endfield (Hypergryph bulletin aggregate)."""


# Display order for game pickers.
GAMES: list[tuple[GameId, str]] = [
    (GameId.GENSHIN, "原神"),
    (GameId.STARRAIL, "崩坏：星穹铁道"),
    (GameId.WW, "鸣潮"),
    (GameId.ZZZ, "绝区零"),
    (GameId.SNOWBREAK, "尘白禁区"),
    (GameId.ENDFIELD, "明日方舟：终末地"),
]
