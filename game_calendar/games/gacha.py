"""Limited-banner ("gacha") classification by title keyword, per game."""

from __future__ import annotations

from typing import Optional, assert_never

from game_calendar.taxonomy.game_taxonomy import GameId


def is_gacha_title(game: GameId, title: Optional[str]) -> bool:
    """``True`` when ``title`` names a limited pull banner for ``game``.

    An empty or whitespace-only title is never a banner.
    """
    normalized = (title or "").strip()
    if not normalized:
        return False

    match game:
        case GameId.ENDFIELD:
            return "特许寻访" in normalized
        case GameId.STARRAIL:
            return "跃迁" in normalized
        case GameId.GENSHIN:
            return "祈愿" in normalized
        case GameId.WW:
            return "唤取" in normalized
        case GameId.SNOWBREAK:
            return "共鸣开启" in normalized
        case GameId.ZZZ:
            return "限时频段" in normalized or "独家频段" in normalized
        case _:
            assert_never(game)
