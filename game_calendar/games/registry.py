"""
Dispatch from a ``GameId`` to its pipeline.

Both functions ``match`` over the closed ``GameId`` enum and end in
``assert_never``, so adding a game without wiring it here fails type
checking.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional, assert_never

from game_calendar.games import endfield, genshin, snowbreak, starrail, ww, zzz
from game_calendar.games.base import FetchContext
from game_calendar.models.event import CalendarEvent, GameVersionInfo
from game_calendar.taxonomy.game_taxonomy import GameId


async def fetch_events_for_game(game: GameId, ctx: FetchContext) -> list[CalendarEvent]:
    """Run the event pipeline for ``game``.

    Raises:
        UpstreamError: When the game's primary upstream fails.
    """
    match game:
        case GameId.GENSHIN:
            return await genshin.fetch_events(ctx)
        case GameId.STARRAIL:
            return await starrail.fetch_events(ctx)
        case GameId.WW:
            return await ww.fetch_events(ctx)
        case GameId.ZZZ:
            return await zzz.fetch_events(ctx)
        case GameId.SNOWBREAK:
            return await snowbreak.fetch_events(ctx)
        case GameId.ENDFIELD:
            return await endfield.fetch_events(ctx)
        case _:
            assert_never(game)


async def fetch_current_version_for_game(
    game: GameId,
    ctx: FetchContext,
    now: Optional[datetime] = None,
) -> Optional[GameVersionInfo]:
    """Resolve the current version window for ``game``; ``None`` if unknown."""
    match game:
        case GameId.GENSHIN:
            return await genshin.fetch_current_version(ctx, now)
        case GameId.STARRAIL:
            return await starrail.fetch_current_version(ctx, now)
        case GameId.WW:
            return await ww.fetch_current_version(ctx, now)
        case GameId.ZZZ:
            return await zzz.fetch_current_version(ctx, now)
        case GameId.SNOWBREAK:
            return await snowbreak.fetch_current_version(ctx, now)
        case GameId.ENDFIELD:
            return None
        case _:
            assert_never(game)
