"""
Calendar service: the cached front door to the per-game pipelines.

``CalendarService`` owns the three pieces of process-wide state:
  - the shared ``httpx.AsyncClient``;
  - the ``CoalescingTtlCache`` (keys ``events:<game>`` / ``version:<game>``);
  - the ``EndfieldCodeResolver`` with its discovered-code window.

Usage::

    async with CalendarService(load_config()) as service:
        events = await service.get_events(GameId.GENSHIN)

A primary-upstream failure propagates as ``UpstreamError`` and is not cached,
so the next call retries.
"""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

import httpx

from game_calendar.cache import CoalescingTtlCache
from game_calendar.config import AppConfig
from game_calendar.games.base import FetchContext
from game_calendar.games.registry import fetch_current_version_for_game, fetch_events_for_game
from game_calendar.ingestion.discovery import EndfieldCodeResolver
from game_calendar.models.event import CalendarEvent, GameVersionInfo
from game_calendar.taxonomy.game_taxonomy import GAMES, GameId

logger = logging.getLogger(__name__)


class CalendarService:
    """Cached access to every game's events and current version.

    Args:
        config: Application configuration.
        client: HTTP client to use; one is created (and closed by
            ``aclose()``) when omitted.
        clock: Monotonic seconds source shared by the cache and the resolver.
    """

    def __init__(
        self,
        config: AppConfig,
        client: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(follow_redirects=True)
        self.cache = CoalescingTtlCache(clock=clock)
        self.resolver = EndfieldCodeResolver(
            self.client,
            webview_url=config.upstream.endfield_webview_url,
            override=config.upstream.endfield_code,
            ttl_seconds=config.discovery.code_ttl_seconds,
            timeout_ms=config.http.timeout_ms,
            clock=clock,
        )
        self.context = FetchContext(
            client=self.client,
            upstream=config.upstream,
            timeout_ms=config.http.timeout_ms,
            user_agent=config.http.user_agent,
            code_resolver=self.resolver,
        )

    async def __aenter__(self) -> "CalendarService":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self.client.aclose()

    @staticmethod
    def games() -> list[tuple[GameId, str]]:
        return list(GAMES)

    async def get_events(self, game: GameId) -> list[CalendarEvent]:
        """Events for ``game``, from cache when fresh.

        Raises:
            UpstreamError: When the primary upstream fails on a cache miss.
        """

        async def produce() -> list[CalendarEvent]:
            events = await fetch_events_for_game(game, self.context)
            logger.info("Fetched %d events for %s", len(events), game, extra={"game": str(game)})
            return events

        return await self.cache.get_or_set(
            f"events:{game}", self.config.cache.ttl_seconds, produce
        )

    async def get_version(self, game: GameId) -> Optional[GameVersionInfo]:
        """Current version window for ``game`` (``None`` when unknown), cached."""
        return await self.cache.get_or_set(
            f"version:{game}",
            self.config.cache.ttl_seconds,
            lambda: fetch_current_version_for_game(game, self.context),
        )
