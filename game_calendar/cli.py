"""
Game Calendar: CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Validate inputs.
  4. Run the pipeline through ``CalendarService``.
  5. Print the result to stdout (JSON for data commands).

Install and run::

    pip install -e .
    game-calendar --help
    game-calendar list-games
    game-calendar validate-config
    game-calendar events genshin
    game-calendar version-info starrail
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Optional

import typer

from game_calendar import __version__

app = typer.Typer(
    name="game-calendar",
    help="Game Calendar: limited-time events and version windows for gacha games.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from game_calendar.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from game_calendar.utils.logging import configure_logging
    configure_logging(config.logging)


def _parse_game_or_exit(game: str):
    from game_calendar.taxonomy.game_taxonomy import GameId

    try:
        return GameId(game.strip().lower())
    except ValueError:
        valid = ", ".join(g.value for g in GameId)
        typer.echo(f"[ERROR] Unknown game {game!r}. Expected one of: {valid}", err=True)
        raise typer.Exit(code=1)


def _echo_json(payload) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("version")
def version() -> None:
    """Print the package version."""
    typer.echo(__version__)


@app.command("list-games")
def list_games() -> None:
    """List supported game ids with their display names."""
    from game_calendar.taxonomy.game_taxonomy import GAMES

    _echo_json([{"id": game.value, "name": name} for game, name in GAMES])


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    overridden = [name for name, value in config.upstream.model_dump().items() if value]

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  HTTP timeout:      {config.http.timeout_ms} ms")
    typer.echo(f"  User-Agent:        {config.http.user_agent}")
    typer.echo(f"  Cache TTL:         {config.cache.ttl_seconds} s")
    typer.echo(f"  Code discovery:    {config.discovery.code_ttl_seconds} s window")
    typer.echo(f"  Upstream overrides:{' ' + ', '.join(overridden) if overridden else ' none'}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(), indent=2, default=str))

    typer.echo("")
    typer.echo("[OK] Config valid.")


@app.command("events")
def events(
    game: str = typer.Argument(..., help="Game id, e.g. genshin, starrail, zzz."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
    gacha_only: bool = typer.Option(
        False,
        "--gacha-only",
        help="Only print limited pull banners.",
    ),
) -> None:
    """Fetch and print the normalized events for one game as JSON."""
    from game_calendar.ingestion.http import UpstreamError
    from game_calendar.service import CalendarService

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    game_id = _parse_game_or_exit(game)

    async def run():
        async with CalendarService(config) as service:
            return await service.get_events(game_id)

    try:
        result = asyncio.run(run())
    except UpstreamError as exc:
        typer.echo(f"[ERROR] {game_id}: {exc}", err=True)
        raise typer.Exit(code=2)

    if gacha_only:
        result = [e for e in result if e.is_gacha]
    _echo_json([e.to_wire() for e in result])


@app.command("version-info")
def version_info(
    game: str = typer.Argument(..., help="Game id, e.g. genshin, starrail, zzz."),
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file.",
    ),
) -> None:
    """Print the current version window for one game as JSON (``null`` if unknown)."""
    from game_calendar.ingestion.http import UpstreamError
    from game_calendar.service import CalendarService

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    game_id = _parse_game_or_exit(game)

    async def run():
        async with CalendarService(config) as service:
            return await service.get_version(game_id)

    try:
        info = asyncio.run(run())
    except UpstreamError as exc:
        typer.echo(f"[ERROR] {game_id}: {exc}", err=True)
        raise typer.Exit(code=2)

    _echo_json(info.to_wire() if info is not None else None)


if __name__ == "__main__":
    app()
