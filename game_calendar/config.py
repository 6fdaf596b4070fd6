"""
Application configuration management.

Load order (each layer overrides the previous):
  1. ``config/default.toml``     : committed static defaults
  2. ``config/local.toml``       : optional local overrides (gitignored)
  3. ``.env``                    : local secrets and upstream URL overrides (gitignored)
  4. Environment variables       : ``GAME_CALENDAR_*`` prefix plus the
                                    per-upstream URL variables

Entry point: ``load_config(config_path=None) -> AppConfig``

Pipelines and CLI commands receive an ``AppConfig`` (or its ``upstream``
section), never raw dicts or individual env var lookups scattered through
the codebase.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any, Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, field_validator

from game_calendar import __version__

DEFAULT_USER_AGENT = f"game-calendar/{__version__} (+https://github.com/)"

# ── Sub-config models ─────────────────────────────────────────────────────────


class HttpConfig(BaseModel):
    """Outbound request settings shared by every upstream call."""

    model_config = ConfigDict(frozen=True)

    timeout_ms: int = 12_000
    user_agent: str = DEFAULT_USER_AGENT

    @field_validator("timeout_ms")
    @classmethod
    def validate_timeout(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"timeout_ms must be > 0, got {v}.")
        return v


class CacheConfig(BaseModel):
    """Freshness window for the per-game result cache."""

    model_config = ConfigDict(frozen=True)

    ttl_seconds: float = 60 * 60 * 24

    @field_validator("ttl_seconds")
    @classmethod
    def validate_ttl(cls, v: float) -> float:
        if v <= 0:
            raise ValueError(f"ttl_seconds must be > 0, got {v}.")
        return v


class DiscoveryConfig(BaseModel):
    """How long a discovered bulletin code stays valid in-process."""

    model_config = ConfigDict(frozen=True)

    code_ttl_seconds: float = 6 * 60 * 60


class LoggingConfig(BaseModel):
    """Logging output settings."""

    model_config = ConfigDict(frozen=True)

    level: str = "INFO"
    log_file: str = ""
    json_format: bool = False

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {sorted(valid)}, got '{v}'.")
        return v.upper()


# Field name → environment variable carrying the override.
UPSTREAM_ENV_VARS: dict[str, str] = {
    "genshin_api_url": "GENSHIN_API_URL",
    "genshin_content_api_url": "GENSHIN_CONTENT_API_URL",
    "starrail_api_url": "STARRAIL_API_URL",
    "starrail_content_api_url": "STARRAIL_CONTENT_API_URL",
    "zzz_api_url": "ZZZ_API_URL",
    "zzz_activity_api_url": "ZZZ_ACTIVITY_API_URL",
    "zzz_content_api_url": "ZZZ_CONTENT_API_URL",
    "snowbreak_announce_api_url": "SNOWBREAK_ANNOUNCE_API_URL",
    "ww_home_api_url": "KURO_WIKI_HOME_URL",
    "ww_catalogue_api_url": "KURO_WIKI_CATALOGUE_URL",
    "endfield_webview_url": "ENDFIELD_WEBVIEW_URL",
    "endfield_aggregate_api_url": "ENDFIELD_AGGREGATE_API_URL",
    "endfield_code": "ENDFIELD_CODE",
}


class UpstreamOverrides(BaseModel):
    """Optional per-upstream endpoint overrides.

    Every field is optional; a missing (or blank) value means "use the
    pipeline's hardcoded default endpoint". ``endfield_code`` short-circuits
    bulletin-code discovery entirely.
    """

    model_config = ConfigDict(frozen=True)

    genshin_api_url: Optional[str] = None
    genshin_content_api_url: Optional[str] = None
    starrail_api_url: Optional[str] = None
    starrail_content_api_url: Optional[str] = None
    zzz_api_url: Optional[str] = None
    zzz_activity_api_url: Optional[str] = None
    zzz_content_api_url: Optional[str] = None
    snowbreak_announce_api_url: Optional[str] = None
    ww_home_api_url: Optional[str] = None
    ww_catalogue_api_url: Optional[str] = None
    endfield_webview_url: Optional[str] = None
    endfield_aggregate_api_url: Optional[str] = None
    endfield_code: Optional[str] = None

    @field_validator("*")
    @classmethod
    def blank_is_missing(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "UpstreamOverrides":
        """Build overrides from ``GENSHIN_API_URL``-style variables."""
        env = os.environ if environ is None else environ
        values = {
            field: env[var]
            for field, var in UPSTREAM_ENV_VARS.items()
            if env.get(var)
        }
        return cls(**values)


class AppConfig(BaseModel):
    """Complete application configuration, the single source of truth.

    It is constructed by ``load_config()`` which merges TOML + .env + env vars.
    """

    model_config = ConfigDict(frozen=True)

    http: HttpConfig = HttpConfig()
    cache: CacheConfig = CacheConfig()
    discovery: DiscoveryConfig = DiscoveryConfig()
    logging: LoggingConfig = LoggingConfig()
    upstream: UpstreamOverrides = UpstreamOverrides()
    debug: bool = False


# ── Loader ────────────────────────────────────────────────────────────────────

_PROJECT_ROOT = Path(__file__).parent.parent


def _find_project_root() -> Path:
    """Walk up from this file to find the project root (contains pyproject.toml)."""
    candidate = Path(__file__).parent
    for _ in range(5):
        if (candidate / "pyproject.toml").exists():
            return candidate
        candidate = candidate.parent
    return _PROJECT_ROOT


def load_config(config_path: Optional[Path] = None) -> AppConfig:
    """Load and merge application configuration.

    Args:
        config_path: Explicit path to a TOML config file. Defaults to
            ``<project_root>/config/default.toml``; when that default file is
            absent the built-in model defaults are used.

    Returns:
        Fully validated ``AppConfig`` instance.

    Raises:
        FileNotFoundError: If an explicitly given ``config_path`` does not exist.
        pydantic.ValidationError: If merged config values fail validation.
    """
    root = _find_project_root()

    # 1. Load .env file (silently skip if missing)
    load_dotenv(dotenv_path=root / ".env", override=False)

    # 2. Load TOML config
    raw: dict[str, Any] = {}
    if config_path is not None:
        config_path = Path(config_path)
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        config_path = root / "config" / "default.toml"

    if config_path.exists():
        with open(config_path, "rb") as f:
            raw = tomllib.load(f)

        # Also merge local.toml if present (gitignored local overrides)
        local_config_path = config_path.parent / "local.toml"
        if local_config_path.exists():
            with open(local_config_path, "rb") as f:
                raw = _deep_merge(raw, tomllib.load(f))

    # 3. Apply environment variable overrides
    raw = _apply_env_overrides(raw, os.environ)

    # 4. Build and validate AppConfig
    return _build_app_config(raw)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into ``base``."""
    result = dict(base)
    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = _deep_merge(result[key], val)
        else:
            result[key] = val
    return result


def _apply_env_overrides(raw: dict[str, Any], environ: Mapping[str, str]) -> dict[str, Any]:
    """Apply environment variables to the raw config dict.

    Supported overrides:
      GAME_CALENDAR_LOG_LEVEL          → raw["logging"]["level"]
      GAME_CALENDAR_CACHE_TTL_SECONDS  → raw["cache"]["ttl_seconds"]
      CACHE_TTL_SECONDS                → same, legacy name (ignored unless > 0)
      GAME_CALENDAR_DEBUG              → raw["debug"]
      <UPSTREAM>_URL / ENDFIELD_CODE   → raw["upstream"][...]
    """
    if log_level := environ.get("GAME_CALENDAR_LOG_LEVEL"):
        raw.setdefault("logging", {})["level"] = log_level

    ttl = environ.get("GAME_CALENDAR_CACHE_TTL_SECONDS") or environ.get("CACHE_TTL_SECONDS")
    if ttl:
        try:
            seconds = float(ttl)
        except ValueError:
            seconds = 0.0
        if seconds > 0:
            raw.setdefault("cache", {})["ttl_seconds"] = seconds

    if debug := environ.get("GAME_CALENDAR_DEBUG"):
        raw["debug"] = debug.lower() in ("1", "true", "yes")

    upstream = raw.setdefault("upstream", {})
    for field, var in UPSTREAM_ENV_VARS.items():
        if value := environ.get(var):
            upstream[field] = value

    return raw


def _build_app_config(raw: dict[str, Any]) -> AppConfig:
    """Map raw TOML dict to ``AppConfig`` model structure."""
    return AppConfig(
        http=HttpConfig(**raw.get("http", {})),
        cache=CacheConfig(**raw.get("cache", {})),
        discovery=DiscoveryConfig(**raw.get("discovery", {})),
        logging=LoggingConfig(**raw.get("logging", {})),
        upstream=UpstreamOverrides(**raw.get("upstream", {})),
        debug=raw.get("debug", False),
    )
