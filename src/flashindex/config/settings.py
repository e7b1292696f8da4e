"""TOML config loading and profiles."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

# Default config search path (project root or cwd)
_CONFIG_DIR = Path(__file__).resolve().parent.parent.parent.parent / "config"
_CWD_CONFIG = Path.cwd() / "config"

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

# Environment overrides for deploy-time values: env var -> (section, key)
_ENV_OVERRIDES = {
    "FLASHINDEX_RPC_URL": ("chain", "rpc_url"),
    "FLASHINDEX_CONTRACT_ADDRESS": ("chain", "contract_address"),
}


def _load_toml(path: Path) -> dict[str, Any]:
    with open(path, "rb") as f:
        return tomllib.load(f)


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge override into base. Override values take precedence."""
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _find_config_dir() -> Path:
    if _CWD_CONFIG.exists():
        return _CWD_CONFIG
    return _CONFIG_DIR


def _apply_env(raw: dict[str, Any]) -> dict[str, Any]:
    for env_name, (section, key) in _ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            raw = _deep_merge(raw, {section: {key: value}})
    return raw


def load_config(profile: str | None = None, config_dir: Path | None = None) -> dict[str, Any]:
    """Load merged config from default.toml, optional profile overlay and env overrides."""
    config_dir = config_dir or _find_config_dir()
    default_path = config_dir / "default.toml"
    base: dict[str, Any] = {}
    if default_path.exists():
        base = _load_toml(default_path)
    if profile:
        profile_path = config_dir / f"{profile}.toml"
        if profile_path.exists():
            overlay = _load_toml(profile_path)
            base = _deep_merge(base, overlay)
    return _apply_env(base)


def get_settings(profile: str | None = None, config_dir: Path | None = None) -> Settings:
    """Return Settings instance from merged config."""
    raw = load_config(profile, config_dir)
    return Settings.from_dict(raw)


class Settings:
    """Application settings from TOML config."""

    def __init__(
        self,
        *,
        chain: dict[str, Any] | None = None,
        indexer: dict[str, Any] | None = None,
        metrics: dict[str, Any] | None = None,
        api: dict[str, Any] | None = None,
        logging: dict[str, Any] | None = None,
    ):
        self.chain = chain or {}
        self.indexer = indexer or {}
        self.metrics = metrics or {}
        self.api = api or {}
        self.logging = logging or {}

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> Settings:
        return cls(
            chain=raw.get("chain"),
            indexer=raw.get("indexer"),
            metrics=raw.get("metrics"),
            api=raw.get("api"),
            logging=raw.get("logging"),
        )

    # Convenience accessors with defaults
    @property
    def rpc_url(self) -> str:
        return self.chain.get("rpc_url", "https://testnet-rpc.monad.xyz")

    @property
    def contract_address(self) -> str | None:
        """Configured contract address, or None when unset or the zero address."""
        addr = (self.chain.get("contract_address") or "").strip()
        if not addr or addr.lower() == ZERO_ADDRESS:
            return None
        return addr

    @property
    def native_decimals(self) -> int:
        return int(self.chain.get("native_decimals", 18))

    @property
    def chunk_size(self) -> int:
        return int(self.indexer.get("chunk_size", 2000))

    @property
    def backfill_blocks(self) -> int:
        return int(self.indexer.get("backfill_blocks", 10000))

    @property
    def poll_interval_sec(self) -> float:
        return float(self.indexer.get("poll_interval_sec", 2.0))

    @property
    def request_timeout_sec(self) -> float:
        return float(self.indexer.get("request_timeout_sec", 10.0))

    @property
    def max_events(self) -> int:
        return int(self.indexer.get("max_events", 1000))

    @property
    def block_window(self) -> int:
        return int(self.indexer.get("block_window", 1000))

    @property
    def advance_policy(self) -> str:
        return str(self.indexer.get("advance_policy", "always")).lower()

    @property
    def series_window(self) -> int:
        return int(self.metrics.get("series_window", 50))

    @property
    def active_window(self) -> int:
        return int(self.metrics.get("active_window", 100))

    @property
    def api_host(self) -> str:
        return self.api.get("host", "127.0.0.1")

    @property
    def api_port(self) -> int:
        return int(self.api.get("port", 8000))

    @property
    def default_limit(self) -> int:
        return int(self.api.get("default_limit", 50))

    @property
    def logging_level(self) -> str:
        return self.logging.get("level", "INFO").upper()

    @property
    def logging_format(self) -> str:
        return self.logging.get("format", "console")

    @property
    def logging_level_num(self) -> int:
        return getattr(logging, self.logging_level, logging.INFO)


def configure_logging(settings: Settings) -> None:
    """Configure structlog with settings. Call once at application entry."""
    import structlog

    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
    ]
    if settings.logging_format == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(settings.logging_level_num),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )
