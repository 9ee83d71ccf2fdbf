"""Configuration management for the exchange service."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

import yaml

from .database import resolve_database_path

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
DEFAULT_LOG_LEVEL = "INFO"


def _resolve_relative(raw: str, base_path: Path | None) -> Path:
    path = Path(raw).expanduser()
    if path.is_absolute() or base_path is None:
        return path.resolve(strict=False)
    return (base_path / path).resolve(strict=False)


@dataclass(frozen=True)
class ServiceConfig:
    """Runtime settings for the HTTP service and its database."""

    database_path: Path
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL

    @staticmethod
    def from_dict(data: Dict[str, object], base_path: Path | None = None) -> "ServiceConfig":
        """Create a :class:`ServiceConfig` from raw dictionary data."""
        unknown = set(data) - {"database_path", "host", "port", "log_level"}
        if unknown:
            raise ValueError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")

        raw_database = data.get("database_path")
        if raw_database:
            database_path = _resolve_relative(str(raw_database), base_path)
        else:
            database_path = resolve_database_path(None)

        try:
            port = int(data.get("port", DEFAULT_PORT))  # type: ignore[arg-type]
        except (TypeError, ValueError) as exc:
            raise ValueError("Configuration 'port' must be an integer") from exc
        if not 1 <= port <= 65535:
            raise ValueError("Configuration 'port' must be between 1 and 65535")

        log_level = str(data.get("log_level", DEFAULT_LOG_LEVEL)).upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ValueError(f"Unknown log level '{log_level}'")

        return ServiceConfig(
            database_path=database_path,
            host=str(data.get("host", DEFAULT_HOST)),
            port=port,
            log_level=log_level,
        )


def load_config(config_path: Path) -> ServiceConfig:
    """Load service settings from a YAML file; a missing file yields defaults."""
    if not config_path.exists():
        return ServiceConfig.from_dict({})

    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError("Configuration file must contain a mapping at the top level")

    return ServiceConfig.from_dict(raw, base_path=config_path.parent)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the configuration file."""
    if env_value:
        candidate = Path(env_value).expanduser().resolve(strict=False)
    else:
        candidate = (Path(__file__).resolve().parent.parent / "config" / "exchange.yaml").resolve(strict=False)
    return candidate


__all__ = ["ServiceConfig", "load_config", "resolve_config_path"]
