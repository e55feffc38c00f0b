"""Runtime settings read from the environment."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional, Tuple


def _split_origins(raw: str) -> Tuple[str, ...]:
    origins = tuple(item.strip() for item in raw.split(",") if item.strip())
    return origins or ("*",)


@dataclass(frozen=True)
class Settings:
    database_url: str
    log_level: str
    timezone: Optional[str]
    cors_origins: Tuple[str, ...]


def load_settings() -> Settings:
    """Build settings from the current process environment."""
    return Settings(
        database_url=os.environ.get("DATABASE_URL", "sqlite:///./sandyard.db"),
        log_level=os.environ.get("SANDYARD_LOG_LEVEL", "INFO").upper(),
        timezone=os.environ.get("SANDYARD_TIMEZONE") or None,
        cors_origins=_split_origins(os.environ.get("SANDYARD_CORS_ORIGINS", "*")),
    )


settings = load_settings()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or settings.log_level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


__all__ = ["Settings", "configure_logging", "load_settings", "settings"]
