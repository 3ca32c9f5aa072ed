# config.py
"""
Environment-driven settings shared by the app, the MCP server and the
backfill CLI.

  PORT                   Gradio port (default 7860)
  ALLOCATION_PRECEDENCE  price | override (default price)
  ALLOCATION_CURRENCY    display currency (default USD)
  LOG_LEVEL              DEBUG / INFO / WARNING ... (default INFO)

Invalid values fall back to the defaults.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from functools import lru_cache
from typing import Optional

from price_allocation import PricePrecedence


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


def _get_int_env(key: str, default: int) -> int:
    val = os.environ.get(key, "").strip()
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        return default


def _get_precedence_env(key: str, default: PricePrecedence) -> PricePrecedence:
    val = os.environ.get(key, "").strip().lower()
    try:
        return PricePrecedence(val) if val else default
    except ValueError:
        return default


@dataclass(frozen=True)
class Settings:
    port: int = 7860
    precedence: PricePrecedence = PricePrecedence.PRICE
    currency: str = "USD"
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        level = os.environ.get("LOG_LEVEL", "").strip().upper() or cls.log_level
        if not isinstance(logging.getLevelName(level), int):
            level = cls.log_level
        return cls(
            port=_get_int_env("PORT", cls.port),
            precedence=_get_precedence_env("ALLOCATION_PRECEDENCE", cls.precedence),
            currency=(os.environ.get("ALLOCATION_CURRENCY", "").strip().upper() or cls.currency),
            log_level=level,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings.from_env()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=level or get_settings().log_level,
        format=LOG_FORMAT,
    )
