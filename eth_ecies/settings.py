# =============================================================================
# Settings
# =============================================================================
"""
Process-level defaults for eth_ecies.

Resolution order for every key:
  1) explicit mapping passed to load_settings()
  2) os.environ (optionally pre-seeded from a .env file)
  3) built-in default

Nothing here touches the wire protocol. The envelope format is always chosen
per call (fmt=...), never from the environment; settings only decide how loud
logging is.
"""

from __future__ import annotations

import logging
import os
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

ENV_LOG_LEVEL = "ETH_ECIES_LOG_LEVEL"

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class EciesSettings(BaseModel):
    model_config = {"extra": "forbid", "frozen": True}

    log_level: str = Field(default="WARNING", description="Level for the eth_ecies logger.")

    @field_validator("log_level", mode="before")
    @classmethod
    def parse_log_level(cls, v):
        level = str(v).strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(_LOG_LEVELS)}")
        return level


def load_settings(
    mapping: Optional[Mapping[str, str]] = None,
    *,
    auto_dotenv: bool = False,
    dotenv_path: Optional[str] = None,
    dotenv_override: bool = False,
) -> EciesSettings:
    if auto_dotenv:
        load_dotenv(dotenv_path=dotenv_path, override=dotenv_override)

    explicit = dict(mapping or {})

    def get(name: str) -> Optional[str]:
        if name in explicit:
            return explicit[name]
        return os.environ.get(name)

    values = {}
    level = get(ENV_LOG_LEVEL)
    if level:
        values["log_level"] = level
    return EciesSettings(**values)


_settings: Optional[EciesSettings] = None


def get_settings() -> EciesSettings:
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings(settings: Optional[EciesSettings] = None) -> None:
    """Replace (or clear, with None) the cached process settings."""
    global _settings
    _settings = settings


def configure_logging(
    level: Optional[str] = None,
    *,
    formatter: Optional[logging.Formatter] = None,
) -> logging.Handler:
    """
    Attach a stream handler to the eth_ecies logger.

    Library code never configures logging on import; applications call this
    (or wire the "eth_ecies" logger into their own config). Calling it again
    replaces the handler it attached before, so records are never doubled.
    """
    logger = logging.getLogger("eth_ecies")
    logger.setLevel(level.upper() if level else get_settings().log_level)

    for h in list(logger.handlers):
        if getattr(h, "_eth_ecies", False):
            logger.removeHandler(h)
            h.close()

    handler = logging.StreamHandler()
    handler._eth_ecies = True  # marks the handler configure_logging() owns
    handler.setFormatter(formatter or logging.Formatter("%(asctime)s %(name)s %(levelname)s %(message)s"))
    logger.addHandler(handler)
    return handler
