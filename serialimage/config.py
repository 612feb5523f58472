from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from serialimage.errors import ConfigError

# Load environment variables
load_dotenv()

LOG_FORMAT = "%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s"
LOG_DATEFMT = "%H:%M:%S"

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ConfigError(f"{name} must be a boolean, got {raw!r}")


def _env_int(name: str) -> Optional[int]:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{name} must be an integer, got {raw!r}") from exc


@dataclass(frozen=True)
class Settings:
    """
    Library settings, read from the environment (and a ``.env`` file).

    Fields:
        log_level: Level name used by ``configure_logging``.
        json_indent: Indent for JSON text output, ``None`` for compact output.
        fits_progname: Value of the ``PROGRAM`` card in FITS exports.
        fits_compress: Write tile-compressed FITS files.
        fits_overwrite: Overwrite existing FITS files.
    """
    log_level: str = "WARNING"
    json_indent: Optional[int] = None
    fits_progname: Optional[str] = None
    fits_compress: bool = False
    fits_overwrite: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        log_level = os.getenv("SERIALIMAGE_LOG_LEVEL", "WARNING").strip().upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigError(f"SERIALIMAGE_LOG_LEVEL is not a logging level: {log_level!r}")
        return cls(
            log_level=log_level,
            json_indent=_env_int("SERIALIMAGE_JSON_INDENT"),
            fits_progname=os.getenv("SERIALIMAGE_FITS_PROGNAME") or None,
            fits_compress=_env_bool("SERIALIMAGE_FITS_COMPRESS", False),
            fits_overwrite=_env_bool("SERIALIMAGE_FITS_OVERWRITE", False),
        )


def configure_logging(level: str | int | None = None) -> None:
    """Centralized logging configuration for applications embedding serialimage."""
    if level is None:
        level = Settings.from_env().log_level
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATEFMT)
