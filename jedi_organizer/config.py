"""
FILE: jedi_organizer/config.py
PURPOSE: Settings loaded from JEDI_* environment variables
EXPORTS:
  - Settings (dataclass)
  - load_settings() -> Settings
DEPENDENCIES:
  - os, dataclasses, pathlib, logging (stdlib)
NOTES:
  - Read once at import time by repository.py (DB_DIR/DB_PATH) and by the
    CLI (log level, default user)
  - Empty variables count as unset
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

ENV_PREFIX = "JEDI"


def _k(suffix: str) -> str:
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: Optional[str] = None) -> Optional[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip()


def _env_path(name: str, default: Path) -> Path:
    raw = _env(name)
    return default if raw is None else Path(raw).expanduser()


def _env_log_level(name: str, default: int) -> int:
    raw = _env(name)
    if raw is None:
        return default
    if raw.isdigit():
        return int(raw)
    level = logging.getLevelName(raw.upper())
    return level if isinstance(level, int) else default


@dataclass(frozen=True)
class Settings:
    home_dir: Path
    db_path: Path
    log_level: int = logging.WARNING
    log_file: Optional[Path] = None
    default_user: Optional[str] = None


def load_settings() -> Settings:
    """Build Settings from the current environment."""
    home_dir = _env_path(_k("HOME"), Path.home() / ".jedi-organizer")
    log_file = _env(_k("LOG_FILE"))
    return Settings(
        home_dir=home_dir,
        db_path=_env_path(_k("DB_PATH"), home_dir / "jedi.db"),
        log_level=_env_log_level(_k("LOG_LEVEL"), logging.WARNING),
        log_file=Path(log_file).expanduser() if log_file else None,
        default_user=_env(_k("USER")),
    )
