# src/scriptdeck/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app.
- Nothing required at import time; every value has a default.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .tasks.log_buffer import MAX_LOGS
from .tasks.task_supervisor import DEFAULT_READ_CHUNK_SIZE

ENV_PREFIX = "SCRIPTDECK"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default: int, *, minimum: int = 1) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return max(minimum, int(raw))
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Project scope ----
    project_dir: Path

    # ---- Tasks ----
    max_logs: int
    package_manager: str
    clear_logs_on_run: bool
    read_chunk_size: int

    # ---- Console ----
    console_echo_output: bool

    @staticmethod
    def from_env() -> "Settings":
        return Settings(
            app_name=_env(_k("APP_NAME"), "scriptdeck").strip() or "scriptdeck",
            log_level=_env(_k("LOG_LEVEL"), "INFO"),
            data_dir=_env_path(_k("DATA_DIR"), Path(".local/scriptdeck")),
            project_dir=_env_path(_k("PROJECT_DIR"), Path.cwd()).resolve(),
            max_logs=_env_int(_k("MAX_LOGS"), MAX_LOGS),
            package_manager=_env(_k("PACKAGE_MANAGER"), "").strip(),
            clear_logs_on_run=_env_bool(_k("CLEAR_LOGS_ON_RUN"), False),
            read_chunk_size=_env_int(_k("READ_CHUNK_SIZE"), DEFAULT_READ_CHUNK_SIZE),
            console_echo_output=_env_bool(_k("CONSOLE_ECHO_OUTPUT"), True),
        )


_SETTINGS: Settings | None = None


def get_settings() -> Settings:
    """Process-wide settings; .env is read on first use, real env vars win."""
    global _SETTINGS
    if _SETTINGS is None:
        load_dotenv(override=False)
        _SETTINGS = Settings.from_env()
    return _SETTINGS
