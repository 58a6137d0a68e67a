# config.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping

from dotenv import load_dotenv

_LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


def _maybe_load_env_file() -> None:
    """
    Load .env from the project root (same folder as this config.py).
    Never overwrites already-set environment variables.
    """
    dotenv_path = Path(__file__).resolve().parent / ".env"
    if dotenv_path.exists():
        load_dotenv(dotenv_path=dotenv_path, override=False)


@dataclass(frozen=True)
class MySqlConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    minsize: int = 1
    maxsize: int = 5
    connect_timeout: int = 10


@dataclass(frozen=True)
class EngineConfig:
    log_level: str
    mysql: MySqlConfig


class _Env:
    """Reads trimmed values from an environment mapping; blank counts as unset."""

    def __init__(self, environ: Mapping[str, str]) -> None:
        self._environ = environ

    def text(self, name: str, default: str) -> str:
        v = (self._environ.get(name) or "").strip()
        return v or default

    def number(self, name: str, default: int, *, minimum: int | None = None) -> int:
        raw = (self._environ.get(name) or "").strip()
        if not raw:
            return default
        try:
            value = int(raw)
        except ValueError as e:
            raise ValueError(f"{name} must be an integer, got: {raw!r}") from e
        if minimum is not None and value < minimum:
            raise ValueError(f"{name} must be >= {minimum}, got: {value}")
        return value


def load_config(environ: Mapping[str, str] | None = None) -> EngineConfig:
    """
    Build the engine config from `environ` (default: os.environ after
    loading .env).
    """
    if environ is None:
        _maybe_load_env_file()
        environ = os.environ
    env = _Env(environ)

    minsize = env.number("DB_POOL_MIN", 1, minimum=1)
    maxsize = env.number("DB_POOL_MAX", 5, minimum=minsize)

    log_level = env.text("LOG_LEVEL", "INFO").upper()
    if log_level not in _LOG_LEVELS:
        raise ValueError(f"LOG_LEVEL must be one of {', '.join(_LOG_LEVELS)}, got: {log_level!r}")

    return EngineConfig(
        log_level=log_level,
        mysql=MySqlConfig(
            host=env.text("DB_HOST", "127.0.0.1"),
            port=env.number("DB_PORT", 3306, minimum=1),
            user=env.text("DB_USER", "root"),
            password=(environ.get("DB_PASSWORD") or ""),
            database=env.text("DB_NAME", "bracket_engine"),
            minsize=minsize,
            maxsize=maxsize,
            connect_timeout=env.number("DB_CONNECT_TIMEOUT", 10, minimum=1),
        ),
    )
