"""Configuration management for clanki."""

import os
from dataclasses import dataclass
from typing import Mapping


DEFAULT_URL = "http://127.0.0.1:8765"


@dataclass
class Settings:
    """Runtime settings, read from the environment."""

    url: str = DEFAULT_URL
    max_attempts: int = 3
    retry_delay: float = 1.0
    timeout: float = 30.0
    log_level: str = "INFO"


def _read_int(environ: Mapping[str, str], name: str, default: int, minimum: int) -> int:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def _read_float(environ: Mapping[str, str], name: str, default: float, allow_zero: bool) -> float:
    raw = environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}") from None
    if value < 0 or (value == 0 and not allow_zero):
        bound = ">= 0" if allow_zero else "> 0"
        raise ValueError(f"{name} must be {bound}, got {value}")
    return value


def load_settings(environ: Mapping[str, str] | None = None) -> Settings:
    """
    Build settings from environment variables.

    Recognized variables:
        ANKI_CONNECT_URL: AnkiConnect endpoint (default: http://127.0.0.1:8765)
        ANKI_CONNECT_MAX_ATTEMPTS: total attempts per request (default: 3)
        ANKI_CONNECT_RETRY_DELAY: first backoff delay in seconds (default: 1.0)
        ANKI_CONNECT_TIMEOUT: HTTP timeout in seconds (default: 30.0)
        CLANKI_LOG_LEVEL: logging level name (default: INFO)

    Raises:
        ValueError: If a variable is set to a malformed value
    """
    if environ is None:
        environ = os.environ

    log_level = environ.get("CLANKI_LOG_LEVEL", "").strip().upper() or "INFO"
    if log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
        raise ValueError(f"CLANKI_LOG_LEVEL must be a logging level name, got {log_level!r}")

    return Settings(
        url=environ.get("ANKI_CONNECT_URL", "").strip() or DEFAULT_URL,
        max_attempts=_read_int(environ, "ANKI_CONNECT_MAX_ATTEMPTS", 3, minimum=1),
        retry_delay=_read_float(environ, "ANKI_CONNECT_RETRY_DELAY", 1.0, allow_zero=True),
        timeout=_read_float(environ, "ANKI_CONNECT_TIMEOUT", 30.0, allow_zero=False),
        log_level=log_level,
    )
