"""
Configuration management module.

This module loads settings for the submission server and client from the
environment (optionally seeded from a .env file) and configures logging.

Date: 2026-10-19
"""

import logging
import os
from dataclasses import dataclass
from typing import List, Optional

from dotenv import load_dotenv

BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
ENV_PATH = os.path.join(BASE_DIR, ".env")

load_dotenv(ENV_PATH)

DEFAULT_SUBMIT_URL = "http://localhost:3000/api/submit-location"
DEFAULT_RETRIES = 3
DEFAULT_TIMEOUT = 10.0
DEFAULT_BACKOFF_BASE_MS = 500
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


@dataclass(frozen=True)
class Settings:
    """Snapshot of the runtime configuration.

    Attributes:
        submit_url: Endpoint the client posts reports to.
        retries: Default number of retries after the first attempt.
        timeout: Total timeout for one submission attempt, in seconds.
        backoff_base_ms: Base of the exponential backoff, in milliseconds.
        cors_origins: Origins allowed to call the server.
        host: Interface the server binds to.
        port: Port the server listens on.
        log_level: Name of the logging level.
    """

    submit_url: str = DEFAULT_SUBMIT_URL
    retries: int = DEFAULT_RETRIES
    timeout: float = DEFAULT_TIMEOUT
    backoff_base_ms: int = DEFAULT_BACKOFF_BASE_MS
    cors_origins: tuple = ("*",)
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = "INFO"


def _get_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {value!r}")


def _get_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {value!r}")


def parse_origins(value: Optional[str]) -> List[str]:
    """Split a comma-separated list of CORS origins.

    Args:
        value: Raw CORS_ORIGINS value.

    Returns:
        List of origins, ["*"] when the value is empty.
    """
    if not value:
        return ["*"]
    origins = [origin.strip() for origin in value.split(",") if origin.strip()]
    return origins or ["*"]


def get_settings() -> Settings:
    """Read the current settings from the environment.

    Returns:
        Settings with every field resolved to its environment value or default.

    Raises:
        ValueError: If a numeric variable cannot be parsed.
    """
    return Settings(
        submit_url=os.getenv("SUBMIT_URL") or DEFAULT_SUBMIT_URL,
        retries=_get_int("SUBMIT_RETRIES", DEFAULT_RETRIES),
        timeout=_get_float("SUBMIT_TIMEOUT", DEFAULT_TIMEOUT),
        backoff_base_ms=_get_int("BACKOFF_BASE_MS", DEFAULT_BACKOFF_BASE_MS),
        cors_origins=tuple(parse_origins(os.getenv("CORS_ORIGINS"))),
        host=os.getenv("HOST") or DEFAULT_HOST,
        port=_get_int("PORT", DEFAULT_PORT),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )


def configure_logging(level: Optional[str] = None):
    """Configure root logging for the server or the command line client.

    Args:
        level: Level name; defaults to LOG_LEVEL from the environment.
    """
    level_name = (level or get_settings().log_level).upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.INFO), format=LOG_FORMAT)
