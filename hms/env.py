from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, ValidationError

from .constants import DEFAULT_API_URL, DEFAULT_TIMEOUT_SECONDS, LOGGER


def is_truthy(value: str | None) -> bool:
    if value is None:
        return False
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError:
        raise RuntimeError(f"{key} must be an integer value.")


def load_env() -> None:
    env_path = Path(__file__).resolve().parent.parent / ".env"
    if not env_path.exists():
        return
    load_dotenv(env_path, override=True)


def resolve_api_base_url() -> str:
    """Return the configured API base URL without a trailing slash.

    ``HMS_API_URL`` points the client at a custom backend; otherwise the hosted
    backend is used.
    """
    raw = os.getenv("HMS_API_URL", "").strip() or DEFAULT_API_URL
    try:
        url = AnyHttpUrl(raw)
    except ValidationError as error:
        raise RuntimeError(
            "HMS_API_URL must be a valid http(s) URL (for example: "
            "https://hmsapi.example.com/api)."
        ) from error
    return str(url).rstrip("/")


def resolve_timeout() -> int:
    return max(1, _get_env_int("HMS_API_TIMEOUT", DEFAULT_TIMEOUT_SECONDS))


def setup_logging() -> bool:
    debug_enabled = is_truthy(os.getenv("HMS_API_DEBUG", "0"))
    if debug_enabled:
        logging.basicConfig(level=logging.INFO)
        LOGGER.setLevel(logging.INFO)
    return debug_enabled
