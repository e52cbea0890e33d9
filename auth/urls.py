from __future__ import annotations

import urllib.parse

LOGIN_PATH = "/login"


def normalize_path(location: str) -> str:
    parsed = urllib.parse.urlparse(location)
    path = parsed.path or "/"
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def is_login_path(location: str) -> bool:
    return normalize_path(location) == LOGIN_PATH
