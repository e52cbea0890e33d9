from __future__ import annotations

import logging

LOGGER = logging.getLogger("hms.api")

DEFAULT_API_URL = "https://hmsapi.martomor.xyz/api"
DEFAULT_TIMEOUT_SECONDS = 30

REFRESH_PATH = "/auth/refresh"
LOGIN_ENDPOINT = "/auth/login"
LOGOUT_ENDPOINT = "/auth/logout"
ME_ENDPOINT = "/auth/me"

# Requests to these endpoints never trigger a credential refresh.
REFRESH_EXEMPT_ENDPOINTS = (
    LOGIN_ENDPOINT,
    LOGOUT_ENDPOINT,
    REFRESH_PATH,
    ME_ENDPOINT,
    "/password-reset/",
)

RETRIED_EXTENSION = "hms_retried"

# Access tokens live 15 minutes on the server.
KEEPALIVE_INTERVAL_SECONDS = 14 * 60
