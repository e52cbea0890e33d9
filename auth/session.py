from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Awaitable, Callable

from auth.session_store import CachedUser, SessionStore
from auth.urls import LOGIN_PATH, is_login_path
from hms.constants import (
    KEEPALIVE_INTERVAL_SECONDS,
    LOGGER,
    LOGIN_ENDPOINT,
    LOGOUT_ENDPOINT,
    ME_ENDPOINT,
)
from hms.http import ApiError

if TYPE_CHECKING:
    from hms.client import ApiClient

# /auth/me answers these when the session itself is no longer valid.
SESSION_REJECTED_STATUSES = {400, 403}


class Navigator:
    """Tracks the view the user is on and records redirects."""

    def __init__(self, current_path: str = "/") -> None:
        self.current_path = current_path
        self.history: list[str] = [current_path]

    def navigate(self, path: str) -> None:
        self.current_path = path
        self.history.append(path)


class LoginRedirectHandler:
    """Drops the cached session and sends the user to the login view."""

    def __init__(self, store: SessionStore, navigator: Navigator) -> None:
        self._store = store
        self._navigator = navigator

    async def on_refresh_failed(self) -> None:
        await self.expire()

    async def expire(self) -> None:
        if is_login_path(self._navigator.current_path):
            return
        await self._store.clear()
        self._navigator.navigate(LOGIN_PATH)


class AuthSession:
    def __init__(
        self,
        client: "ApiClient",
        store: SessionStore,
        navigator: Navigator,
        *,
        keepalive_interval: float = KEEPALIVE_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        logger: logging.Logger | None = None,
    ) -> None:
        self._client = client
        self._store = store
        self._navigator = navigator
        self._keepalive_interval = keepalive_interval
        self._sleep = sleep
        self._redirect = LoginRedirectHandler(store, navigator)
        self._logger = logger or LOGGER
        self._keepalive_task: asyncio.Task | None = None

    async def login(self, username: str, password: str) -> CachedUser:
        payload = await self._client.post(
            LOGIN_ENDPOINT,
            json={"username": username, "password": password},
        )
        if not isinstance(payload, dict):
            raise RuntimeError("Login response must be a JSON object.")
        user = CachedUser.from_payload(payload.get("user"))
        await self._store.set(user)
        return user

    async def logout(self) -> None:
        self.stop_keepalive()
        try:
            await self._client.post(LOGOUT_ENDPOINT, json={})
        except ApiError as error:
            self._logger.debug("Ignoring logout failure: %s", error.message)
        await self._store.clear()
        self._navigator.navigate(LOGIN_PATH)

    async def refresh(self) -> None:
        await self._client.coordinator.ensure_valid_credential()

    async def restore(self) -> CachedUser | None:
        """Re-validate a cached session against ``/auth/me``.

        Returns None when there is nothing to restore. Only a definitive
        rejection of the session logs the user out; network errors and server
        failures are raised with the cache left in place.
        """
        if is_login_path(self._navigator.current_path):
            return None
        if await self._store.get() is None:
            return None

        try:
            try:
                payload = await self._client.get(ME_ENDPOINT)
            except ApiError as error:
                if error.status_code != 401:
                    raise
                await self.refresh()
                payload = await self._client.get(ME_ENDPOINT)
        except ApiError as error:
            if error.status_code in SESSION_REJECTED_STATUSES:
                await self._redirect.expire()
            raise

        user = CachedUser.from_payload(payload)
        await self._store.set(user)
        return user

    def start_keepalive(self) -> asyncio.Task:
        if self._keepalive_task is None or self._keepalive_task.done():
            self._keepalive_task = asyncio.get_running_loop().create_task(self._keepalive())
        return self._keepalive_task

    def stop_keepalive(self) -> None:
        if self._keepalive_task is not None:
            self._keepalive_task.cancel()
            self._keepalive_task = None

    async def aclose(self) -> None:
        task = self._keepalive_task
        self.stop_keepalive()
        if task is not None:
            try:
                await task
            except asyncio.CancelledError:
                pass

    async def _keepalive(self) -> None:
        while True:
            await self._sleep(self._keepalive_interval)
            try:
                await self.refresh()
            except ApiError as error:
                # The next request that sees a 401 retries the refresh.
                self._logger.debug("Proactive token refresh failed: %s", error.message)

