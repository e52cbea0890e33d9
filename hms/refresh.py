from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Protocol

from .constants import LOGGER
from .http import ApiError, RefreshFailedError


class SessionExpiredHandler(Protocol):
    async def on_refresh_failed(self) -> None: ...


class RefreshCoordinator:
    """Single-flight credential refresh shared by every in-flight request.

    The first caller to find no refresh running performs the refresh call. Any
    caller arriving while it runs waits on a future that settles with the same
    outcome. The check and set of ``refreshing`` happen with no ``await`` in
    between, so two callers on one event loop can never both start a refresh.
    """

    def __init__(
        self,
        refresh_fn: Callable[[], Awaitable[None]],
        *,
        session_expired: SessionExpiredHandler | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._refresh_fn = refresh_fn
        self._session_expired = session_expired
        self._logger = logger or LOGGER
        self._refreshing = False
        self._waiters: list[asyncio.Future[None]] = []

    @property
    def refreshing(self) -> bool:
        return self._refreshing

    @property
    def waiting(self) -> int:
        return len(self._waiters)

    async def ensure_valid_credential(self) -> None:
        if self._refreshing:
            waiter: asyncio.Future[None] = asyncio.get_running_loop().create_future()
            self._waiters.append(waiter)
            await waiter
            return

        self._refreshing = True
        self._logger.info("Refreshing session credential")
        try:
            await self._refresh_fn()
        except asyncio.CancelledError:
            self._settle(RefreshFailedError("Credential refresh was cancelled."))
            raise
        except Exception as error:
            failure = self._as_refresh_failure(error)
            self._logger.warning("Credential refresh failed: %s", failure.message)
            try:
                if self._session_expired is not None:
                    await self._session_expired.on_refresh_failed()
            finally:
                self._settle(failure)
            if failure is error:
                raise
            raise failure from error

        self._settle(None)

    def _settle(self, failure: RefreshFailedError | None) -> None:
        waiters, self._waiters = self._waiters, []
        self._refreshing = False
        for waiter in waiters:
            if waiter.done():
                continue
            if failure is None:
                waiter.set_result(None)
            else:
                waiter.set_exception(failure)

    @staticmethod
    def _as_refresh_failure(error: Exception) -> RefreshFailedError:
        if isinstance(error, RefreshFailedError):
            return error
        if isinstance(error, ApiError):
            return RefreshFailedError(
                error.message,
                status_code=error.status_code,
                payload=error.payload,
            )
        return RefreshFailedError(str(error) or "Credential refresh failed.")
