from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

import httpx

from .constants import LOGGER, REFRESH_EXEMPT_ENDPOINTS, RETRIED_EXTENSION

if TYPE_CHECKING:
    from .refresh import RefreshCoordinator

NETWORK_ERROR_MESSAGE = "Network request failed."


class ApiError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.payload = payload


class RefreshFailedError(ApiError):
    pass


def fallback_error_message(status_code: int) -> str:
    return f"Request failed with status {status_code}."


def error_message_from_payload(payload: Any, status_code: int) -> str:
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, str) and error.strip():
            return error
    return fallback_error_message(status_code)


def parse_json_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return None


def api_error_from_response(
    response: httpx.Response,
    *,
    error_cls: type[ApiError] = ApiError,
) -> ApiError:
    payload = parse_json_body(response)
    return error_cls(
        error_message_from_payload(payload, response.status_code),
        status_code=response.status_code,
        payload=payload,
    )


def api_error_from_transport_error(error: httpx.TransportError) -> ApiError:
    return ApiError(str(error) or NETWORK_ERROR_MESSAGE)


def is_refresh_exempt(url: httpx.URL) -> bool:
    path = url.path
    return any(endpoint in path for endpoint in REFRESH_EXEMPT_ENDPOINTS)


def is_retried(request: httpx.Request) -> bool:
    return bool(request.extensions.get(RETRIED_EXTENSION))


class RetryOnceTransport(httpx.AsyncBaseTransport):
    """Replays a request once after an expired session has been refreshed.

    A 401 on a request that has not been retried asks the coordinator for a
    valid credential and sends the same request again. The replay is marked
    retried so a second 401 comes back to the caller unchanged. Cookies on the
    replay are taken from ``cookies`` because the refresh rotates them.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        coordinator: "RefreshCoordinator",
        *,
        cookies: httpx.Cookies | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._transport = transport
        self._coordinator = coordinator
        self._cookies = cookies
        self._logger = logger or LOGGER

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        body = request.content
        response = await self._transport.handle_async_request(request)

        if response.status_code != 401:
            return response
        if is_retried(request) or is_refresh_exempt(request.url):
            return response

        await response.aclose()
        self._logger.warning(
            "Session expired, refreshing before replay (%s %s)",
            request.method,
            request.url,
        )
        await self._coordinator.ensure_valid_credential()

        replay = self._build_replay(request, body)
        return await self._transport.handle_async_request(replay)

    def _build_replay(self, request: httpx.Request, body: bytes) -> httpx.Request:
        headers = request.headers.copy()
        if self._cookies is not None:
            headers.pop("cookie", None)
        replay = httpx.Request(
            method=request.method,
            url=request.url,
            headers=headers,
            content=body,
            extensions={**request.extensions, RETRIED_EXTENSION: True},
        )
        if self._cookies is not None:
            self._cookies.set_cookie_header(replay)
        return replay

    async def aclose(self) -> None:
        await self._transport.aclose()
