from __future__ import annotations

from http.cookiejar import CookieJar
from typing import Any

import httpx

from .constants import DEFAULT_TIMEOUT_SECONDS, LOGGER, REFRESH_PATH
from .http import (
    RetryOnceTransport,
    api_error_from_response,
    api_error_from_transport_error,
    parse_json_body,
)
from .refresh import RefreshCoordinator, SessionExpiredHandler


class ApiClient:
    """JSON facade over the HMS API.

    Error responses raise :class:`~hms.http.ApiError` carrying the server's
    ``error`` message. Expired sessions are recovered below this layer by
    :class:`~hms.http.RetryOnceTransport`, so callers only ever see the final
    outcome.
    """

    def __init__(self, http_client: httpx.AsyncClient, coordinator: RefreshCoordinator) -> None:
        self._http = http_client
        self.coordinator = coordinator

    @property
    def http(self) -> httpx.AsyncClient:
        return self._http

    @property
    def cookies(self) -> httpx.Cookies:
        return self._http.cookies

    async def request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        try:
            response = await self._http.request(method, path, json=json, params=params)
        except httpx.TransportError as error:
            raise api_error_from_transport_error(error) from error

        if response.status_code >= 400:
            raise api_error_from_response(response)
        return parse_json_body(response)

    async def get(self, path: str, *, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, *, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, *, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, *, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)

    async def refresh_credential(self) -> None:
        await self.post(REFRESH_PATH, json={})

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "ApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()


def _build_event_hooks(debug_enabled: bool) -> dict[str, list]:
    async def log_request(request: httpx.Request) -> None:
        if not debug_enabled:
            return
        LOGGER.info("HMS API request %s %s", request.method, request.url)

    async def log_response(response: httpx.Response) -> None:
        if not debug_enabled:
            return
        LOGGER.info(
            "HMS API response %s %s -> %s",
            response.request.method,
            response.request.url,
            response.status_code,
        )
        if response.status_code >= 400:
            body = await response.aread()
            text = body.decode("utf-8", errors="replace")
            if len(text) > 1000:
                text = text[:1000] + "...<truncated>"
            LOGGER.warning("HMS API error body: %s", text)

    return {"request": [log_request], "response": [log_response]}


def build_api_client(
    base_url: str,
    *,
    session_expired: SessionExpiredHandler | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    timeout: float = DEFAULT_TIMEOUT_SECONDS,
    debug_enabled: bool = False,
) -> ApiClient:
    jar = CookieJar()

    async def refresh() -> None:
        await api.refresh_credential()

    coordinator = RefreshCoordinator(refresh, session_expired=session_expired, logger=LOGGER)
    retry_transport = RetryOnceTransport(
        transport or httpx.AsyncHTTPTransport(),
        coordinator,
        cookies=httpx.Cookies(jar),
        logger=LOGGER,
    )
    http_client = httpx.AsyncClient(
        base_url=base_url,
        cookies=jar,
        timeout=timeout,
        transport=retry_transport,
        event_hooks=_build_event_hooks(debug_enabled),
    )
    api = ApiClient(http_client, coordinator)
    return api
