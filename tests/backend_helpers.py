import itertools
from dataclasses import dataclass, field

import httpx
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse, Response
from starlette.routing import Route

from hms.client import ApiClient, build_api_client
from hms.refresh import SessionExpiredHandler

BASE_URL = "http://testserver/api"

PHONE = "0702913454"
OTP = "123456"
RESET_TOKEN = "reset-token-1"
EXPIRES_AT = "2026-10-19T12:10:00.000Z"


@dataclass
class FakeBackend:
    """In-memory stand-in for the HMS API, served over ASGI."""

    username: str = "owner"
    password: str = "secret1"
    refresh_ok: bool = True
    logout_ok: bool = True
    me_status: int | None = None
    reset_token_valid: bool = True
    access_token: str | None = None
    calls: list[str] = field(default_factory=list)
    reset_passwords: list[str] = field(default_factory=list)
    _counter: itertools.count = field(default_factory=lambda: itertools.count(1))

    def count(self, path: str) -> int:
        return self.calls.count(path)

    def expire_session(self) -> None:
        self.access_token = f"stale-{next(self._counter)}"

    def _issue(self, response: Response) -> None:
        self.access_token = f"access-{next(self._counter)}"
        response.set_cookie("access_token", self.access_token, path="/")
        response.set_cookie("refresh_token", "refresh-1", path="/")

    def _authorized(self, request: Request) -> bool:
        token = request.cookies.get("access_token")
        return token is not None and token == self.access_token

    def _user(self) -> dict:
        return {"id": 7, "username": self.username, "role": "HOSTEL_OWNER", "hostelId": 3}

    async def login(self, request: Request) -> Response:
        self.calls.append("login")
        payload = await request.json()
        if payload.get("username") != self.username or payload.get("password") != self.password:
            return JSONResponse({"error": "Invalid credentials"}, status_code=401)
        response = JSONResponse({"user": self._user()})
        self._issue(response)
        return response

    async def logout(self, request: Request) -> Response:
        self.calls.append("logout")
        if not self.logout_ok:
            return JSONResponse({"error": "Logout failed"}, status_code=500)
        self.access_token = None
        return JSONResponse({"message": "Logged out"})

    async def refresh(self, request: Request) -> Response:
        self.calls.append("refresh")
        if request.cookies.get("refresh_token") is None:
            return JSONResponse({"error": "No refresh token"}, status_code=400)
        if not self.refresh_ok:
            return JSONResponse({"error": "Refresh token expired"}, status_code=403)
        response = JSONResponse({"message": "Token refreshed"})
        self._issue(response)
        return response

    async def me(self, request: Request) -> Response:
        self.calls.append("me")
        if self.me_status is not None:
            return JSONResponse({"error": "Session invalid"}, status_code=self.me_status)
        if not self._authorized(request):
            return JSONResponse({"error": "Token expired"}, status_code=401)
        return JSONResponse(self._user())

    async def rooms(self, request: Request) -> Response:
        self.calls.append("rooms")
        if not self._authorized(request):
            return JSONResponse({"error": "Token expired"}, status_code=401)
        return JSONResponse([{"id": 1, "name": "A1", "price": 450000, "capacity": 2}])

    async def request_otp(self, request: Request) -> Response:
        self.calls.append("password-reset/request")
        payload = await request.json()
        if not payload.get("phone"):
            return JSONResponse({"error": "Phone number is required"}, status_code=400)
        return JSONResponse(
            {"message": "If this phone number is registered, an OTP has been sent."}
        )

    async def verify_otp(self, request: Request) -> Response:
        self.calls.append("password-reset/verify")
        payload = await request.json()
        if payload.get("phone") != PHONE or payload.get("otp") != OTP:
            return JSONResponse({"error": "Invalid or expired OTP"}, status_code=400)
        return JSONResponse(
            {
                "message": "OTP verified successfully",
                "resetToken": RESET_TOKEN,
                "expiresAt": EXPIRES_AT,
            }
        )

    async def reset_password(self, request: Request) -> Response:
        self.calls.append("password-reset/reset")
        payload = await request.json()
        if not self.reset_token_valid or payload.get("resetToken") != RESET_TOKEN:
            return JSONResponse({"error": "Invalid or expired reset token"}, status_code=400)
        self.reset_passwords.append(payload["newPassword"])
        return JSONResponse({"message": "Password reset successfully"})

    def app(self) -> Starlette:
        return Starlette(
            routes=[
                Route("/api/auth/login", self.login, methods=["POST"]),
                Route("/api/auth/logout", self.logout, methods=["POST"]),
                Route("/api/auth/refresh", self.refresh, methods=["POST"]),
                Route("/api/auth/me", self.me, methods=["GET"]),
                Route("/api/rooms", self.rooms, methods=["GET"]),
                Route("/api/password-reset/request", self.request_otp, methods=["POST"]),
                Route("/api/password-reset/verify", self.verify_otp, methods=["POST"]),
                Route("/api/password-reset/reset", self.reset_password, methods=["POST"]),
            ]
        )


def _build_backend_client(
    backend: FakeBackend,
    *,
    session_expired: SessionExpiredHandler | None = None,
) -> ApiClient:
    return build_api_client(
        BASE_URL,
        session_expired=session_expired,
        transport=httpx.ASGITransport(app=backend.app()),
    )


class RecordingHandler:
    def __init__(self) -> None:
        self.calls = 0

    async def on_refresh_failed(self) -> None:
        self.calls += 1
