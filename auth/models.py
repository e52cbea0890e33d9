from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _require_message(payload: dict, kind: str) -> str:
    message = payload.get("message", "")
    if not isinstance(message, str):
        raise RuntimeError(f"{kind} response message must be a string.")
    return message


@dataclass
class OtpRequestResult:
    message: str

    @classmethod
    def from_payload(cls, payload: dict) -> "OtpRequestResult":
        if not isinstance(payload, dict):
            raise RuntimeError("OTP request response must be a JSON object.")
        return cls(message=_require_message(payload, "OTP request"))


@dataclass
class OtpVerification:
    message: str
    reset_token: str
    expires_at: datetime

    @classmethod
    def from_payload(cls, payload: dict) -> "OtpVerification":
        if not isinstance(payload, dict):
            raise RuntimeError("OTP verification response must be a JSON object.")
        reset_token = payload.get("resetToken")
        expires_at = payload.get("expiresAt")

        if not isinstance(reset_token, str) or not reset_token:
            raise RuntimeError("OTP verification response missing resetToken.")
        if not isinstance(expires_at, str) or not expires_at:
            raise RuntimeError("OTP verification response missing expiresAt.")
        try:
            parsed_expiry = parse_timestamp(expires_at)
        except ValueError as error:
            raise RuntimeError("OTP verification expiresAt is not a valid timestamp.") from error

        return cls(
            message=_require_message(payload, "OTP verification"),
            reset_token=reset_token,
            expires_at=parsed_expiry,
        )


@dataclass
class PasswordResetResult:
    message: str

    @classmethod
    def from_payload(cls, payload: dict) -> "PasswordResetResult":
        if not isinstance(payload, dict):
            raise RuntimeError("Password reset response must be a JSON object.")
        return cls(message=_require_message(payload, "Password reset"))


@dataclass
class OTPSession:
    phone: str
    otp: str = ""
    reset_token: str | None = None
    expires_at: datetime | None = None

    def time_remaining(self, *, now: datetime | None = None) -> float | None:
        """Seconds left before the server-issued reset token expires.

        Informational only. The server decides whether a token is still valid.
        """
        if self.expires_at is None:
            return None
        current = now or datetime.now(timezone.utc)
        return max(0.0, (self.expires_at - current).total_seconds())
