from __future__ import annotations

import enum
import logging
import re
from typing import TYPE_CHECKING

from auth import password_reset
from auth.models import OTPSession, OtpVerification
from hms.constants import LOGGER

if TYPE_CHECKING:
    from hms.client import ApiClient

OTP_LENGTH = 6
MIN_PASSWORD_LENGTH = 6

_NON_DIGITS = re.compile(r"[^0-9]")


class FlowState(enum.Enum):
    IDLE = "idle"
    OTP_REQUESTED = "otp_requested"
    OTP_VERIFIED = "otp_verified"


class FlowError(RuntimeError):
    pass


class FlowValidationError(FlowError):
    pass


class FlowPreconditionError(FlowError):
    pass


def sanitize_otp(raw: str) -> str:
    return _NON_DIGITS.sub("", raw)[:OTP_LENGTH]


class PasswordResetFlow:
    """Client side of the OTP password reset.

    Idle -> OTP requested -> OTP verified -> Idle. Input is validated before
    every server call. A step reached without the data an earlier step should
    have produced aborts the flow back to Idle.
    """

    def __init__(self, client: "ApiClient", *, logger: logging.Logger | None = None) -> None:
        self._client = client
        self._logger = logger or LOGGER
        self._state = FlowState.IDLE
        self._session: OTPSession | None = None

    @property
    def state(self) -> FlowState:
        return self._state

    @property
    def session(self) -> OTPSession | None:
        return self._session

    async def request_otp(self, phone: str) -> str:
        phone = (phone or "").strip()
        if not phone:
            raise FlowValidationError("Please enter your phone number")

        result = await password_reset.request_otp(self._client, phone)
        self._session = OTPSession(phone=phone)
        self._state = FlowState.OTP_REQUESTED
        return result.message

    def enter_otp(self, raw: str) -> str:
        session = self._require_phone()
        session.otp = sanitize_otp(raw or "")
        return session.otp

    async def verify_otp(self, otp: str | None = None) -> OtpVerification:
        session = self._require_phone()
        if otp is not None:
            self.enter_otp(otp)
        if len(session.otp) != OTP_LENGTH:
            raise FlowValidationError("Please enter a valid 6-digit OTP")

        verification = await password_reset.verify_otp(self._client, session.phone, session.otp)
        session.reset_token = verification.reset_token
        session.expires_at = verification.expires_at
        self._state = FlowState.OTP_VERIFIED
        return verification

    async def reset_password(self, new_password: str, confirm_password: str) -> str:
        session = self._session
        if session is None or not session.phone or not session.reset_token:
            self.abandon()
            raise FlowPreconditionError("Reset session expired. Please start over.")
        if not new_password or len(new_password) < MIN_PASSWORD_LENGTH:
            raise FlowValidationError("Password must be at least 6 characters long")
        if new_password != confirm_password:
            raise FlowValidationError("Passwords do not match")

        result = await password_reset.reset_password(
            self._client,
            session.phone,
            session.reset_token,
            new_password,
        )
        self._logger.info("Password reset completed")
        self.abandon()
        return result.message

    def abandon(self) -> None:
        self._session = None
        self._state = FlowState.IDLE

    def _require_phone(self) -> OTPSession:
        session = self._session
        if session is None or not session.phone:
            self.abandon()
            raise FlowPreconditionError("Phone number not found. Please start over.")
        return session
