from __future__ import annotations

from typing import TYPE_CHECKING

from auth.models import OtpRequestResult, OtpVerification, PasswordResetResult

if TYPE_CHECKING:
    from hms.client import ApiClient

REQUEST_OTP_PATH = "/password-reset/request"
VERIFY_OTP_PATH = "/password-reset/verify"
RESET_PASSWORD_PATH = "/password-reset/reset"


async def request_otp(client: "ApiClient", phone: str) -> OtpRequestResult:
    payload = await client.post(REQUEST_OTP_PATH, json={"phone": phone})
    return OtpRequestResult.from_payload(payload)


async def verify_otp(client: "ApiClient", phone: str, otp: str) -> OtpVerification:
    payload = await client.post(VERIFY_OTP_PATH, json={"phone": phone, "otp": otp})
    return OtpVerification.from_payload(payload)


async def reset_password(
    client: "ApiClient",
    phone: str,
    reset_token: str,
    new_password: str,
) -> PasswordResetResult:
    payload = await client.post(
        RESET_PASSWORD_PATH,
        json={
            "phone": phone,
            "resetToken": reset_token,
            "newPassword": new_password,
        },
    )
    return PasswordResetResult.from_payload(payload)
