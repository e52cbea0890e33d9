from __future__ import annotations

import asyncio
import getpass

from auth.otp_flow import FlowError, FlowState, PasswordResetFlow
from hms.client import ApiClient, build_api_client
from hms.env import load_env, resolve_api_base_url, resolve_timeout, setup_logging
from hms.http import ApiError

OTP_SENT_MESSAGE = "If this phone number is registered, an OTP has been sent to your phone."
RESET_DONE_MESSAGE = "Password reset successfully! You can now login with your new password."


async def run_password_reset(
    flow: PasswordResetFlow,
    *,
    prompt=input,
    secret_prompt=getpass.getpass,
    echo=print,
) -> int:
    """Walk the user through the three password reset steps.

    Each step is re-prompted after a validation or server error. A rejected
    reset token sends the user back to the phone step.
    """
    try:
        while True:
            if flow.state is FlowState.IDLE:
                phone = prompt("Phone number: ")
                try:
                    message = await flow.request_otp(phone)
                except (FlowError, ApiError) as error:
                    echo(f"Error: {error}")
                    continue
                echo(message or OTP_SENT_MESSAGE)

            elif flow.state is FlowState.OTP_REQUESTED:
                otp = prompt("OTP code: ")
                try:
                    verification = await flow.verify_otp(otp)
                except (FlowError, ApiError) as error:
                    echo(f"Error: {error}")
                    continue
                remaining = flow.session.time_remaining() if flow.session else None
                echo(verification.message or "OTP verified successfully.")
                if remaining is not None:
                    echo(f"Reset token expires in {int(remaining // 60)} minutes.")

            else:
                new_password = secret_prompt("New password: ")
                confirm_password = secret_prompt("Confirm password: ")
                try:
                    message = await flow.reset_password(new_password, confirm_password)
                except FlowError as error:
                    echo(f"Error: {error}")
                    continue
                except ApiError as error:
                    echo(f"Error: {error}")
                    echo("Please start over.")
                    flow.abandon()
                    continue
                echo(message or RESET_DONE_MESSAGE)
                return 0
    except (EOFError, KeyboardInterrupt):
        flow.abandon()
        echo("Password reset cancelled.")
        return 1


async def _run(client: ApiClient) -> int:
    async with client:
        return await run_password_reset(PasswordResetFlow(client))


def main() -> int:
    load_env()
    debug_enabled = setup_logging()
    client = build_api_client(
        resolve_api_base_url(),
        timeout=resolve_timeout(),
        debug_enabled=debug_enabled,
    )
    return asyncio.run(_run(client))


if __name__ == "__main__":
    raise SystemExit(main())
