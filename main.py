#!/usr/bin/env python3
"""
Authentication command-line client.

Logs in with a password or a one-time passcode, signs up, and manages the
locally stored session token.
"""

import argparse
import asyncio
import getpass
import logging
import sys
from typing import Optional

from authflow import (
    AuthContext,
    AuthFlowError,
    InvalidTransitionError,
    OtpState,
    RemoteAuthError,
    ThrottledError,
    close_context,
    get_context,
)
from authflow.session_store import mask_token

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)]
    )


async def prompt(message: str) -> str:
    """Read a line without blocking the event loop."""
    return (await asyncio.to_thread(input, message)).strip()


def display_status(ctx: AuthContext):
    state = ctx.session.current_state()
    if state.is_logged_in:
        print(f"Logged in (token {mask_token(state.token)})")
    else:
        print("Logged out")


async def password_login(ctx: AuthContext, email: str) -> int:
    password = getpass.getpass("Password: ")
    await ctx.facade.login_with_password(email, password)
    print("Login successful!")
    return 0


async def signup(ctx: AuthContext) -> int:
    print("\nCreate account:")
    name = await prompt("  Full name: ")
    email = await prompt("  Email: ")
    phone = await prompt("  Phone number: ")
    password = getpass.getpass("  Password: ")
    confirm_password = getpass.getpass("  Confirm password: ")

    await ctx.facade.signup(name, email, phone, password, confirm_password)
    print("Account created!")
    return 0


async def otp_login(ctx: AuthContext, phone: str, code: Optional[str] = None) -> int:
    """Send an OTP, then verify codes until one is accepted or the user quits."""
    otp = ctx.otp
    await otp.send(phone)
    print(f"OTP sent to {phone}")

    while otp.state is not OtpState.VERIFIED:
        if code is None:
            hint = "r to resend" if otp.can_resend else f"resend in {otp.seconds_remaining}s"
            code = await prompt(f"Enter the OTP ({hint}, q to quit): ")

        if code.lower() == "q":
            otp.reset()
            print("OTP login cancelled.")
            return 1

        if code.lower() == "r":
            code = None
            try:
                await otp.resend()
                print("OTP resent.")
            except ThrottledError as e:
                print(f"Resend available in {e.seconds_remaining}s")
            continue

        try:
            await ctx.facade.verify_otp(code)
        except RemoteAuthError as e:
            print(f"{e.message}")
        code = None

    print("Login successful!")
    return 0


async def run(args) -> int:
    ctx = get_context()

    try:
        if args.logout:
            ctx.facade.logout()
            print("Logged out.")
            return 0

        if args.login:
            return await password_login(ctx, args.login)

        if args.signup:
            return await signup(ctx)

        if args.otp:
            return await otp_login(ctx, args.otp, args.otp_code)

        display_status(ctx)
        return 0

    except InvalidTransitionError as e:
        logger.error(f"Unexpected OTP state: {e.message}")
        return 1
    except AuthFlowError as e:
        print(f"❌ {e.message}")
        return 1
    finally:
        await close_context()


def main():
    parser = argparse.ArgumentParser(
        description="Authentication client: password, OTP login and signup"
    )
    parser.add_argument(
        "--login",
        type=str,
        metavar="EMAIL",
        help="Log in with email and password (prompts for password)"
    )
    parser.add_argument(
        "--signup",
        action="store_true",
        help="Create a new account (interactive)"
    )
    parser.add_argument(
        "--otp",
        type=str,
        metavar="PHONE",
        help="Log in with a one-time passcode sent to PHONE"
    )
    parser.add_argument(
        "--otp-code",
        type=str,
        help="OTP code (skip the first interactive prompt)"
    )
    parser.add_argument(
        "--logout",
        action="store_true",
        help="Clear the stored session"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose logging"
    )

    args = parser.parse_args()

    setup_logging(args.verbose)

    try:
        return asyncio.run(run(args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 0


if __name__ == "__main__":
    sys.exit(main())
