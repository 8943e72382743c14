"""Password reset flow.

States per user:
- no pending reset: token and expiry are NULL
- requested: token + expiry (now + RESET_TOKEN_TTL_SECONDS) set, link mailed
- expired: token still stored but expiry <= now; lookups ignore it, nothing sweeps it
- consumed: password replaced, token and expiry cleared

Every lookup miss (unknown email, wrong token, expired token) raises
AuthResetInvalid; wrong and expired tokens produce the same message.
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from storedir.models import User
from storedir.services import mail
from storedir.services.accounts import hash_password, normalize_email
from storedir.services.errors import AuthResetInvalid, PasswordMismatch
from storedir.settings import get_settings
from storedir.stores.postgres import get_session

logger = logging.getLogger("uvicorn.error")

TOKEN_BYTES = 20

NO_ACCOUNT_MESSAGE = "No account exists with that email"
INVALID_TOKEN_MESSAGE = "Password reset is invalid or has expired"


def generate_reset_token() -> str:
    """Random opaque token: 20 bytes, hex encoded."""
    return secrets.token_hex(TOKEN_BYTES)


def reset_url_for(token: str) -> str:
    base = get_settings().public_base_url.rstrip("/")
    return f"{base}/account/reset/{token}"


def confirm_passwords(password: str, confirmation: str) -> None:
    """Require the confirmation to equal the password exactly.

    Raises:
        PasswordMismatch: If they differ.
    """
    if password != confirmation:
        raise PasswordMismatch()


async def _find_by_token(session: AsyncSession, token: str) -> User:
    now = datetime.now(timezone.utc)
    result = await session.execute(
        select(User).where(
            User.reset_password_token == token,
            User.reset_password_expires > now,
        )
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise AuthResetInvalid(INVALID_TOKEN_MESSAGE)
    return user


async def request_password_reset(email: str) -> None:
    """Issue a reset token for the account and mail the reset link.

    Raises:
        AuthResetInvalid: If no account uses this email (nothing is changed).
        MailError: If the link could not be mailed (the token stays stored).
    """
    settings = get_settings()

    async with get_session() as session:
        result = await session.execute(select(User).where(User.email == normalize_email(email)))
        user = result.scalar_one_or_none()
        if user is None:
            raise AuthResetInvalid(NO_ACCOUNT_MESSAGE)

        user.reset_password_token = generate_reset_token()
        user.reset_password_expires = datetime.now(timezone.utc) + timedelta(
            seconds=settings.reset_token_ttl_seconds
        )
        token = user.reset_password_token

    logger.info(f"Password reset requested for user {user.id}")

    await mail.send_mail(
        recipient=user.email,
        subject="Password Reset",
        template="password-reset",
        reset_url=reset_url_for(token),
        name=user.name,
    )


async def validate_reset_token(token: str) -> User:
    """Return the user holding this unexpired token.

    Raises:
        AuthResetInvalid: If the token is unknown or expired.
    """
    async with get_session() as session:
        return await _find_by_token(session, token)


async def consume_reset_token(token: str, new_password: str) -> User:
    """Set a new password using a reset token; the token stops working.

    The caller checks confirm_passwords first and signs the returned user in.

    Raises:
        AuthResetInvalid: If the token is unknown or expired.
    """
    async with get_session() as session:
        user = await _find_by_token(session, token)
        user.password_hash = hash_password(new_password)
        user.reset_password_token = None
        user.reset_password_expires = None

    logger.info(f"Password reset completed for user {user.id}")
    return user
