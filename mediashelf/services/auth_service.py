"""
Invite-only sign up, sign in and access tokens.

Every entry point is guarded by an attempt limiter keyed on the email (or the
caller for invite checks); a successful sign up / sign in resets the key.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession
from werkzeug.security import check_password_hash, generate_password_hash

from mediashelf.core.attempt_limiter import invite_limiter, signin_limiter, signup_limiter
from mediashelf.core.config import settings
from mediashelf.core.exceptions import AuthenticationError, InviteCodeError, ValidationError
from mediashelf.core.validation import normalize_email, validate_password
from mediashelf.db.models import UserProfile
from mediashelf.db.repositories import connections as connections_repo
from mediashelf.db.repositories import invite_codes as invite_repo
from mediashelf.db.repositories import users as users_repo

logger = logging.getLogger(__name__)


def hash_password(password: str) -> str:
    return generate_password_hash(password)


def verify_password(password_hash: str, password: str) -> bool:
    return check_password_hash(password_hash or "", password)


def create_access_token(user: UserProfile) -> str:
    """
    Create a JWT access token for ``user``.

    The subject is the user id; role and email ride along for the client.
    """
    now = datetime.now(timezone.utc)
    payload = {
        "sub": str(user.id),
        "email": user.email,
        "role": user.role,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
        "iat": now,
    }
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Raises:
        AuthenticationError: If the token is invalid or expired
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as e:
        raise AuthenticationError(f"Invalid token: {e}", user_message="Your session has expired, please sign in again") from e

    if not payload.get("sub"):
        raise AuthenticationError("Token has no subject", user_message="Your session has expired, please sign in again")
    return payload


async def check_invite_code(session: AsyncSession, code: str, client_key: str, email: str | None = None) -> bool:
    """Whether ``code`` could be used to sign up right now (by ``email``). Limited per ``client_key``."""
    await invite_limiter.hit(session, client_key)
    return await invite_repo.validate_invite_code(session, code, email)


async def sign_up(
    session: AsyncSession,
    email: str,
    password: str,
    invite_code: str,
    display_name: str | None = None,
) -> tuple[UserProfile, str]:
    """
    Create an account with a valid invite code.

    The code is validated (against ``email`` when it was issued for one)
    before the account exists and consumed after; a failure to consume is
    logged but does not undo the account. The new user is connected to
    everyone already registered.

    Returns:
        (user, access token)
    """
    email = normalize_email(email)
    await signup_limiter.hit(session, email)
    validate_password(password)

    if not await invite_repo.validate_invite_code(session, invite_code, email):
        raise InviteCodeError(f"Sign up for {email} with unusable invite code")

    if await users_repo.get_user_by_email(session, email) is not None:
        raise ValidationError(f"Email {email} already registered", user_message="An account with this email already exists")

    user = await users_repo.create_user(
        session,
        email=email,
        password_hash=hash_password(password),
        display_name=(display_name or "").strip() or None,
    )

    if not await invite_repo.consume_invite_code(session, invite_code, user.id, email):
        logger.error("Failed to consume invite code for new user %s", user.id)

    connected = await connections_repo.connect_to_everyone(session, user.id)
    logger.info("User %s signed up, connected to %d user(s)", user.id, connected)

    await signup_limiter.reset(session, email)
    return user, create_access_token(user)


async def sign_in(session: AsyncSession, email: str, password: str) -> tuple[UserProfile, str]:
    """
    Returns:
        (user, access token)

    Raises:
        RateLimitError: Too many attempts for this email
        AuthenticationError: Unknown email or wrong password
    """
    email = normalize_email(email)
    await signin_limiter.hit(session, email)

    user = await users_repo.get_user_by_email(session, email)
    if user is None or not verify_password(user.password_hash, password):
        raise AuthenticationError(f"Failed sign in for {email}", user_message="Invalid email or password")

    await signin_limiter.reset(session, email)
    return user, create_access_token(user)


async def get_user_from_token(session: AsyncSession, token: str) -> UserProfile:
    payload = decode_access_token(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError) as e:
        raise AuthenticationError(f"Bad token subject {payload.get('sub')!r}", user_message="Invalid token") from e

    user = await users_repo.get_user(session, user_id)
    if user is None:
        raise AuthenticationError(f"Token for missing user {user_id}", user_message="Your account no longer exists")
    return user
