"""
FastAPI dependencies: database session and the authenticated user.
"""

import logging

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.exceptions import AuthenticationError
from mediashelf.db.models import UserProfile
from mediashelf.db.session import get_async_session
from mediashelf.services import admin_service, auth_service

logger = logging.getLogger(__name__)

bearer = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer),
    session: AsyncSession = Depends(get_async_session),
) -> UserProfile:
    """Resolve the bearer JWT to a user; 401 when it is missing or invalid."""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token", user_message="Not authenticated")
    return await auth_service.get_user_from_token(session, credentials.credentials)


async def get_admin_user(user: UserProfile = Depends(get_current_user)) -> UserProfile:
    admin_service.require_admin(user)
    return user
