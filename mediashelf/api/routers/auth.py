"""
Sign up / sign in endpoints.
"""

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.api.dependencies import get_current_user
from mediashelf.api.schemas import FriendOut, InviteCheckIn, InviteCheckOut, SignInIn, SignUpIn, TokenOut, UserOut
from mediashelf.db.models import UserProfile
from mediashelf.db.repositories import connections as connections_repo
from mediashelf.db.session import get_async_session
from mediashelf.services import auth_service

router = APIRouter(prefix="/api/auth", tags=["auth"])


@router.post("/signup", response_model=TokenOut, status_code=201)
async def signup(body: SignUpIn, session: AsyncSession = Depends(get_async_session)):
    """Create an account with an invite code."""
    user, token = await auth_service.sign_up(
        session, body.email, body.password, body.invite_code, display_name=body.display_name
    )
    return TokenOut(access_token=token, user=UserOut.model_validate(user))


@router.post("/signin", response_model=TokenOut)
async def signin(body: SignInIn, session: AsyncSession = Depends(get_async_session)):
    user, token = await auth_service.sign_in(session, body.email, body.password)
    return TokenOut(access_token=token, user=UserOut.model_validate(user))


@router.post("/invite/check", response_model=InviteCheckOut)
async def check_invite(body: InviteCheckIn, request: Request, session: AsyncSession = Depends(get_async_session)):
    client_key = request.client.host if request.client else "unknown"
    valid = await auth_service.check_invite_code(session, body.code, client_key, email=body.email)
    return InviteCheckOut(valid=valid)


@router.get("/me", response_model=UserOut)
async def me(user: UserProfile = Depends(get_current_user)):
    return user


@router.get("/friends", response_model=list[FriendOut])
async def friends(user: UserProfile = Depends(get_current_user), session: AsyncSession = Depends(get_async_session)):
    return await connections_repo.list_friends(session, user.id)
