from __future__ import annotations

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.db.models import Connection, UserProfile
from mediashelf.db.utils import upsert


async def connect(session: AsyncSession, user_a: int, user_b: int) -> None:
    """
    Create a bidirectional connection between two users.
    Existing connections are left alone (ON CONFLICT DO NOTHING).
    """
    if user_a == user_b:
        return
    for uid, fid in ((user_a, user_b), (user_b, user_a)):
        stmt = upsert(
            session,
            Connection,
            {"user_id": uid, "friend_id": fid},
            index_elements=["user_id", "friend_id"],
        )
        await session.execute(stmt)
    await session.commit()


async def connect_to_everyone(session: AsyncSession, user_id: int) -> int:
    """
    Connect a new user with every existing user. Returns the number of users connected.
    """
    others = (await session.execute(select(UserProfile.id).where(UserProfile.id != user_id))).scalars().all()
    for other in others:
        for uid, fid in ((user_id, other), (other, user_id)):
            await session.execute(
                upsert(session, Connection, {"user_id": uid, "friend_id": fid}, index_elements=["user_id", "friend_id"])
            )
    await session.commit()
    return len(others)


async def are_connected(session: AsyncSession, user_id: int, friend_id: int) -> bool:
    stmt = select(Connection.id).where(
        or_(
            and_(Connection.user_id == user_id, Connection.friend_id == friend_id),
            and_(Connection.user_id == friend_id, Connection.friend_id == user_id),
        )
    ).limit(1)
    return (await session.execute(stmt)).scalar_one_or_none() is not None


async def list_friends(session: AsyncSession, user_id: int) -> list[UserProfile]:
    stmt = (
        select(UserProfile)
        .join(Connection, Connection.friend_id == UserProfile.id)
        .where(Connection.user_id == user_id)
        .order_by(UserProfile.display_name)
    )
    return list((await session.execute(stmt)).scalars().all())
