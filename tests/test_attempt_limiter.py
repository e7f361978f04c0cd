"""
Tests for the per-key attempt limiter guarding sign in / sign up / invite checks.

Counts are stored in ``rate_limits``; the limiter objects hold no state.
"""
from __future__ import annotations

import asyncio
import os
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from mediashelf.core.attempt_limiter import AttemptLimiter
from mediashelf.core.exceptions import RateLimitError
from mediashelf.db.base import Base
from mediashelf.db.models import RateLimit
from mediashelf.db.repositories import rate_limits as rate_limits_repo


class Clock:
    def __init__(self):
        self.now = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_limiter(clock: Clock, prefix: str = "signin") -> AttemptLimiter:
    return AttemptLimiter(3, 60, 120, prefix=prefix, clock=clock)


@pytest.mark.asyncio
async def test_allows_up_to_max_attempts(session):
    clock = Clock()
    limiter = make_limiter(clock)

    for _ in range(3):
        assert (await limiter.check(session, "alice@example.com")).allowed

    decision = await limiter.check(session, "alice@example.com")
    assert not decision.allowed
    assert decision.retry_after == 120


@pytest.mark.asyncio
async def test_block_counts_down_then_releases(session):
    clock = Clock()
    limiter = make_limiter(clock)
    for _ in range(4):
        await limiter.check(session, "bob")

    clock.advance(100)
    decision = await limiter.check(session, "bob")
    assert not decision.allowed
    assert decision.retry_after == 20

    clock.advance(21)
    assert (await limiter.check(session, "bob")).allowed


@pytest.mark.asyncio
async def test_lapsed_block_inside_the_window_blocks_again(session):
    clock = Clock()
    limiter = AttemptLimiter(3, 600, 60, prefix="signup", clock=clock)
    for _ in range(4):
        await limiter.check(session, "carol")

    clock.advance(61)
    decision = await limiter.check(session, "carol")
    assert not decision.allowed
    assert decision.retry_after == 60


@pytest.mark.asyncio
async def test_window_expiry_restarts_the_count(session):
    clock = Clock()
    limiter = make_limiter(clock)
    for _ in range(3):
        await limiter.check(session, "dave")

    clock.advance(61)
    assert (await limiter.check(session, "dave")).allowed
    row = await rate_limits_repo.get_rate_limit(session, "signin:dave")
    assert row.attempts == 1


@pytest.mark.asyncio
async def test_keys_are_independent_and_case_insensitive(session):
    clock = Clock()
    limiter = make_limiter(clock)
    for _ in range(3):
        await limiter.check(session, "Erin@Example.com ")

    assert not (await limiter.check(session, "erin@example.com")).allowed
    assert (await limiter.check(session, "frank@example.com")).allowed
    # same address, different action
    assert (await make_limiter(clock, prefix="invite").check(session, "erin@example.com")).allowed


@pytest.mark.asyncio
async def test_reset_clears_the_key(session):
    clock = Clock()
    limiter = make_limiter(clock)
    for _ in range(4):
        await limiter.check(session, "gina")

    await limiter.reset(session, "gina")
    assert await rate_limits_repo.get_rate_limit(session, "signin:gina") is None
    assert (await limiter.check(session, "gina")).allowed


@pytest.mark.asyncio
async def test_hit_raises_with_retry_after(session):
    clock = Clock()
    limiter = make_limiter(clock)
    for _ in range(3):
        await limiter.hit(session, "hank")

    with pytest.raises(RateLimitError) as exc_info:
        await limiter.hit(session, "hank")
    assert exc_info.value.retry_after == 120


@pytest.mark.asyncio
async def test_block_outlives_the_limiter_and_the_session(session_factory):
    """A restarted or second worker sees the same block."""
    clock = Clock()
    async with session_factory() as first:
        limiter = make_limiter(clock)
        for _ in range(4):
            await limiter.check(first, "victim@example.com")

    async with session_factory() as second:
        fresh = make_limiter(clock)
        with pytest.raises(RateLimitError):
            await fresh.hit(second, "victim@example.com")

        row = (await second.execute(select(RateLimit).where(RateLimit.key == "signin:victim@example.com"))).scalar_one()
        assert row.attempts == 3
        assert row.blocked_until is not None


@pytest.mark.asyncio
async def test_cleanup_drops_old_unblocked_rows(session):
    clock = Clock()
    limiter = AttemptLimiter(1, 60, 2 * 24 * 60 * 60, prefix="signin", clock=clock)
    await limiter.check(session, "old")
    await limiter.check(session, "blocked")
    await limiter.check(session, "blocked")

    clock.advance(24 * 60 * 60 + 1)
    await limiter.check(session, "new")

    assert await rate_limits_repo.cleanup_rate_limits(session, now=clock()) == 1
    keys = set((await session.execute(select(RateLimit.key))).scalars().all())
    assert keys == {"signin:blocked", "signin:new"}


POSTGRES_URL = os.getenv("MEDIASHELF_TEST_POSTGRES_URL")


@pytest.mark.asyncio
@pytest.mark.skipif(not POSTGRES_URL, reason="row locks need Postgres; set MEDIASHELF_TEST_POSTGRES_URL")
async def test_concurrent_attempts_are_counted_once_each():
    """
    Concurrent attempts from separate sessions (as from separate workers)
    must not let more than ``max_attempts`` through, including the very first
    insert of the row.
    """
    engine = create_async_engine(POSTGRES_URL)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    factory = async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    async def attempt():
        async with factory() as s:
            return await rate_limits_repo.check_rate_limit(s, "signin:race@example.com", 3, 60, 120)

    try:
        results = await asyncio.gather(*(attempt() for _ in range(6)))
        allowed = sum(1 for ok, _ in results if ok)
        assert allowed == 3, f"Expected 3 allowed attempts, got {allowed}"
        for ok, retry in results:
            if not ok:
                assert 0 < retry <= 120
    finally:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)
        await engine.dispose()
