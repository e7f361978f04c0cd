from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.ext.asyncio import AsyncSession

from mediashelf.core.constants import INVITE_ATTEMPT_LIMIT, SIGNIN_ATTEMPT_LIMIT, SIGNUP_ATTEMPT_LIMIT
from mediashelf.core.exceptions import RateLimitError
from mediashelf.db.base import utcnow
from mediashelf.db.repositories import rate_limits as rate_limits_repo

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AttemptDecision:
    allowed: bool
    retry_after: int = 0


class AttemptLimiter:
    """
    Fixed-window attempt counter per key (e.g. per email address).

    Once ``max_attempts`` attempts have been made inside ``window_seconds``
    the next attempt blocks the key for ``block_seconds``. Counts live in the
    ``rate_limits`` table, so they hold across restarts and workers.
    """

    def __init__(
        self,
        max_attempts: int,
        window_seconds: float,
        block_seconds: float,
        *,
        prefix: str = "",
        clock: Callable[[], datetime] = utcnow,
    ):
        self.max_attempts = max_attempts
        self.window_seconds = window_seconds
        self.block_seconds = block_seconds
        self.prefix = prefix
        self._clock = clock

    def key_for(self, key: str) -> str:
        key = key.strip().lower()
        return f"{self.prefix}:{key}" if self.prefix else key

    async def check(self, session: AsyncSession, key: str) -> AttemptDecision:
        """Count an attempt for ``key`` and say whether it may proceed."""
        allowed, retry_after = await rate_limits_repo.check_rate_limit(
            session,
            self.key_for(key),
            self.max_attempts,
            self.window_seconds,
            self.block_seconds,
            now=self._clock(),
        )
        return AttemptDecision(allowed, retry_after)

    async def hit(self, session: AsyncSession, key: str) -> None:
        """Like ``check`` but raises RateLimitError when the attempt is denied."""
        decision = await self.check(session, key)
        if not decision.allowed:
            raise RateLimitError(retry_after=decision.retry_after)

    async def reset(self, session: AsyncSession, key: str) -> None:
        await rate_limits_repo.reset_rate_limit(session, self.key_for(key))


signin_limiter = AttemptLimiter(*SIGNIN_ATTEMPT_LIMIT, prefix="signin")
signup_limiter = AttemptLimiter(*SIGNUP_ATTEMPT_LIMIT, prefix="signup")
invite_limiter = AttemptLimiter(*INVITE_ATTEMPT_LIMIT, prefix="invite")
