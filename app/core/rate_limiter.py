"""Rate limiting

Two limiters live here:

- ``limiter``: slowapi per-client request limit for the HTTP API.
- ``LoginRateLimiter``: brute-force protection for the login endpoint.
  One instance is created at startup, stored on ``app.state`` and injected
  through ``deps.get_login_rate_limiter``.

The login flow calls ``check`` before verifying credentials and
``record_attempt`` afterwards. The two calls are not atomic with each other,
so concurrent attempts from one client near the limit can slip one extra
attempt through. Each individual entry update is an atomic compare-and-swap.
"""

import asyncio
import threading
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Tuple

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import settings
from app.core.logging import get_logger
from app.utils.time import get_utc_now

logger = get_logger(__name__)

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[f"{settings.RATE_LIMIT_PER_MINUTE}/minute"],
    enabled=settings.RATE_LIMIT_ENABLED,
)


@dataclass(frozen=True)
class AttemptWindow:
    """Failed attempts of one client inside the current window"""
    count: int
    window_reset_at: datetime
    blocked_until: Optional[datetime] = None

    def is_blocked(self, now: datetime) -> bool:
        return self.blocked_until is not None and self.blocked_until > now

    def is_expired(self, now: datetime) -> bool:
        return self.window_reset_at <= now and not self.is_blocked(now)


@dataclass(frozen=True)
class RateLimitStatus:
    allowed: bool
    remaining_attempts: int
    blocked_until: Optional[datetime] = None

    def retry_after_seconds(self, now: datetime) -> int:
        if self.blocked_until is None:
            return 0
        return max(0, int((self.blocked_until - now).total_seconds()))


class AttemptStore:
    """
    In-memory map of client key -> AttemptWindow.

    Entries are immutable and replaced whole. ``compare_and_swap`` only
    succeeds if the stored entry is still the exact object the caller read.
    """

    def __init__(self):
        self._entries: Dict[str, AttemptWindow] = {}
        self._lock = threading.Lock()

    def get(self, key: str) -> Optional[AttemptWindow]:
        with self._lock:
            return self._entries.get(key)

    def compare_and_swap(
        self,
        key: str,
        expected: Optional[AttemptWindow],
        new: Optional[AttemptWindow],
    ) -> bool:
        """Replace ``expected`` with ``new``; a ``new`` of None removes the entry"""
        with self._lock:
            if self._entries.get(key) is not expected:
                return False
            if new is None:
                self._entries.pop(key, None)
            else:
                self._entries[key] = new
            return True

    def snapshot(self) -> List[Tuple[str, AttemptWindow]]:
        with self._lock:
            return list(self._entries.items())

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class LoginRateLimiter:
    """
    At most ``max_attempts`` failures per ``window``; the next check after
    that blocks the client for ``block``. A successful login clears the
    failure count but never lifts an active block.
    """

    def __init__(
        self,
        max_attempts: int = 5,
        window: timedelta = timedelta(minutes=15),
        block: timedelta = timedelta(minutes=30),
        clock: Callable[[], datetime] = get_utc_now,
        store: Optional[AttemptStore] = None,
    ):
        self.max_attempts = max_attempts
        self.window = window
        self.block = block
        self.clock = clock
        self.store = store or AttemptStore()

    @classmethod
    def from_settings(cls, config=settings, **kwargs) -> "LoginRateLimiter":
        return cls(
            max_attempts=config.LOGIN_MAX_ATTEMPTS,
            window=timedelta(minutes=config.LOGIN_WINDOW_MINUTES),
            block=timedelta(minutes=config.LOGIN_BLOCK_MINUTES),
            **kwargs,
        )

    def _status(self, entry: Optional[AttemptWindow], now: datetime) -> RateLimitStatus:
        if entry is None:
            return RateLimitStatus(allowed=True, remaining_attempts=self.max_attempts)
        if entry.is_blocked(now):
            return RateLimitStatus(allowed=False, remaining_attempts=0, blocked_until=entry.blocked_until)
        if entry.window_reset_at <= now:
            return RateLimitStatus(allowed=True, remaining_attempts=self.max_attempts)
        return RateLimitStatus(
            allowed=True,
            remaining_attempts=max(0, self.max_attempts - entry.count),
        )

    def check(self, key: str) -> RateLimitStatus:
        """
        May this client attempt a login now?

        Once the window already holds ``max_attempts`` failures, the check
        itself starts the block.
        """
        while True:
            now = self.clock()
            entry = self.store.get(key)
            if entry is None or entry.is_blocked(now) or entry.window_reset_at <= now:
                return self._status(entry, now)
            if entry.count < self.max_attempts:
                return self._status(entry, now)

            blocked = replace(entry, blocked_until=now + self.block)
            if self.store.compare_and_swap(key, entry, blocked):
                logger.warning(
                    "Login blocked after too many failed attempts",
                    extra={"client": key, "blocked_until": blocked.blocked_until.isoformat()},
                )
                return self._status(blocked, now)

    def record_attempt(self, key: str, success: bool) -> RateLimitStatus:
        while True:
            now = self.clock()
            current = self.store.get(key)
            active_block = current.blocked_until if current is not None and current.is_blocked(now) else None

            if success:
                new = (
                    AttemptWindow(count=0, window_reset_at=now, blocked_until=active_block)
                    if active_block
                    else None
                )
            elif current is None or current.window_reset_at <= now:
                new = AttemptWindow(count=1, window_reset_at=now + self.window, blocked_until=active_block)
            else:
                new = replace(current, count=current.count + 1)

            if self.store.compare_and_swap(key, current, new):
                return self._status(new, now)

    def sweep(self) -> int:
        """Drop entries whose window and block have both expired"""
        now = self.clock()
        removed = 0
        for key, entry in self.store.snapshot():
            # A concurrent update replaces the entry object, so the swap fails and the entry stays
            if entry.is_expired(now) and self.store.compare_and_swap(key, entry, None):
                removed += 1
        return removed

    async def run_sweeper(self, interval_seconds: float) -> None:
        """Sweep forever on a fixed interval; cancel the task to stop"""
        while True:
            await asyncio.sleep(interval_seconds)
            removed = self.sweep()
            logger.debug(
                "Login rate limiter sweep",
                extra={"removed": removed, "remaining": len(self.store)},
            )
