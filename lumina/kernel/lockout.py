"""LockoutController — failed-attempt counting and the timed lockdown.

States:
- OPEN:    not locked, and either no failures or a lockout that has run out
- WARNING: 0 < failures < MAX_LOGIN_ATTEMPTS, not locked
- LOCKED:  a persisted lockout end time lies in the future

``is_locked()`` is the single source of truth. It compares the persisted end
time with the clock on every call and unlocks lazily once the window has
elapsed. The asyncio timer armed on lockout only calls back into that same
check, so a timer that never fired (process restarted mid-lockout) or fires
twice cannot leave the state inconsistent.
"""

from __future__ import annotations

import asyncio
import logging
import math
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional

from lumina.core.enums import LockoutState
from lumina.core.plugin_protocols import KeyValueStore
from lumina.core.protocols import LockoutStatus
from lumina.logging_config import log_security_event
from lumina.storage import FAILED_COUNT_KEY, LOCKOUT_END_KEY

logger = logging.getLogger(__name__)

MAX_LOGIN_ATTEMPTS = 3
LOCKOUT_DURATION = timedelta(minutes=5)

Clock = Callable[[], datetime]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so they compare with stored end times."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class LockoutController:
    def __init__(self, store: KeyValueStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or utcnow
        self._timer: Optional[asyncio.TimerHandle] = None
        self._listeners: List[Callable[[], None]] = []

    # ── Persisted state ──

    @property
    def failed_count(self) -> int:
        value = self._store.get_or_default(FAILED_COUNT_KEY, 0)
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            self._discard(FAILED_COUNT_KEY, f"invalid attempt counter {value!r}")
            return 0
        return value

    def lockout_end_time(self) -> Optional[datetime]:
        raw = self._store.get_or_default(LOCKOUT_END_KEY)
        if raw is None:
            return None
        try:
            end = datetime.fromisoformat(raw)
        except (TypeError, ValueError):
            self._discard(LOCKOUT_END_KEY, f"invalid lockout end time {raw!r}")
            return None
        return as_utc(end)

    def _now(self, now: datetime | None = None) -> datetime:
        return as_utc(now or self._clock())

    def _discard(self, key: str, reason: str) -> None:
        logger.warning("Discarding persisted %s: %s", key, reason)
        log_security_event("persistence_corrupt", key=key, reason=reason)
        self._store.delete(key)

    # ── Transitions ──

    def record_failure(self, now: datetime | None = None) -> int:
        """Count a failed attempt. Arms the lockout when the threshold is reached.

        Returns the new failure count.
        """
        now = self._now(now)
        count = self.failed_count + 1
        self._store.set(FAILED_COUNT_KEY, count)
        logger.info("Failed login attempt %d/%d", count, MAX_LOGIN_ATTEMPTS)

        if count >= MAX_LOGIN_ATTEMPTS:
            end = now + LOCKOUT_DURATION
            self._store.set(LOCKOUT_END_KEY, end.isoformat())
            self._schedule_unlock(end)
            logger.warning("Too many failed login attempts; locked until %s", end.isoformat())
            log_security_event("lockout_armed", failed_count=count, until=end.isoformat())
        return count

    def record_success(self) -> None:
        self._store.set(FAILED_COUNT_KEY, 0)

    def is_locked(self, now: datetime | None = None) -> bool:
        end = self.lockout_end_time()
        if end is None:
            return False
        now = self._now(now)
        if end > now:
            return True
        self._unlock("expired")
        return False

    def reset(self) -> None:
        """Force OPEN: clear the counter and any lockout."""
        was_locked = self.lockout_end_time() is not None
        self._store.delete(FAILED_COUNT_KEY)
        if was_locked:
            self._unlock("reset")
        else:
            self._cancel_timer()
        logger.info("Lockout controller reset")

    def restore(self, now: datetime | None = None) -> None:
        """Re-arm the timer for an outstanding lockout, or expire a stale one."""
        end = self.lockout_end_time()
        if end is None:
            return
        now = self._now(now)
        if end > now:
            logger.info("Restored active lockout until %s", end.isoformat())
            self._schedule_unlock(end)
        else:
            self._unlock("expired while offline")

    # ── Queries ──

    def attempts_remaining(self) -> int:
        return max(0, MAX_LOGIN_ATTEMPTS - self.failed_count)

    def seconds_remaining(self, now: datetime | None = None) -> int:
        end = self.lockout_end_time()
        if end is None:
            return 0
        now = self._now(now)
        return max(0, math.ceil((end - now).total_seconds()))

    def status(self, now: datetime | None = None) -> LockoutStatus:
        now = self._now(now)
        locked = self.is_locked(now)
        count = self.failed_count
        if locked:
            state = LockoutState.LOCKED
        elif 0 < count < MAX_LOGIN_ATTEMPTS:
            state = LockoutState.WARNING
        else:
            state = LockoutState.OPEN
        return LockoutStatus(
            state=state,
            failed_count=count,
            attempts_remaining=self.attempts_remaining(),
            lockout_end_time=self.lockout_end_time() if locked else None,
            seconds_remaining=self.seconds_remaining(now) if locked else 0,
        )

    # ── Unlock notification ──

    def add_unlock_listener(self, callback: Callable[[], None]) -> None:
        self._listeners.append(callback)

    def _unlock(self, reason: str) -> None:
        self._store.delete(LOCKOUT_END_KEY)
        self._cancel_timer()
        logger.info("System unlocked (%s)", reason)
        log_security_event("lockout_cleared", reason=reason)
        for callback in list(self._listeners):
            try:
                callback()
            except Exception:
                logger.exception("Unlock listener %r failed", callback)

    # ── Timer ──

    def _schedule_unlock(self, end: datetime) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; lockout expiry is checked lazily")
            return
        self._cancel_timer()
        delay = max(0.0, (end - self._now()).total_seconds())
        self._timer = loop.call_later(delay, self._on_timer)

    def _on_timer(self) -> None:
        self._timer = None
        if self.is_locked():
            # Fired ahead of the wall clock; try again at the stored end time
            self._schedule_unlock(self.lockout_end_time())

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    @property
    def timer_pending(self) -> bool:
        return self._timer is not None
