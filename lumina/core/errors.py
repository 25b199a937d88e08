"""Error taxonomy of the portal core.

None of these are fatal to the process. Callers either convert them into
user-facing outcomes or degrade to a safe default.
"""

from __future__ import annotations


class LuminaError(Exception):
    """Base class for all portal core errors."""


class InvalidCredentials(LuminaError):
    """Identifier/secret pair not found. Counts as a failed attempt."""

    def __init__(self, attempts_remaining: int) -> None:
        self.attempts_remaining = attempts_remaining
        super().__init__(
            f"Authentication failed. {attempts_remaining} "
            f"attempt{'s' if attempts_remaining != 1 else ''} remaining."
        )


class LockedOut(LuminaError):
    """Login rejected because the system is in lockdown."""

    def __init__(self, seconds_remaining: int) -> None:
        self.seconds_remaining = seconds_remaining
        minutes, seconds = divmod(max(0, seconds_remaining), 60)
        super().__init__(
            f"System is locked. Try again in {minutes}:{seconds:02d}."
        )


class Unauthorized(LuminaError):
    """Privileged operation attempted without the required identity or role."""


class PersistenceCorrupt(LuminaError):
    """A persisted value could not be decoded."""

    def __init__(self, key: str, reason: str = "") -> None:
        self.key = key
        self.reason = reason
        super().__init__(f"Corrupt persisted value for {key!r}: {reason}")


class PolicyViolation(LuminaError):
    """Policy operation not permitted by the current policy state."""
