"""SessionManager — login, logout, session restore and the privileged reset.

Consults the credential registry and the lockout controller. A locked
system rejects every login before any credential comparison happens.
"""

from __future__ import annotations

import asyncio
import hmac
import logging
from typing import Callable, List, Optional

from pydantic import ValidationError

from lumina.config import AppConfig
from lumina.core.enums import Role
from lumina.core.errors import InvalidCredentials, LockedOut, Unauthorized
from lumina.core.plugin_protocols import CredentialRegistry, KeyValueStore
from lumina.core.protocols import SessionProjection
from lumina.kernel.lockout import LockoutController
from lumina.kernel.policy_store import FirewallPolicyStore
from lumina.logging_config import log_security_event
from lumina.storage import SESSION_KEY

logger = logging.getLogger(__name__)


class SessionManager:
    def __init__(
        self,
        config: AppConfig,
        store: KeyValueStore,
        registry: CredentialRegistry,
        lockout: LockoutController,
        policy_store: FirewallPolicyStore,
        reset_hooks: Optional[List[Callable[[], None]]] = None,
    ) -> None:
        self._config = config
        self._store = store
        self._registry = registry
        self._lockout = lockout
        self._policy_store = policy_store
        # Extra state owners cleared by reset_system (e.g. search history)
        self._reset_hooks: List[Callable[[], None]] = list(reset_hooks or [])
        self._session: Optional[SessionProjection] = None

    @property
    def current_session(self) -> Optional[SessionProjection]:
        return self._session

    @property
    def is_authenticated(self) -> bool:
        return self._session is not None

    @property
    def is_admin(self) -> bool:
        return self._session is not None and self._session.role == Role.ADMIN

    # ── Login / logout ──

    async def login(self, identifier: str, secret: str) -> SessionProjection:
        """Authenticate against the registry.

        Raises LockedOut while the lockdown is active (no credential work is
        done) and InvalidCredentials on a mismatch.
        """
        if self._lockout.is_locked():
            seconds = self._lockout.seconds_remaining()
            logger.warning("Login rejected for %r: system locked (%ds left)", identifier, seconds)
            log_security_event("login_rejected_locked", principal=identifier, seconds_remaining=seconds)
            raise LockedOut(seconds)

        # Simulate network latency
        delay = self._config.latency.login_seconds
        if delay > 0:
            await asyncio.sleep(delay)

        principal = self._registry.find_by_identifier(identifier)
        if principal is not None and hmac.compare_digest(
            principal.secret.encode("utf-8"), secret.encode("utf-8")
        ):
            self._lockout.record_success()
            self._session = principal.projection()
            self._store.set(SESSION_KEY, self._session.model_dump(mode="json"))
            logger.info("User logged in: %s", identifier)
            log_security_event("login_success", principal=identifier)
            return self._session

        count = self._lockout.record_failure()
        remaining = self._lockout.attempts_remaining()
        logger.warning("Login failed for %r (%d attempts remaining)", identifier, remaining)
        log_security_event("login_failure", principal=identifier, failed_count=count)
        raise InvalidCredentials(remaining)

    def logout(self) -> None:
        if self._session is not None:
            logger.info("User logged out: %s", self._session.identifier)
            log_security_event("logout", principal=self._session.identifier)
        self._session = None
        self._store.delete(SESSION_KEY)

    # ── Startup ──

    def restore_session(self) -> Optional[SessionProjection]:
        """Rehydrate the persisted projection and lockout state.

        The projection is trusted as stored; the secret is not re-checked.
        """
        record = self._store.get_or_default(SESSION_KEY)
        if record is not None:
            try:
                self._session = SessionProjection.model_validate(record)
                logger.info("Restored session for %s", self._session.identifier)
            except ValidationError as e:
                logger.warning("Discarding malformed persisted session: %s", e)
                log_security_event("persistence_corrupt", key=SESSION_KEY, reason=str(e))
                self._store.delete(SESSION_KEY)
                self._session = None
        self._lockout.restore()
        return self._session

    # ── Privileged reset ──

    def can_reset(self) -> bool:
        return (
            self._session is not None
            and self._session.identifier == self._config.auth.distinguished_principal
        )

    async def reset_system(self) -> None:
        """Restore policy defaults, clear history and unlock the controller.

        Only the distinguished principal may do this; anyone else gets
        Unauthorized and nothing changes. Safe to repeat.
        """
        if not self.can_reset():
            who = self._session.identifier if self._session else None
            logger.warning("System reset denied for %r", who)
            log_security_event("reset_denied", principal=who)
            raise Unauthorized("Only the distinguished principal may reset the system")

        operator = self._session.identifier
        delay = self._config.latency.reset_seconds
        if delay > 0:
            await asyncio.sleep(delay)

        self._policy_store.reset()
        for hook in self._reset_hooks:
            hook()
        self._lockout.reset()
        logger.info("System reset by %s", operator)
        log_security_event("system_reset", principal=operator)
