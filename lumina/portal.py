"""Portal — the contract the UI layer calls into.

Wires the kernel (credential registry, lockout controller, session manager,
policy store, query firewall) and the search services together, and turns
kernel exceptions into UI-friendly outcomes where the contract asks for it.
"""

from __future__ import annotations

import logging
import random
from typing import Any, Callable, Iterable, List, Optional

from lumina.config import AppConfig, get_config
from lumina.core.enums import LoginStatus
from lumina.core.errors import InvalidCredentials, LockedOut, Unauthorized
from lumina.core.plugin_protocols import CredentialRegistry, KeyValueStore
from lumina.core.protocols import (
    FirewallPolicy,
    LockoutStatus,
    LoginOutcome,
    SearchResult,
    SessionProjection,
)
from lumina.kernel.credential_registry import StaticCredentialRegistry
from lumina.kernel.firewall_engine import QueryFirewall
from lumina.kernel.lockout import Clock, LockoutController
from lumina.kernel.policy_store import FirewallPolicyStore
from lumina.kernel.session_manager import SessionManager
from lumina.logging_config import log_security_event
from lumina.services.history_service import HistoryService
from lumina.services.search_service import SearchService

logger = logging.getLogger(__name__)


class Portal:
    def __init__(
        self,
        config: AppConfig,
        store: KeyValueStore,
        registry: CredentialRegistry,
        rng: random.Random | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._config = config
        self._store = store
        self.lockout = LockoutController(store, clock=clock)
        self.policy_store = FirewallPolicyStore(store, clock=clock)
        self.history = HistoryService(store)
        self.firewall = QueryFirewall(rng=rng)
        self.search_service = SearchService(config, self.firewall, self.policy_store, self.history)
        self.sessions = SessionManager(
            config, store, registry, self.lockout, self.policy_store,
            reset_hooks=[self.history.clear],
        )

    @classmethod
    def create(
        cls,
        config: AppConfig | None = None,
        store: KeyValueStore | None = None,
        registry: CredentialRegistry | None = None,
        rng: random.Random | None = None,
        clock: Clock | None = None,
        unlock_listeners: Iterable[Callable[[], None]] = (),
    ) -> "Portal":
        """Build a portal and restore any persisted session and lockout.

        Without an explicit store the SQLite database at ``config.database.path``
        is used. ``unlock_listeners`` are attached before the restore, so they
        also hear about a lockout that ran out while the process was down.
        """
        config = config or get_config()
        if store is None:
            from lumina.database import init_db
            from lumina.storage import SqlKeyValueStore

            init_db(config.database.path)
            store = SqlKeyValueStore(config.database.path)
        portal = cls(
            config,
            store,
            registry or StaticCredentialRegistry(),
            rng=rng,
            clock=clock,
        )
        for listener in unlock_listeners:
            portal.lockout.add_unlock_listener(listener)
        portal.sessions.restore_session()
        return portal

    # ── Authentication ──

    async def login(self, identifier: str, secret: str) -> LoginOutcome:
        try:
            session = await self.sessions.login(identifier, secret)
        except LockedOut as e:
            return LoginOutcome(status=LoginStatus.LOCKED, seconds_remaining=e.seconds_remaining)
        except InvalidCredentials as e:
            return LoginOutcome(status=LoginStatus.DENIED, attempts_remaining=e.attempts_remaining)
        return LoginOutcome(status=LoginStatus.SUCCESS, session=session)

    def logout(self) -> None:
        self.sessions.logout()

    def is_authenticated(self) -> bool:
        return self.sessions.is_authenticated

    def current_session(self) -> Optional[SessionProjection]:
        return self.sessions.current_session

    def lockout_status(self) -> LockoutStatus:
        return self.lockout.status()

    # ── Search ──

    async def search(self, query: str) -> List[SearchResult]:
        return await self.search_service.search(query)

    def get_search_history(self) -> List[str]:
        return self.history.entries()

    def clear_search_history(self) -> None:
        self.history.clear()

    # ── Firewall policy ──

    def get_firewall_policy(self) -> FirewallPolicy:
        return self.policy_store.policy

    def require_operator(self) -> SessionProjection:
        """Return the current admin session or raise Unauthorized."""
        if not self.sessions.is_admin:
            raise Unauthorized("Firewall policy changes require an authenticated administrator")
        return self.sessions.current_session

    def update_firewall_policy(self, **changes: Any) -> FirewallPolicy:
        operator = self.require_operator()
        policy = self.policy_store.update(**changes)
        log_security_event(
            "policy_updated", principal=operator.identifier, fields=sorted(changes),
        )
        return policy

    # ── System ──

    async def reset_system(self) -> bool:
        await self.sessions.reset_system()
        return True

    # ── Operator actions ──

    def add_allowed_domain(self, pattern: str) -> FirewallPolicy:
        operator = self.require_operator()
        policy = self.policy_store.add_allowed_domain(pattern)
        log_security_event("allowed_domain_added", principal=operator.identifier, pattern=pattern)
        return policy

    def remove_allowed_domain(self, pattern: str) -> FirewallPolicy:
        operator = self.require_operator()
        policy = self.policy_store.remove_allowed_domain(pattern)
        log_security_event("allowed_domain_removed", principal=operator.identifier, pattern=pattern)
        return policy

    def add_block_word(self, word: str) -> FirewallPolicy:
        operator = self.require_operator()
        policy = self.policy_store.add_block_word(word)
        log_security_event("block_word_added", principal=operator.identifier, word=word)
        return policy

    def remove_block_word(self, word: str) -> FirewallPolicy:
        operator = self.require_operator()
        policy = self.policy_store.remove_block_word(word)
        log_security_event("block_word_removed", principal=operator.identifier, word=word)
        return policy

    def update_definitions(self) -> FirewallPolicy:
        operator = self.require_operator()
        self.policy_store.update_definitions()
        log_security_event("definitions_updated", principal=operator.identifier)
        return self.policy_store.policy
