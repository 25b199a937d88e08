"""Tests for SessionManager — login, logout, restore and system reset."""

import pytest

from lumina.config import get_config
from lumina.core.enums import Role
from lumina.core.errors import InvalidCredentials, LockedOut, Unauthorized
from lumina.kernel.credential_registry import StaticCredentialRegistry
from lumina.kernel.lockout import LockoutController
from lumina.kernel.policy_store import FirewallPolicyStore
from lumina.kernel.session_manager import SessionManager
from lumina.services.history_service import HistoryService
from lumina.storage import SESSION_KEY


class SpyRegistry(StaticCredentialRegistry):
    """Counts lookups so tests can prove the registry was never consulted."""

    def __init__(self):
        super().__init__()
        self.lookups = 0

    def find_by_identifier(self, identifier):
        self.lookups += 1
        return super().find_by_identifier(identifier)


def _manager(store, clock, registry=None):
    lockout = LockoutController(store, clock=clock)
    policy_store = FirewallPolicyStore(store, clock=clock)
    history = HistoryService(store)
    mgr = SessionManager(
        get_config(), store, registry or StaticCredentialRegistry(),
        lockout, policy_store, reset_hooks=[history.clear],
    )
    return mgr, lockout, policy_store, history


@pytest.mark.asyncio
async def test_login_success_persists_projection(memory_store, clock):
    mgr, lockout, _, _ = _manager(memory_store, clock)
    session = await mgr.login("SecurityTeam", "Secure@Lumina789")

    assert session.identifier == "SecurityTeam"
    assert session.role == Role.ADMIN
    assert session.department == "Security"
    assert mgr.is_authenticated
    stored = memory_store.get(SESSION_KEY)
    assert stored["identifier"] == "SecurityTeam"
    assert "secret" not in stored
    assert lockout.failed_count == 0


@pytest.mark.asyncio
async def test_login_failures_count_down(memory_store, clock):
    mgr, lockout, _, _ = _manager(memory_store, clock)
    remaining = []
    for _ in range(3):
        with pytest.raises(InvalidCredentials) as exc:
            await mgr.login("intruder", "guess")
        remaining.append(exc.value.attempts_remaining)

    assert remaining == [2, 1, 0]
    assert lockout.is_locked()
    assert not mgr.is_authenticated


@pytest.mark.asyncio
async def test_identifier_is_case_sensitive(memory_store, clock):
    mgr, _, _, _ = _manager(memory_store, clock)
    with pytest.raises(InvalidCredentials):
        await mgr.login("mwtinc", "JC222@Vemous$24")


@pytest.mark.asyncio
async def test_locked_rejects_correct_credentials_without_lookup(memory_store, clock):
    registry = SpyRegistry()
    mgr, _, _, _ = _manager(memory_store, clock, registry)
    for _ in range(3):
        with pytest.raises(InvalidCredentials):
            await mgr.login("nobody", "wrong")
    lookups = registry.lookups

    with pytest.raises(LockedOut) as exc:
        await mgr.login("MWTINC", "JC222@Vemous$24")
    assert exc.value.seconds_remaining == 300
    assert registry.lookups == lookups
    assert not mgr.is_authenticated


@pytest.mark.asyncio
async def test_login_allowed_again_after_window(memory_store, clock):
    mgr, lockout, _, _ = _manager(memory_store, clock)
    for _ in range(3):
        with pytest.raises(InvalidCredentials):
            await mgr.login("nobody", "wrong")

    clock.advance(minutes=5, seconds=1)
    session = await mgr.login("LuminaAdmin", "Lumina#2024!")
    assert session.identifier == "LuminaAdmin"
    assert lockout.failed_count == 0


@pytest.mark.asyncio
async def test_logout_clears_persisted_session(memory_store, clock):
    mgr, _, _, _ = _manager(memory_store, clock)
    await mgr.login("ContentManager", "Content$2024#")
    mgr.logout()
    assert mgr.current_session is None
    assert memory_store.get(SESSION_KEY) is None
    # Logging out twice is harmless
    mgr.logout()


def test_restore_session_trusts_stored_projection(memory_store, clock):
    memory_store.set(SESSION_KEY, {
        "identifier": "LuminaAdmin", "role": "admin",
        "department": "Technology", "title": "Lead Developer",
    })
    mgr, _, _, _ = _manager(memory_store, clock)
    session = mgr.restore_session()
    assert session is not None
    assert session.identifier == "LuminaAdmin"
    assert mgr.is_admin


def test_restore_session_discards_malformed_projection(memory_store, clock):
    memory_store.set(SESSION_KEY, {"identifier": "LuminaAdmin", "role": "superuser"})
    mgr, _, _, _ = _manager(memory_store, clock)
    assert mgr.restore_session() is None
    assert memory_store.get(SESSION_KEY) is None


@pytest.mark.asyncio
async def test_reset_denied_for_other_principal(memory_store, clock):
    mgr, lockout, policy_store, history = _manager(memory_store, clock)
    await mgr.login("LuminaAdmin", "Lumina#2024!")
    policy_store.update(security_level="high")
    history.record("quantum computing")
    lockout.record_failure()

    with pytest.raises(Unauthorized):
        await mgr.reset_system()

    assert policy_store.policy.security_level.value == "high"
    assert history.entries() == ["quantum computing"]
    assert lockout.failed_count == 1


@pytest.mark.asyncio
async def test_reset_denied_when_signed_out(memory_store, clock):
    mgr, _, _, _ = _manager(memory_store, clock)
    with pytest.raises(Unauthorized):
        await mgr.reset_system()


@pytest.mark.asyncio
async def test_reset_by_distinguished_principal_unlocks(memory_store, clock):
    mgr, lockout, policy_store, history = _manager(memory_store, clock)
    await mgr.login("MWTINC", "JC222@Vemous$24")
    policy_store.update(security_level="low", block_words=["kittens"])
    history.record("solar energy")
    for _ in range(3):
        with pytest.raises(InvalidCredentials):
            await mgr.login("MWTINC", "wrong")
    assert lockout.is_locked()

    await mgr.reset_system()

    assert not lockout.is_locked()
    assert lockout.failed_count == 0
    assert history.entries() == []
    policy = policy_store.policy
    assert policy.security_level.value == "medium"
    assert policy.block_words == ["malware", "phishing", "exploit"]

    # Idempotent
    await mgr.reset_system()
    assert not lockout.is_locked()
    assert policy_store.policy.allowed_domains == ["*.google.com", "*.bing.com", "*.duckduckgo.com"]


def test_registry_rejects_duplicate_identifiers():
    from lumina.core.protocols import Principal

    p = Principal(identifier="ops", secret="x", role=Role.USER)
    with pytest.raises(ValueError, match="Duplicate"):
        StaticCredentialRegistry([p, p])


def test_builtin_registry_hides_secrets():
    registry = StaticCredentialRegistry()
    assert len(registry) == 4
    principal = registry.find_by_identifier("MWTINC")
    assert "JC222" not in repr(principal)
    assert "secret" not in principal.projection().model_dump()
    assert registry.find_by_identifier("nobody") is None
