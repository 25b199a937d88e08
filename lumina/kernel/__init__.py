"""Kernel package — the security core of the portal.

The kernel contains the components that make every security decision:
- LockoutController: failed-attempt counting and the timed lockdown
- SessionManager: login, logout, session restore, privileged reset
- FirewallPolicyStore: the persisted, operator-editable policy
- QueryFirewall: query blocking, result synthesis and security filtering

Services and the UI layer only call into the kernel; they never decide.
"""

from lumina.kernel.credential_registry import StaticCredentialRegistry
from lumina.kernel.firewall_engine import QueryFirewall, SearchVerdict
from lumina.kernel.lockout import LOCKOUT_DURATION, MAX_LOGIN_ATTEMPTS, LockoutController
from lumina.kernel.policy_store import FirewallPolicyStore
from lumina.kernel.session_manager import SessionManager

__all__ = [
    "StaticCredentialRegistry",
    "QueryFirewall",
    "SearchVerdict",
    "LockoutController",
    "LOCKOUT_DURATION",
    "MAX_LOGIN_ATTEMPTS",
    "FirewallPolicyStore",
    "SessionManager",
]
