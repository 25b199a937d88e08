"""FirewallPolicyStore — persisted, operator-editable firewall configuration.

Load on start, seed defaults if absent, save on every mutation. Dependent
flags are normalised on write so the persisted record never carries an
``intrusionDetection`` or ``autoUpdateDefinitions`` without
``malwareProtection``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, List

from pydantic import ValidationError

from lumina.core.errors import PolicyViolation
from lumina.core.plugin_protocols import KeyValueStore
from lumina.core.protocols import FirewallPolicy
from lumina.kernel.lockout import Clock, utcnow
from lumina.logging_config import log_security_event
from lumina.storage import FIREWALL_POLICY_KEY

logger = logging.getLogger(__name__)


def _field_lookup() -> Dict[str, str]:
    """Map both snake_case names and camelCase aliases to field names."""
    lookup: Dict[str, str] = {}
    for name, info in FirewallPolicy.model_fields.items():
        lookup[name] = name
        if info.alias:
            lookup[info.alias] = name
    return lookup


_FIELDS = _field_lookup()


def _dedupe(items: List[str]) -> List[str]:
    seen: set[str] = set()
    out: List[str] = []
    for item in items:
        if item and item not in seen:
            seen.add(item)
            out.append(item)
    return out


def normalize_policy(policy: FirewallPolicy) -> FirewallPolicy:
    """Return a copy with cleaned lists and consistent dependent flags."""
    data = policy.model_dump()
    data["block_words"] = _dedupe([w.strip().lower() for w in policy.block_words])
    data["allowed_domains"] = _dedupe([d.strip() for d in policy.allowed_domains])
    if not policy.malware_protection:
        data["intrusion_detection"] = False
        data["auto_update_definitions"] = False
    return FirewallPolicy.model_validate(data)


class FirewallPolicyStore:
    def __init__(self, store: KeyValueStore, clock: Clock | None = None) -> None:
        self._store = store
        self._clock = clock or utcnow
        self._policy = self._load()

    def _load(self) -> FirewallPolicy:
        record = self._store.get_or_default(FIREWALL_POLICY_KEY)
        if record is None:
            logger.info("No firewall policy persisted; seeding defaults")
            return self._save(FirewallPolicy(last_updated=self._clock()))
        try:
            return normalize_policy(FirewallPolicy.model_validate(record))
        except ValidationError as e:
            logger.warning("Persisted firewall policy is invalid, restoring defaults: %s", e)
            log_security_event("persistence_corrupt", key=FIREWALL_POLICY_KEY, reason=str(e))
            self._store.delete(FIREWALL_POLICY_KEY)
            return self._save(FirewallPolicy(last_updated=self._clock()))

    def _save(self, policy: FirewallPolicy) -> FirewallPolicy:
        self._store.set(FIREWALL_POLICY_KEY, policy.to_record())
        self._policy = policy
        return policy

    @property
    def policy(self) -> FirewallPolicy:
        return self._policy.model_copy(deep=True)

    def update(self, **changes: Any) -> FirewallPolicy:
        """Apply a partial update. Keys may be snake_case or camelCase.

        Raises ValueError for unknown keys or invalid values.
        """
        unknown = [k for k in changes if k not in _FIELDS]
        if unknown:
            raise ValueError(f"Unknown firewall policy field(s): {', '.join(sorted(unknown))}")

        data = self._policy.model_dump()
        for key, value in changes.items():
            data[_FIELDS[key]] = value
        data["last_updated"] = self._clock()

        policy = normalize_policy(FirewallPolicy.model_validate(data))
        self._save(policy)
        logger.info("Firewall policy updated: %s", ", ".join(sorted(_FIELDS[k] for k in changes)))
        return self.policy

    def reset(self) -> FirewallPolicy:
        """Restore documented defaults and persist them."""
        self._save(FirewallPolicy(last_updated=self._clock()))
        logger.info("Firewall policy restored to defaults")
        return self.policy

    # ── Operator actions ──

    def add_allowed_domain(self, pattern: str) -> FirewallPolicy:
        pattern = pattern.strip()
        if not pattern or pattern in self._policy.allowed_domains:
            return self.policy
        return self.update(allowed_domains=[*self._policy.allowed_domains, pattern])

    def remove_allowed_domain(self, pattern: str) -> FirewallPolicy:
        if pattern not in self._policy.allowed_domains:
            return self.policy
        return self.update(allowed_domains=[d for d in self._policy.allowed_domains if d != pattern])

    def add_block_word(self, word: str) -> FirewallPolicy:
        word = word.strip().lower()
        if not word or word in self._policy.block_words:
            return self.policy
        return self.update(block_words=[*self._policy.block_words, word])

    def remove_block_word(self, word: str) -> FirewallPolicy:
        word = word.strip().lower()
        if word not in self._policy.block_words:
            return self.policy
        return self.update(block_words=[w for w in self._policy.block_words if w != word])

    def update_definitions(self) -> datetime:
        """Refresh malware definitions (restamps ``last_updated``)."""
        if not (self._policy.enabled and self._policy.malware_protection):
            raise PolicyViolation(
                "Malware definitions can only be updated while the firewall "
                "and malware protection are enabled"
            )
        self.update()
        logger.info("Malware definitions updated")
        return self._policy.last_updated

    def summary(self) -> Dict[str, Any]:
        """Return a read-only summary of the current policy state."""
        p = self._policy
        return {
            "enabled": p.enabled,
            "security_level": p.security_level.value if p.enabled else "off",
            "block_unauthorized_ips": p.block_unauthorized_ips and p.enabled,
            "allowed_domains": list(p.allowed_domains),
            "block_words": list(p.block_words),
            "malware_protection": p.malware_protection,
            "intrusion_detection": p.intrusion_detection,
            "auto_update_definitions": p.auto_update_definitions,
            "last_updated": p.last_updated.isoformat(),
        }
