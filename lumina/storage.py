"""Key-value persistence adapters for portal state.

Every piece of mutable state (session projection, lockout counters, firewall
policy, search history) lives under one key. Absence of a key means "use the
default"; a corrupt value is discarded and logged, never fatal.
"""

from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from sqlalchemy import select

from lumina.core.errors import PersistenceCorrupt
from lumina.database import session_scope
from lumina.logging_config import log_security_event
from lumina.models.kv_entry import KVEntry

logger = logging.getLogger(__name__)

# ── Persisted keys ──

SESSION_KEY = "session.principalProjection"
FAILED_COUNT_KEY = "lockout.failedCount"
LOCKOUT_END_KEY = "lockout.endTime"
FIREWALL_POLICY_KEY = "firewall.policy"
SEARCH_HISTORY_KEY = "search.history"


class _JsonStore(ABC):
    """Shared JSON encoding and corrupt-entry recovery."""

    @abstractmethod
    def _read_raw(self, key: str) -> Optional[str]: ...

    @abstractmethod
    def _write_raw(self, key: str, raw: str) -> None: ...

    @abstractmethod
    def delete(self, key: str) -> None: ...

    def get(self, key: str, default: Any = None) -> Any:
        raw = self._read_raw(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise PersistenceCorrupt(key, str(e)) from e

    def set(self, key: str, value: Any) -> None:
        self._write_raw(key, json.dumps(value, ensure_ascii=False, default=str))

    def get_or_default(self, key: str, default: Any = None) -> Any:
        """Like ``get`` but drops a corrupt entry and returns ``default``."""
        try:
            return self.get(key, default)
        except PersistenceCorrupt as e:
            self.discard_corrupt(key, e.reason)
            return default

    def discard_corrupt(self, key: str, reason: str) -> None:
        logger.warning("Discarding corrupt persisted value for %s: %s", key, reason)
        log_security_event("persistence_corrupt", key=key, reason=reason)
        self.delete(key)


class MemoryKeyValueStore(_JsonStore):
    """Dict-backed store. Keeps JSON text so it behaves like the SQL adapter."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def _read_raw(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def _write_raw(self, key: str, raw: str) -> None:
        self._data[key] = raw

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return sorted(self._data)


class SqlKeyValueStore(_JsonStore):
    """SQLite-backed store; each read and write runs in its own transaction."""

    def __init__(self, path: str | Path | None = None) -> None:
        # None follows database.path from the loaded config
        self._path = path

    def _read_raw(self, key: str) -> Optional[str]:
        with session_scope(self._path) as session:
            entry = session.get(KVEntry, key)
            return entry.value if entry is not None else None

    def _write_raw(self, key: str, raw: str) -> None:
        with session_scope(self._path) as session:
            entry = session.get(KVEntry, key)
            if entry is None:
                session.add(KVEntry(key=key, value=raw))
            else:
                entry.value = raw

    def delete(self, key: str) -> None:
        with session_scope(self._path) as session:
            entry = session.get(KVEntry, key)
            if entry is None:
                return
            session.delete(entry)
        logger.debug("Deleted persisted key %s", key)

    def keys(self) -> list[str]:
        with session_scope(self._path) as session:
            return list(session.scalars(select(KVEntry.key).order_by(KVEntry.key)))
