"""Search history — most recent first, de-duplicated, capped."""

from __future__ import annotations

import logging
from typing import List

from lumina.core.plugin_protocols import KeyValueStore
from lumina.logging_config import log_security_event
from lumina.storage import SEARCH_HISTORY_KEY

logger = logging.getLogger(__name__)

HISTORY_LIMIT = 20


class HistoryService:
    def __init__(self, store: KeyValueStore, limit: int = HISTORY_LIMIT):
        self._store = store
        self._limit = limit

    def entries(self) -> List[str]:
        value = self._store.get_or_default(SEARCH_HISTORY_KEY, [])
        if not isinstance(value, list) or not all(isinstance(q, str) for q in value):
            logger.warning("Discarding malformed search history")
            log_security_event("persistence_corrupt", key=SEARCH_HISTORY_KEY, reason="not a list of strings")
            self._store.delete(SEARCH_HISTORY_KEY)
            return []
        return value

    def record(self, query: str) -> List[str]:
        """Push a query to the front unless it is already present verbatim."""
        history = self.entries()
        if query in history:
            return history
        history = [query, *history][: self._limit]
        self._store.set(SEARCH_HISTORY_KEY, history)
        return history

    def clear(self) -> None:
        self._store.set(SEARCH_HISTORY_KEY, [])
        logger.info("Search history cleared")
