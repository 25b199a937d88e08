"""Search service — latency, history and last-result-wins around the firewall."""

from __future__ import annotations

import asyncio
import logging
from typing import List

from lumina.config import AppConfig
from lumina.core.protocols import SearchResult
from lumina.kernel.firewall_engine import QueryFirewall, SearchVerdict
from lumina.kernel.policy_store import FirewallPolicyStore
from lumina.services.history_service import HistoryService

logger = logging.getLogger(__name__)


class SearchService:
    def __init__(
        self,
        config: AppConfig,
        firewall: QueryFirewall,
        policy_store: FirewallPolicyStore,
        history: HistoryService,
    ) -> None:
        self._config = config
        self._firewall = firewall
        self._policy_store = policy_store
        self._history = history
        self._generation = 0
        self.last_query: str = ""
        self.last_results: List[SearchResult] = []
        self.last_verdict: SearchVerdict | None = None

    async def search(self, query: str) -> List[SearchResult]:
        """Run a query through the firewall.

        Blank queries return nothing and leave history untouched. A newer
        call supersedes an older one: only the newest publishes to
        ``last_results``.
        """
        if not query.strip():
            return []

        self._generation += 1
        generation = self._generation
        self._history.record(query)

        delay = self._config.latency.search_seconds
        if delay > 0:
            await asyncio.sleep(delay)

        try:
            verdict = self._firewall.evaluate(query, self._policy_store.policy)
        except Exception:
            logger.exception("Search pipeline failed for %r", query)
            verdict = SearchVerdict(action="block", reason="pipeline error")

        logger.info(
            "Search %r: %s (%d/%d results, %s)",
            query, verdict.action, len(verdict.results), verdict.candidates, verdict.reason,
        )
        if generation == self._generation:
            self.last_query = query
            self.last_results = verdict.results
            self.last_verdict = verdict
        else:
            logger.debug("Search %r superseded by a newer query", query)
        return verdict.results
