"""Repository adapter around the remote counter store.

The adapter exposes a synchronous committed-count read and a classified
write. It never retries and never swallows a failure: every RepositoryError
is logged, counted and re-raised unchanged. Retry policy belongs to the
caller (see eventsync.handler.EventHandler).
"""
from __future__ import annotations

import logging

from eventsync import metrics
from eventsync.exceptions import RepositoryError, RepositoryErrorKind
from eventsync.repository.interface import RemoteStore

logger = logging.getLogger(__name__)


class EventRepository:
    """Committed-count view and classified writes over a RemoteStore."""

    def __init__(self, store: RemoteStore) -> None:
        self.store = store

    def get_committed(self, category: str) -> int:
        """Return the remote committed count as currently known."""
        return self.store.get_stats(category)

    async def save(self, category: str, amount: int) -> None:
        """Add amount to the remote committed count for category.

        Raises:
            ValueError: amount is not strictly positive
            RepositoryError: the store failed; kind tells whether a retry is safe
        """
        if amount <= 0:
            raise ValueError(f"Amount to save must be positive, got {amount}")
        try:
            await self.store.update_event_stats_by(category, amount)
        except RepositoryError as e:
            metrics.inc(f"repository_{e.kind.value}")
            if e.kind == RepositoryErrorKind.RATE_LIMITED:
                logger.debug(f"Rate limited saving {amount} for {category}; retry is safe")
            elif e.kind == RepositoryErrorKind.AMBIGUOUS_WRITE:
                logger.warning(f"Response lost saving {amount} for {category}; write may have been applied")
            else:
                logger.debug(f"Request failed saving {amount} for {category}; retry is safe")
            raise
        metrics.inc("repository_saved")
        logger.debug(f"Saved {amount} events for {category}")
