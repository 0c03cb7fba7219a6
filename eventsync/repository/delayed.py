import asyncio
import logging
import random
from collections import deque
from typing import Deque, Dict, Iterable, Optional

from eventsync import metrics
from eventsync.constants import (
    STORE_MIN_LATENCY_MS_DEFAULT, STORE_MAX_LATENCY_MS_DEFAULT,
)
from eventsync.exceptions import RepositoryError, RepositoryErrorKind, UnknownCategoryError

logger = logging.getLogger(__name__)


class DelayedEventStore:
    """A simulated remote counter store with latency and failure injection.

    Every update waits a random latency and then rolls one outcome:
    rate-limited and request-failed are raised before the amount is applied,
    ambiguous-write applies the amount and then raises. Scripted failures
    queued with script_failures() take precedence over random rolls.

    Usage:
      store = DelayedEventStore(["A"], rate_limited_rate=0.2, seed=1)
      await store.update_event_stats_by("A", 3)
      store.get_stats("A")
    """

    def __init__(
        self,
        categories: Iterable[str],
        min_latency_ms: float = STORE_MIN_LATENCY_MS_DEFAULT,
        max_latency_ms: float = STORE_MAX_LATENCY_MS_DEFAULT,
        rate_limited_rate: float = 0.0,
        request_failed_rate: float = 0.0,
        ambiguous_write_rate: float = 0.0,
        seed: Optional[int] = None,
    ) -> None:
        if min_latency_ms < 0 or max_latency_ms < min_latency_ms:
            raise ValueError(
                f"Invalid latency range: {min_latency_ms}..{max_latency_ms} ms"
            )
        rates = (rate_limited_rate, request_failed_rate, ambiguous_write_rate)
        if any(r < 0 for r in rates) or sum(rates) > 1.0:
            raise ValueError(f"Failure rates must be non-negative and sum to <= 1: {rates}")
        self._categories = tuple(dict.fromkeys(categories))
        self._stats: Dict[str, int] = {c: 0 for c in self._categories}
        self.min_latency_ms = min_latency_ms
        self.max_latency_ms = max_latency_ms
        self.rate_limited_rate = rate_limited_rate
        self.request_failed_rate = request_failed_rate
        self.ambiguous_write_rate = ambiguous_write_rate
        self._rng = random.Random(seed)
        self._scripted: Dict[str, Deque[Optional[RepositoryErrorKind]]] = {
            c: deque() for c in self._categories
        }
        self.requests = 0

    def _check(self, category: str) -> None:
        if category not in self._stats:
            raise UnknownCategoryError(category)

    def get_stats(self, category: str) -> int:
        self._check(category)
        return self._stats[category]

    def script_failures(self, category: str, kinds: Iterable[Optional[RepositoryErrorKind]]) -> None:
        """Queue outcomes for the next updates of a category.

        Each entry is consumed by one update; None means the update succeeds.
        Random rolls resume once the queue is empty.
        """
        self._check(category)
        self._scripted[category].extend(kinds)

    def _next_outcome(self, category: str) -> Optional[RepositoryErrorKind]:
        scripted = self._scripted[category]
        if scripted:
            return scripted.popleft()
        roll = self._rng.random()
        threshold = self.rate_limited_rate
        if roll < threshold:
            return RepositoryErrorKind.RATE_LIMITED
        threshold += self.request_failed_rate
        if roll < threshold:
            return RepositoryErrorKind.REQUEST_FAILED
        threshold += self.ambiguous_write_rate
        if roll < threshold:
            return RepositoryErrorKind.AMBIGUOUS_WRITE
        return None

    async def update_event_stats_by(self, category: str, amount: int) -> None:
        self._check(category)
        self.requests += 1
        metrics.inc("store_request")
        outcome = self._next_outcome(category)
        latency = self._rng.uniform(self.min_latency_ms, self.max_latency_ms)
        await asyncio.sleep(latency / 1000.0)

        if outcome in (RepositoryErrorKind.RATE_LIMITED, RepositoryErrorKind.REQUEST_FAILED):
            metrics.inc(f"store_{outcome.value}")
            raise RepositoryError(
                f"Remote store rejected update of {category} by {amount}",
                outcome, category=category, amount=amount,
            )

        self._stats[category] += amount
        logger.debug(f"Store applied {amount} to {category} (total {self._stats[category]})")

        if outcome is RepositoryErrorKind.AMBIGUOUS_WRITE:
            metrics.inc(f"store_{outcome.value}")
            raise RepositoryError(
                f"Remote store response lost after update of {category} by {amount}",
                outcome, category=category, amount=amount,
            )
