"""
Sync handler: counts occurrences locally and reconciles them with the
remote repository.

Two paths drive reconciliation for a category:
- the immediate trigger, scheduled by every occurrence without waiting for it;
- the periodic sweep, which walks every category in order on a fixed period.

Both paths go through reconcile(), which holds a per-category in-flight
guard so at most one remote write per category is outstanding. Everything
runs on one asyncio event loop and reconcile() has no suspension point
between checking the guard and setting it, so the check-then-set is atomic.
A multi-threaded caller would need a per-category lock instead.

Failures are absorbed here and retried by the next trigger or sweep, which
recomputes the difference from the current local and remote counts. That is
loss-free for rate-limited and request-failed writes. An ambiguous write may
already have been applied, so retrying it can over-count.
"""
from __future__ import annotations

import asyncio
import functools
import logging
from typing import Callable, Dict, Iterable, Optional, Set, Tuple

from eventsync import metrics
from eventsync.constants import SYNC_INTERVAL_MS_DEFAULT
from eventsync.emitter import EventEmitter
from eventsync.exceptions import RepositoryError, RepositoryErrorKind, UnknownCategoryError
from eventsync.repository.adapter import EventRepository
from eventsync.stats import EventStatistics

logger = logging.getLogger(__name__)


class EventHandler:
    """Keeps local occurrence counts and drives their reconciliation.

    Attributes:
        stats: Local counter store
        repository: Repository adapter used for remote reads and writes
        categories: Known event categories, in sweep order
        sync_interval_ms: Period of the background sweep
    """

    def __init__(
        self,
        stats: EventStatistics,
        repository: EventRepository,
        categories: Iterable[str],
        emitter: Optional[EventEmitter] = None,
        sync_interval_ms: float = SYNC_INTERVAL_MS_DEFAULT,
        autostart: bool = True,
    ) -> None:
        """Initialize the handler.

        Args:
            stats: Counter store holding the local counts
            repository: Adapter over the remote store
            categories: Closed set of categories to track
            emitter: Optional occurrence source; on_occurrence is subscribed
                     for every category while the handler is running
            sync_interval_ms: Sweep period in milliseconds
            autostart: Start the periodic sweep immediately. Requires a
                       running event loop.
        """
        if sync_interval_ms <= 0:
            raise ValueError(f"sync_interval_ms must be positive, got {sync_interval_ms}")
        self.stats = stats
        self.repository = repository
        self.categories: Tuple[str, ...] = tuple(dict.fromkeys(categories))
        self.sync_interval_ms = sync_interval_ms

        for category in self.categories:
            # fail fast if the counter store or the remote store does not know the category
            stats.get_stats(category)
            repository.get_committed(category)

        self._in_sync: Dict[str, bool] = {c: False for c in self.categories}
        self._error_count: Dict[str, int] = {c: 0 for c in self.categories}
        self._tasks: Set[asyncio.Task] = set()
        self._periodic: Optional[asyncio.Task] = None
        self._sweep: Optional[asyncio.Task] = None

        self._emitter = emitter
        self._callbacks: Dict[str, Callable[[], None]] = {}

        if autostart:
            self.start()

    # --- lifecycle -----------------------------------------------------------

    @property
    def running(self) -> bool:
        return self._periodic is not None and not self._periodic.done()

    def start(self) -> None:
        """Start the periodic sweep on the running event loop."""
        if self.running:
            return
        self._periodic = asyncio.get_running_loop().create_task(self._periodic_sync())
        self._subscribe()
        logger.info(
            f"Sync handler started for {list(self.categories)} "
            f"(sweep every {self.sync_interval_ms} ms)"
        )

    async def stop(self) -> None:
        """Stop the sweep and cancel outstanding reconciliations.

        A write cancelled mid-flight may or may not have reached the store.
        """
        self._unsubscribe()

        pending = [t for t in (self._periodic, self._sweep, *self._tasks) if t is not None and not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
        self._periodic = None
        self._sweep = None
        self._tasks.clear()
        logger.info("Sync handler stopped")

    def _subscribe(self) -> None:
        if self._emitter is None or self._callbacks:
            return
        for category in self.categories:
            callback = functools.partial(self.on_occurrence, category)
            self._emitter.subscribe(category, callback)
            self._callbacks[category] = callback

    def _unsubscribe(self) -> None:
        if self._emitter is None:
            return
        for category, callback in self._callbacks.items():
            self._emitter.unsubscribe(category, callback)
        self._callbacks.clear()

    def _on_task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            metrics.inc("sync_task_error")
            logger.error(f"Sync task failed: {exc!r}", exc_info=exc)

    async def __aenter__(self) -> "EventHandler":
        self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    # --- observation -----------------------------------------------------------

    def _check(self, category: str) -> None:
        if category not in self._in_sync:
            raise UnknownCategoryError(category)

    def get_stats(self, category: str) -> int:
        """Local count for category."""
        return self.stats.get_stats(category)

    def error_count(self, category: str) -> int:
        """Consecutive rate-limited failures since the last successful write."""
        self._check(category)
        return self._error_count[category]

    def is_syncing(self, category: str) -> bool:
        self._check(category)
        return self._in_sync[category]

    # --- occurrence path --------------------------------------------------------

    def on_occurrence(self, category: str) -> None:
        """Count one occurrence and trigger reconciliation without waiting."""
        self._check(category)
        loop = asyncio.get_running_loop()
        self.stats.set_stats(category, self.stats.get_stats(category) + 1)
        task = loop.create_task(self.reconcile(category))
        self._tasks.add(task)
        task.add_done_callback(self._on_task_done)

    # --- reconciliation -----------------------------------------------------------

    async def reconcile(self, category: str) -> None:
        """Write the outstanding difference for category, unless one is in flight.

        Never raises for store failures; they are left to the next attempt.
        """
        self._check(category)
        if self._in_sync[category]:
            logger.debug(f"Event {category} is already synchronizing, skipping")
            return

        try:
            local_count = self.stats.get_stats(category)
            remote_count = self.repository.get_committed(category)
        except Exception as e:
            metrics.inc("sync_unexpected_error")
            logger.error(f"Could not read counts for {category}: {e}", exc_info=True)
            return

        if remote_count > local_count:
            logger.warning(
                f"Remote count ({remote_count}) exceeds local count ({local_count}) "
                f"for event {category}, skipping"
            )
            metrics.inc("sync_remote_ahead")
            return

        difference = local_count - remote_count
        if difference <= 0:
            return

        self._in_sync[category] = True
        try:
            await self.repository.save(category, difference)
        except RepositoryError as e:
            metrics.inc("sync_failed")
            if e.kind == RepositoryErrorKind.RATE_LIMITED:
                self._error_count[category] += 1
                logger.info(
                    f"Rate limited syncing {difference} for {category} "
                    f"({self._error_count[category]} in a row), will retry later"
                )
            elif e.kind == RepositoryErrorKind.AMBIGUOUS_WRITE:
                # no idempotency key: the retry resends the full difference
                metrics.inc("sync_ambiguous_write")
                logger.warning(
                    f"Ambiguous write of {difference} for {category}; "
                    f"a later retry may over-count"
                )
            else:
                logger.info(f"Request failed syncing {difference} for {category}, will retry later")
        except Exception as e:
            metrics.inc("sync_unexpected_error")
            logger.error(f"Unexpected error syncing {category}: {e}", exc_info=True)
        else:
            self._error_count[category] = 0
            metrics.inc("sync_succeeded")
            logger.debug(f"Synchronized {difference} events for {category}")
        finally:
            self._in_sync[category] = False

    async def sync_all(self) -> None:
        """One sweep: reconcile every category in order, one at a time."""
        metrics.inc("sync_sweep")
        for category in self.categories:
            await self.reconcile(category)

    async def _periodic_sync(self) -> None:
        interval = self.sync_interval_ms / 1000.0
        loop = asyncio.get_running_loop()
        while True:
            await asyncio.sleep(interval)
            if self._sweep is not None and not self._sweep.done():
                logger.debug("Previous sweep still running, skipping this tick")
                metrics.inc("sync_sweep_skipped")
                continue
            self._sweep = loop.create_task(self.sync_all())
            self._sweep.add_done_callback(self._on_task_done)
