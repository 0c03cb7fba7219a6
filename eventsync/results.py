"""Observation harness: samples local and remote counts to report convergence."""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List

from eventsync.constants import STATS_SAMPLES_DEFAULT, STATS_INTERVAL_MS_DEFAULT
from eventsync.handler import EventHandler
from eventsync.repository.adapter import EventRepository

logger = logging.getLogger(__name__)


@dataclass
class StatsSample:
    """Counts for one category at one instant.

    Attributes:
        category: Event category
        local: Local count held by the handler
        remote: Committed count held by the repository
        error_count: Consecutive rate-limited failures
    """
    category: str
    local: int
    remote: int
    error_count: int = 0

    @property
    def in_sync(self) -> bool:
        return self.local == self.remote

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        d['in_sync'] = self.in_sync
        return d


class ResultsTester:
    """Reads handler and repository counts without changing either."""

    def __init__(self, categories: Iterable[str], handler: EventHandler, repository: EventRepository) -> None:
        self.categories = tuple(categories)
        self.handler = handler
        self.repository = repository

    def sample(self) -> List[StatsSample]:
        return [
            StatsSample(
                category=c,
                local=self.handler.get_stats(c),
                remote=self.repository.get_committed(c),
                error_count=self.handler.error_count(c),
            )
            for c in self.categories
        ]

    def converged(self) -> bool:
        return all(s.in_sync for s in self.sample())

    async def show_stats(self, times: int = STATS_SAMPLES_DEFAULT,
                         interval_ms: float = STATS_INTERVAL_MS_DEFAULT) -> List[List[StatsSample]]:
        """Log a sample every interval_ms, times times. Returns all samples."""
        history = []
        for i in range(times):
            await asyncio.sleep(interval_ms / 1000.0)
            samples = self.sample()
            history.append(samples)
            for s in samples:
                marker = "ok" if s.in_sync else f"diff {s.local - s.remote:+d}"
                logger.info(
                    f"[{i + 1}/{times}] {s.category}: local={s.local} remote={s.remote} "
                    f"errors={s.error_count} ({marker})"
                )
        return history
