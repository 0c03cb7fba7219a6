"""In-memory per-category occurrence counts."""
from __future__ import annotations

from typing import Dict, Iterable, Tuple

from eventsync.exceptions import UnknownCategoryError


class EventStatistics:
    """Mapping from event category to a count, defaulting to 0.

    The category set is fixed at construction. There is no locking here;
    callers serialize access by running on a single event loop.

    Usage:
      s = EventStatistics(["A", "B"])
      s.set_stats("A", s.get_stats("A") + 1)
    """

    def __init__(self, categories: Iterable[str]) -> None:
        self._categories: Tuple[str, ...] = tuple(dict.fromkeys(categories))
        self._stats: Dict[str, int] = {}

    @property
    def categories(self) -> Tuple[str, ...]:
        return self._categories

    def _check(self, category: str) -> None:
        if category not in self._categories:
            raise UnknownCategoryError(category)

    def get_stats(self, category: str) -> int:
        self._check(category)
        return self._stats.get(category, 0)

    def set_stats(self, category: str, value: int) -> None:
        self._check(category)
        self._stats[category] = value
