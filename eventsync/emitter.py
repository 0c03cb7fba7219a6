"""Occurrence source: a minimal per-category emitter and a random trigger."""
from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable, Dict, List, Optional

logger = logging.getLogger(__name__)


class EventEmitter:
    """Synchronous publish/subscribe keyed by event category."""

    def __init__(self) -> None:
        self._subscribers: Dict[str, List[Callable[[], None]]] = {}

    def subscribe(self, category: str, callback: Callable[[], None]) -> None:
        self._subscribers.setdefault(category, []).append(callback)

    def unsubscribe(self, category: str, callback: Callable[[], None]) -> None:
        try:
            self._subscribers.get(category, []).remove(callback)
        except ValueError:
            logger.debug(f"Callback not subscribed to {category}, nothing to remove")

    def emit(self, category: str) -> None:
        """Call every subscriber of category in subscription order.

        A failing subscriber is logged and does not prevent the others from
        being called.
        """
        for callback in list(self._subscribers.get(category, [])):
            try:
                callback()
            except Exception as e:
                logger.error(f"Subscriber for {category} failed: {e}", exc_info=True)


async def trigger_randomly(
    callback: Callable[[], None],
    max_events: int,
    max_delay_ms: float,
    rng: Optional[random.Random] = None,
) -> int:
    """Call callback max_events times with random pauses of up to max_delay_ms.

    Returns the number of calls made.
    """
    rng = rng or random.Random()
    fired = 0
    for _ in range(max_events):
        await asyncio.sleep(rng.uniform(0, max_delay_ms) / 1000.0)
        callback()
        fired += 1
    return fired
