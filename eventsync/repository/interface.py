from __future__ import annotations
from typing import Protocol


class RemoteStore(Protocol):
    """Interface of the remote counter store behind the repository adapter."""

    def get_stats(self, category: str) -> int:
        """Return the committed count for a category without suspending."""
        ...

    async def update_event_stats_by(self, category: str, amount: int) -> None:
        """Add amount to the committed count.

        Raises RepositoryError classified as rate-limited, ambiguous-write or
        request-failed.
        """
        ...
