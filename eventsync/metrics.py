"""Process-wide counters for sync outcomes.

The handler, the repository adapter and the simulated store bump named
counters here (sync_succeeded, repository_rate_limited, store_request, ...).
The API serves a snapshot at /api/metrics and tests reset it between cases.
"""
from __future__ import annotations

from collections import Counter
from typing import Dict

_c = Counter()


def inc(name: str, n: int = 1) -> None:
    _c[name] += n


def get(name: str) -> int:
    return _c[name]


def get_all() -> Dict[str, int]:
    return dict(_c)


def reset_all() -> None:
    _c.clear()
