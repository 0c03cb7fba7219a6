"""Run the event sync simulation from the command line.

Usage:
  python scripts/run_simulation.py --events 1000 --samples 20
  python scripts/run_simulation.py --config my_config.json --seed 7

Two random occurrence generators (one per category) feed the sync handler,
which reconciles with a delayed, failure-injecting store. Local and remote
counts are logged periodically until the samples are exhausted.
"""
from __future__ import annotations

import os
import sys
import random
import asyncio
import argparse
import functools
import logging

# Ensure repo root on sys.path so the package imports when run as a script
project_root = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

from eventsync.config import ConfigManager, configure_logging
from eventsync.emitter import EventEmitter, trigger_randomly
from eventsync.handler import EventHandler
from eventsync.repository.adapter import EventRepository
from eventsync.repository.delayed import DelayedEventStore
from eventsync.results import ResultsTester
from eventsync.stats import EventStatistics
from eventsync import metrics

logger = logging.getLogger(__name__)


async def run(config: ConfigManager) -> bool:
    sync_settings = config.sync_settings
    sim_settings = config.simulation_settings
    app_settings = config.app_settings
    categories = sync_settings.categories

    emitter = EventEmitter()
    rng = random.Random(sim_settings.seed)
    generators = [
        asyncio.create_task(trigger_randomly(
            functools.partial(emitter.emit, category),
            sim_settings.max_events,
            sim_settings.max_delay_ms,
            rng=rng,
        ))
        for category in categories
    ]

    store = DelayedEventStore(
        categories,
        min_latency_ms=sim_settings.min_latency_ms,
        max_latency_ms=sim_settings.max_latency_ms,
        rate_limited_rate=sim_settings.rate_limited_rate,
        request_failed_rate=sim_settings.request_failed_rate,
        ambiguous_write_rate=sim_settings.ambiguous_write_rate,
        seed=sim_settings.seed,
    )
    repository = EventRepository(store)
    stats = EventStatistics(categories)

    async with EventHandler(stats, repository, categories, emitter=emitter,
                            sync_interval_ms=sync_settings.sync_interval_ms,
                            autostart=False) as handler:
        tester = ResultsTester(categories, handler, repository)
        await tester.show_stats(app_settings.stats_samples, app_settings.stats_interval_ms)
        for task in generators:
            task.cancel()
        await asyncio.gather(*generators, return_exceptions=True)
        converged = tester.converged()

    logger.info(f"Store requests: {store.requests}")
    logger.info(f"Metrics: {metrics.get_all()}")
    logger.info("Converged" if converged else "Not converged")
    return converged


def main():
    p = argparse.ArgumentParser(description="Event sync simulation: random occurrences reconciled with a delayed store")
    p.add_argument("--config", default=None, help="Path to JSON config file")
    p.add_argument("--events", type=int, default=None, help="Occurrences per category")
    p.add_argument("--samples", type=int, default=None, help="Number of stats reports")
    p.add_argument("--interval-ms", type=int, default=None, help="Pause between stats reports")
    p.add_argument("--seed", type=int, default=None)
    p.add_argument("--log-level", default=None)
    args = p.parse_args()

    config = ConfigManager(args.config)
    if args.events is not None:
        config.simulation_settings.max_events = args.events
    if args.samples is not None:
        config.app_settings.stats_samples = args.samples
    if args.interval_ms is not None:
        config.app_settings.stats_interval_ms = args.interval_ms
    if args.seed is not None:
        config.simulation_settings.seed = args.seed
    if args.log_level is not None:
        config.app_settings.log_level = args.log_level.upper()

    configure_logging(config.app_settings.log_level)
    config.require_valid()

    asyncio.run(run(config))


if __name__ == "__main__":
    main()
