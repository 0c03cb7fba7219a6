from fastapi import FastAPI, HTTPException
import asyncio
import functools
import logging
import random
from contextlib import asynccontextmanager

from eventsync import __version__
from eventsync.config import ConfigManager
from eventsync.emitter import EventEmitter, trigger_randomly
from eventsync.handler import EventHandler
from eventsync.repository.adapter import EventRepository
from eventsync.repository.delayed import DelayedEventStore
from eventsync.results import ResultsTester
from eventsync.stats import EventStatistics

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan handler: build the sync pipeline, start generators, stop on shutdown."""
    config = ConfigManager()
    config.require_valid()
    sync_settings = config.sync_settings
    sim_settings = config.simulation_settings
    categories = sync_settings.categories

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
    emitter = EventEmitter()
    handler = EventHandler(
        stats, repository, categories,
        emitter=emitter,
        sync_interval_ms=sync_settings.sync_interval_ms,
    )

    # random occurrence generators, one per category
    generators = []
    if sim_settings.max_events > 0:
        rng = random.Random(sim_settings.seed)
        for category in categories:
            generators.append(asyncio.create_task(trigger_randomly(
                functools.partial(emitter.emit, category),
                sim_settings.max_events,
                sim_settings.max_delay_ms,
                rng=rng,
            )))
        logger.info(f"Started {len(generators)} occurrence generators ({sim_settings.max_events} events each)")

    app.state.categories = categories
    app.state.store = store
    app.state.repository = repository
    app.state.emitter = emitter
    app.state.handler = handler
    app.state.results = ResultsTester(categories, handler, repository)
    app.state._generators = generators

    try:
        yield
    finally:
        logger.info("Shutting down generators and sync handler...")
        for task in generators:
            task.cancel()
        if generators:
            await asyncio.gather(*generators, return_exceptions=True)
        await handler.stop()


app = FastAPI(title="Event Sync", lifespan=lifespan)


@app.get("/api/health")
def health():
    """Simple health endpoint for smoke tests."""
    return {"status": "ok", "service": "eventsync", "version": __version__}


@app.get("/api/stats")
async def get_stats():
    """Local and remote counts per category, read without side effects."""
    results: ResultsTester = app.state.results
    samples = results.sample()
    return {
        "categories": {
            s.category: {
                "local": s.local,
                "remote": s.remote,
                "error_count": s.error_count,
                "syncing": results.handler.is_syncing(s.category),
            }
            for s in samples
        },
        "converged": all(s.in_sync for s in samples),
    }


@app.post("/api/events/{category}")
async def api_emit_event(category: str):
    """Fire one occurrence of category through the emitter.

    The handler reconciles in the background; the response carries the new
    local count only.
    """
    if category not in app.state.categories:
        raise HTTPException(status_code=404, detail=f"Unknown event category: {category}")
    app.state.emitter.emit(category)
    local = app.state.handler.get_stats(category)
    logger.debug(f"Occurrence of {category} injected, local count {local}")
    return {"status": "ok", "category": category, "local": local}


# metrics router (small and safe to include)
from eventsync.api import metrics as _metrics_module  # noqa: E402
app.include_router(_metrics_module.router)
