import contextlib
from contextlib import asynccontextmanager
import asyncio
import logging

from app.analytics.db import init_db, purge_old_records
from app.store.db import init_store
from app.store.route_limits import purge_route_hits

logger = logging.getLogger(__name__)

PURGE_INTERVAL_S = 3600
ROUTE_HIT_RETENTION_S = 3600


@asynccontextmanager
async def lifespan(app):
    init_store()
    init_db()

    stop_event = asyncio.Event()

    async def periodic_purge() -> None:
        while not stop_event.is_set():
            try:
                deleted = purge_old_records()
                if any(deleted.values()):
                    logger.info("analytics_retention_purge deleted=%s", deleted)
                route_hits = purge_route_hits(ROUTE_HIT_RETENTION_S)
                if route_hits:
                    logger.info("route_hits_purge deleted=%s", route_hits)
            except Exception as exc:  # pragma: no cover - purge failures must not stop the app
                logger.warning("analytics_retention_purge_failed: %s", exc)
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=PURGE_INTERVAL_S)
            except asyncio.TimeoutError:
                continue

    purge_task = asyncio.create_task(periodic_purge())
    yield
    stop_event.set()
    if not purge_task.done():
        purge_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await purge_task
