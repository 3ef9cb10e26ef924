"""
Background Reference-Data Sync Worker
=====================================

Runs once at startup and then every ``REFERENCE_SYNC_INTERVAL_SECONDS``
(default 24 h; 0 disables the worker).

Concurrency safety
------------------
* **Redis distributed lock** ensures only one API process downloads and
  upserts the province / district tables per cycle.
* The upsert runs in a single transaction, so the geo-resolver never
  sees a half-imported province.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from towmatch.config import settings
from towmatch.infrastructure.database import async_session_factory
from towmatch.infrastructure.locks import DistributedLock
from towmatch.infrastructure.redis_client import get_redis
from towmatch.infrastructure.reference_data import ImportStats, ReferenceDataImporter

logger = logging.getLogger(__name__)

_task: asyncio.Task | None = None
_stop_event: asyncio.Event | None = None


# ── Public API ────────────────────────────────────────────────────────


async def start_sync_loop() -> None:
    global _task, _stop_event
    if settings.reference_sync_interval_seconds <= 0:
        logger.info("Reference sync worker disabled")
        return
    _stop_event = asyncio.Event()
    _task = asyncio.create_task(_loop())
    logger.info(
        "Reference sync worker started (interval=%ds)",
        settings.reference_sync_interval_seconds,
    )


async def stop_sync_loop() -> None:
    if _stop_event:
        _stop_event.set()
    if _task:
        _task.cancel()
        try:
            await _task
        except asyncio.CancelledError:
            pass
    logger.info("Reference sync worker stopped")


# ── Internals ─────────────────────────────────────────────────────────


async def _loop() -> None:
    """Periodic loop: run a sync cycle then sleep."""
    assert _stop_event is not None
    while not _stop_event.is_set():
        try:
            await run_sync_cycle()
        except Exception:
            logger.exception("Unhandled error in reference sync cycle")
        try:
            await asyncio.wait_for(
                _stop_event.wait(), timeout=settings.reference_sync_interval_seconds
            )
            break
        except asyncio.TimeoutError:
            pass  # next cycle


async def run_sync_cycle() -> ImportStats | None:
    """Execute one sync.  Returns the import counts, or None if skipped/failed."""
    redis = await get_redis()
    lock = DistributedLock(redis, "reference_sync", ttl_seconds=300)

    if not await lock.acquire():
        logger.debug("Lock held by another worker – skipping reference sync")
        return None

    try:
        async with httpx.AsyncClient() as client, async_session_factory() as session:
            stats = await ReferenceDataImporter(session, client).sync()
            await session.commit()
        logger.info(
            "Reference sync: %d provinces, %d districts",
            stats.provinces,
            stats.districts,
        )
        return stats
    except Exception:
        logger.exception("Error in reference sync cycle")
        return None
    finally:
        await lock.release()
