"""
Scheduler module for periodic background tasks.
Uses APScheduler's AsyncIOScheduler.

The daily sweep marks QUEUED interactions whose job has passed its
valid-through date as EXPIRED. A Supabase-backed lock keeps multiple
Uvicorn workers from running the sweep at the same time.
"""

import logging
from datetime import date
from zoneinfo import ZoneInfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.config import settings
from app.dependencies import _get_supabase_client, get_db
from app.services.interaction_service import InteractionService

logger = logging.getLogger(__name__)

# Global scheduler instance
scheduler = AsyncIOScheduler()

SWEEP_JOB_ID = "expire_queued_interactions"

# A crashed worker's lock expires after this many minutes
_LOCK_TTL_MINUTES = 30


async def _acquire_cron_lock(lock_name: str) -> bool:
    """
    Attempt to acquire a distributed lock via the `acquire_cron_lock` RPC.
    Returns True if this worker acquired the lock, False otherwise.
    """
    client = _get_supabase_client()
    try:
        result = client.rpc("acquire_cron_lock", {
            "p_lock_name": lock_name,
            "p_ttl_minutes": _LOCK_TTL_MINUTES,
        }).execute()

        acquired = result.data if result.data is not None else False
        logger.info("Cron lock '%s': %s", lock_name, "acquired" if acquired else "already held")
        return acquired

    except Exception as exc:
        # Missing RPC (migration not applied) → single-worker behaviour
        logger.warning(
            "Cron lock acquisition failed: %s. Proceeding without lock.", exc
        )
        return True


async def _release_cron_lock(lock_name: str) -> None:
    client = _get_supabase_client()
    try:
        client.table("cron_locks").update({
            "locked_until": "2000-01-01T00:00:00Z",
        }).eq("lock_name", lock_name).execute()
        logger.info("Cron lock '%s' released.", lock_name)
    except Exception as exc:
        logger.warning("Failed to release cron lock '%s': %s", lock_name, exc)


async def trigger_expiry_sweep(today: date | None = None) -> int:
    """
    Core sweep logic. Can be called by the scheduler or manually.
    Returns the number of interactions marked EXPIRED.
    """
    db = get_db()
    service = InteractionService(interactions=db, jobs=db)
    expired = await service.expire_queued_interactions(today)
    logger.info("Expiry sweep complete: %d queued interactions expired", expired)
    return expired


async def run_expiry_sweep() -> None:
    """Scheduled wrapper: only the worker holding the lock sweeps."""
    lock_name = SWEEP_JOB_ID

    if not await _acquire_cron_lock(lock_name):
        logger.info("Another worker holds the expiry lock, skipping this run.")
        return

    try:
        await trigger_expiry_sweep()
    except Exception as exc:
        logger.error("Expiry sweep failed: %s: %s", type(exc).__name__, exc)
    finally:
        await _release_cron_lock(lock_name)


def start_scheduler():
    """Start the background scheduler."""
    trigger = CronTrigger(
        hour=settings.expiry_sweep_hour,
        minute=0,
        timezone=ZoneInfo(settings.expiry_sweep_timezone),
    )

    scheduler.add_job(
        run_expiry_sweep,
        trigger,
        id=SWEEP_JOB_ID,
        replace_existing=True,
    )

    scheduler.start()

    job = scheduler.get_job(SWEEP_JOB_ID)
    if job:
        logger.info("Scheduler started. Next expiry sweep at: %s", job.next_run_time)


def shutdown_scheduler():
    """Stop the scheduler."""
    scheduler.shutdown()
    logger.info("Scheduler shut down.")
