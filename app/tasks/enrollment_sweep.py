"""
Periodic return of abandoned fingerprint captures to the queue.

A scanner that claims a job and then goes quiet would otherwise leave the
enrollment in CAPTURING forever, blocking new requests for that student.
"""
from typing import List, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler

from app.core.config import get_sweep_settings
from app.core.database import get_db_context
from app.core.logging import logger
from app.services.fingerprint_service import FingerprintService

SWEEP_JOB_ID = "reclaim_stale_enrollments"


async def run_enrollment_sweep(
    session_factory=None,
    timeout_minutes: Optional[int] = None
) -> List[int]:
    if timeout_minutes is None:
        timeout_minutes = get_sweep_settings()["capture_timeout_minutes"]

    try:
        async with get_db_context(session_factory) as session:
            reclaimed = await FingerprintService(session).reclaim_stale_enrollments(timeout_minutes)
    except Exception:
        logger.exception("Enrollment sweep failed")
        return []

    if reclaimed:
        logger.info(f"Enrollment sweep returned {len(reclaimed)} job(s) to the queue: {reclaimed}")
    else:
        logger.debug("Enrollment sweep found no stale captures")
    return reclaimed


def create_scheduler() -> Optional[AsyncIOScheduler]:
    """Scheduler with the sweep job, or None when the sweep is disabled"""
    sweep = get_sweep_settings()
    if not sweep["enabled"]:
        logger.info("Enrollment sweep disabled")
        return None

    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        run_enrollment_sweep,
        "interval",
        minutes=sweep["interval_minutes"],
        id=SWEEP_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    return scheduler
