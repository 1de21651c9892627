"""
Job reconciler - re-dispatches analyses that have sat in ``pending`` too long.

A pending analysis is normally handed to the worker right after it is
created. If that hand-off failed (broker down, API process restarted before
an inline task ran) the record stays pending; this periodic task sends it
again. Sending twice is harmless because the worker only acts on records it
can claim. Failed analyses are left alone.
"""

import asyncio
import logging
from datetime import timedelta
from typing import Any, Dict

from celery import shared_task

from blueolive.celery_app import celery_app
from blueolive.config import settings
from blueolive.core.analysis_store import AnalysisStore
from blueolive.db.session import get_session_local
from blueolive.tasks.task_lock import with_task_lock
from blueolive.utils import utcnow

logger = logging.getLogger(__name__)

REDISPATCH_BATCH_SIZE = 100


async def redispatch_stale_analyses(store: AnalysisStore, dispatcher) -> Dict[str, Any]:
    cutoff = utcnow() - timedelta(seconds=settings.stale_pending_after_seconds)
    stale = await store.stale_pending(cutoff, limit=REDISPATCH_BATCH_SIZE)

    if not stale:
        logger.info("No stale pending analyses found")
        return {"status": "success", "found": 0, "dispatched": 0, "errors": []}

    logger.info(f"Found {len(stale)} stale pending analyses")

    dispatched = 0
    errors = []
    for analysis in stale:
        try:
            await dispatcher.dispatch(analysis.analysis_id)
        except Exception as exc:
            error_msg = f"Failed to re-dispatch {analysis.analysis_id}: {exc}"
            logger.error(error_msg, exc_info=True)
            errors.append(error_msg)
            continue
        # Restart the staleness clock so the next tick does not send it again
        await store.touch(analysis)
        dispatched += 1

    logger.info(
        f"Job reconciler complete: {dispatched} re-dispatched, {len(errors)} failed"
    )
    return {
        "status": "success",
        "found": len(stale),
        "dispatched": dispatched,
        "errors": errors,
    }


async def _redispatch_stale_analyses() -> Dict[str, Any]:
    from blueolive.core.dispatch import CeleryDispatcher
    from blueolive.db.session import dispose_engine

    try:
        AsyncSessionLocal = get_session_local()
        async with AsyncSessionLocal() as session:
            return await redispatch_stale_analyses(
                AnalysisStore(session), CeleryDispatcher(celery_app)
            )
    except Exception as exc:
        logger.error(f"Job reconciler failed: {exc}", exc_info=True)
        return {
            "status": "error",
            "error": str(exc),
            "found": 0,
            "dispatched": 0,
            "errors": [str(exc)],
        }
    finally:
        await dispose_engine()


@shared_task(name="job_reconciler.redispatch_stale_analyses")
@with_task_lock(lock_name="job_reconciler")
def redispatch_stale_analyses_task() -> Dict[str, Any]:
    """
    Celery periodic task that re-sends stale pending analyses to the worker.

    Uses distributed locking so overlapping beat ticks never double-dispatch.
    """
    return asyncio.run(_redispatch_stale_analyses())
