"""
Analysis worker - takes one pending analysis through to completed or failed.

``process_analysis`` is the single implementation; it is run by the inline
dispatcher, by the Celery task below and by the ``/worker/process`` endpoint.
"""

import asyncio
import logging
from typing import Any, Dict

from celery import shared_task
from sqlalchemy.exc import SQLAlchemyError

from blueolive.config import settings
from blueolive.core.analysis_store import AnalysisStore
from blueolive.core.game_analyzer import GameAnalyzer
from blueolive.db.session import get_session_local
from blueolive.models.enums import AnalysisStatus

logger = logging.getLogger(__name__)

PROCESS_ANALYSIS_TASK = "analysis_worker.process_analysis"


async def process_analysis(
    analysis_id: str, store: AnalysisStore, analyzer: GameAnalyzer
) -> AnalysisStatus | None:
    """
    Run the analysis for ``analysis_id`` if it is still pending.

    Returns the status the record ends up in, or None when the id is unknown.
    Repeated or concurrent invocations for the same id are no-ops after the
    first: only the caller that claims the pending record talks to the model.
    Model and parsing failures are recorded on the analysis, never raised.
    """
    analysis = await store.get(analysis_id)
    if analysis is None:
        logger.error(f"Analysis {analysis_id} not found")
        return None

    if analysis.status != AnalysisStatus.PENDING.value:
        logger.info(
            f"Analysis {analysis_id} already {analysis.status}, nothing to do"
        )
        return AnalysisStatus(analysis.status)

    if not await store.claim(analysis):
        return AnalysisStatus(analysis.status)

    logger.info(f"Processing analysis {analysis_id}")
    try:
        result = await analyzer.analyze(analysis)
    except Exception as e:
        reason = str(e) or e.__class__.__name__
        logger.error(f"Analysis {analysis_id} failed: {reason}", exc_info=True)
        await store.fail(analysis, reason)
        return AnalysisStatus.FAILED

    await store.complete(analysis, result)
    logger.info(f"Analysis {analysis_id} completed")
    return AnalysisStatus.COMPLETED


async def _process_analysis_task(analysis_id: str) -> Dict[str, Any]:
    from blueolive.db.session import dispose_engine

    try:
        AsyncSessionLocal = get_session_local()
        async with AsyncSessionLocal() as session:
            status = await process_analysis(
                analysis_id,
                AnalysisStore(session),
                GameAnalyzer(settings.analysis_model or None),
            )
        return {
            "analysis_id": analysis_id,
            "status": status.value if status else "not_found",
        }
    finally:
        # Each asyncio.run gets a fresh loop; pooled connections must not outlive it
        await dispose_engine()


@shared_task(
    name=PROCESS_ANALYSIS_TASK,
    acks_late=True,
    autoretry_for=(SQLAlchemyError,),
    retry_backoff=True,
    max_retries=5,
)
def process_analysis_task(analysis_id: str) -> Dict[str, Any]:
    """
    Celery entry point for one analysis.

    Database errors are retried with backoff; the pending/processing guard
    in ``process_analysis`` keeps retries from analysing a game twice.
    """
    return asyncio.run(_process_analysis_task(analysis_id))
