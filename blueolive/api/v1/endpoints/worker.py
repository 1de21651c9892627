"""
Worker callback for push-style queues.

An external queue (or an operator) posts ``{"analysis_id": ...}`` here and
the analysis is processed within the request. A 5xx response tells the queue
to retry; the pending guard in the worker makes retries safe.
"""

import logging

from fastapi import APIRouter, Depends, status

from blueolive.api.v1.deps import get_analysis_store, get_analyzer
from blueolive.api.v1.helpers.responses import (
    APIResponse,
    error_response,
    success_response,
)
from blueolive.core.analysis_store import AnalysisStore
from blueolive.core.game_analyzer import GameAnalyzer
from blueolive.models.pydantic_models.analysis import WorkerProcessRequest
from blueolive.tasks.analysis_worker import process_analysis

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/process", response_model=APIResponse)
async def process(
    request: WorkerProcessRequest,
    store: AnalysisStore = Depends(get_analysis_store),
    analyzer: GameAnalyzer = Depends(get_analyzer),
):
    if not request.analysis_id:
        raise error_response("analysis_id is required")

    try:
        final_status = await process_analysis(request.analysis_id, store, analyzer)
    except Exception as e:
        logger.error(
            f"Worker failed to process {request.analysis_id}: {e}", exc_info=True
        )
        raise error_response(
            "Processing failed",
            errors=[str(e)],
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    return success_response(
        message="Processed",
        data={
            "analysis_id": request.analysis_id,
            "status": final_status.value if final_status else None,
        },
    )
