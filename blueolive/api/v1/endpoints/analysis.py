"""
Analysis endpoints: PGN upload, bulk submission, status polling and retrieval.

Authentication is optional everywhere except the per-user listing;
unauthenticated callers share the anonymous owner.
"""

import logging

from fastapi import APIRouter, Depends, File, Query, UploadFile, status

from blueolive.api.v1.deps import get_analysis_store, get_dispatcher, get_storage
from blueolive.api.v1.helpers.authentication import (
    get_current_owner,
    require_registered_owner,
)
from blueolive.api.v1.helpers.responses import (
    APIResponse,
    error_response,
    not_found_response,
    service_unavailable_response,
    success_response,
)
from blueolive.config import settings
from blueolive.core.analysis_store import AnalysisStore
from blueolive.core.bulk_submission import submit_bulk_analysis
from blueolive.core.dispatch import DispatchError, Dispatcher
from blueolive.core.ownership import Owner, RegisteredOwner
from blueolive.core.storage import ObjectStorage, StorageError
from blueolive.models.pydantic_models.analysis import (
    AnalysisListItem,
    AnalysisOut,
    AnalysisStatusOut,
    BulkAnalysisRequest,
    UploadResponse,
)
from blueolive.utils import parse_id_list

logger = logging.getLogger(__name__)

upload_router = APIRouter()
router = APIRouter()

PGN_EXTENSION = ".pgn"
ACCEPTED_CONTENT_TYPES = {"text/plain", "application/x-chess-pgn", "application/vnd.chess-pgn"}


def _is_pgn_upload(file: UploadFile) -> bool:
    filename = (file.filename or "").lower()
    content_type = (file.content_type or "").split(";")[0].strip().lower()
    return filename.endswith(PGN_EXTENSION) or content_type in ACCEPTED_CONTENT_TYPES


@upload_router.post("/upload", response_model=APIResponse)
async def upload_files(
    files: list[UploadFile] = File(...),
    owner: Owner = Depends(get_current_owner),
    storage: ObjectStorage = Depends(get_storage),
):
    """Store PGN files and return references for the bulk analysis endpoint."""
    if not files:
        raise error_response("No files provided")
    if len(files) > settings.upload_max_files:
        raise error_response(
            f"Too many files: at most {settings.upload_max_files} per upload"
        )

    max_bytes = settings.upload_max_mb * 1024 * 1024
    urls: list[str] = []
    for file in files:
        if not _is_pgn_upload(file):
            raise error_response(
                "Invalid file type", errors=[f"{file.filename}: only .pgn files are accepted"]
            )
        content = await file.read()
        if len(content) > max_bytes:
            raise error_response(
                "File too large",
                errors=[f"{file.filename}: exceeds {settings.upload_max_mb}MB"],
            )
        try:
            urls.append(
                await storage.save(file.filename or "upload.pgn", content, owner)
            )
        except StorageError as e:
            logger.error(f"Upload failed for {file.filename}: {e}")
            raise error_response(
                "Failed to store file",
                errors=[str(e)],
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            )

    logger.info(f"Stored {len(urls)} file(s) for {owner.key}")
    return success_response(
        message="Files uploaded successfully",
        data=UploadResponse(urls=urls).model_dump(),
    )


@router.post(
    "/bulk", response_model=APIResponse, status_code=status.HTTP_202_ACCEPTED
)
async def create_bulk_analysis(
    request: BulkAnalysisRequest,
    owner: Owner = Depends(get_current_owner),
    storage: ObjectStorage = Depends(get_storage),
    store: AnalysisStore = Depends(get_analysis_store),
    dispatcher: Dispatcher = Depends(get_dispatcher),
):
    """Create one pending analysis per game the player appears in."""
    try:
        response = await submit_bulk_analysis(
            urls=request.urls,
            owner=owner,
            player_name=request.player_name,
            storage=storage,
            store=store,
            dispatcher=dispatcher,
        )
    except StorageError as e:
        raise error_response("Failed to read uploaded file", errors=[str(e)])
    except DispatchError as e:
        raise service_unavailable_response(f"Failed to queue analysis: {e}")

    return success_response(
        message="Analysis started",
        data=response.model_dump(),
    )


@router.get("/status", response_model=APIResponse)
async def get_analysis_statuses(
    ids: str = Query(..., description="Comma-separated analysis ids"),
    owner: Owner = Depends(get_current_owner),
    store: AnalysisStore = Depends(get_analysis_store),
):
    """Return ``{analysis_id: {"status": ...}}`` for the caller's own analyses."""
    analysis_ids = parse_id_list(ids)
    if not analysis_ids:
        raise error_response("ids query parameter is required")

    statuses = await store.get_statuses(analysis_ids, owner)
    return success_response(
        data={
            analysis_id: AnalysisStatusOut(status=analysis_status).model_dump(
                mode="json"
            )
            for analysis_id, analysis_status in statuses.items()
        }
    )


@router.get("/user", response_model=APIResponse)
async def list_user_analyses(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    owner: RegisteredOwner = Depends(require_registered_owner),
    store: AnalysisStore = Depends(get_analysis_store),
):
    """List the authenticated user's analyses, newest first."""
    analyses, total = await store.list_for_owner(owner, page=page, limit=limit)
    return success_response(
        data=[AnalysisListItem.from_model(a).model_dump(mode="json") for a in analyses],
        meta={"page": page, "limit": limit, "total": total},
    )


@router.get("/{analysis_id}", response_model=APIResponse)
async def get_analysis(
    analysis_id: str,
    owner: Owner = Depends(get_current_owner),
    store: AnalysisStore = Depends(get_analysis_store),
):
    """Get a single analysis, including its result once completed."""
    analysis = await store.get(analysis_id, owner=owner)
    if analysis is None:
        raise not_found_response("Analysis not found")
    return success_response(data=AnalysisOut.from_model(analysis).model_dump(mode="json"))
