"""
FastAPI route handlers.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from regulation_search.errors import SearchInProgressError, StoreReadError
from regulation_search.pipeline import RegulationSession
from regulation_search.pipeline.session import LOAD_ERROR_MESSAGE, NO_RESULTS_MESSAGE
from .dependencies import get_session
from .models import (
    HealthResponse,
    RegulationListResponse,
    RegulationModel,
    SearchRequest,
    SearchResponse
)

logger = logging.getLogger(__name__)

router = APIRouter()


def _require_loaded(session: RegulationSession) -> None:
    if not session.loaded:
        raise HTTPException(status_code=503, detail=session.error or LOAD_ERROR_MESSAGE)


@router.post("/search", response_model=SearchResponse)
def search(request: SearchRequest, session: RegulationSession = Depends(get_session)):
    """
    Search the loaded regulations.

    Scoring failures never surface here: they fall back to offline matching.
    """
    _require_loaded(session)

    try:
        results, metrics = session.run_search(request.query)
    except SearchInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return SearchResponse(
        query=request.query,
        results=[RegulationModel.from_regulation(reg) for reg in results],
        count=len(results),
        message=None if results else NO_RESULTS_MESSAGE,
        request_id=metrics.request_id,
        metrics=metrics.to_dict()
    )


@router.get("/regulations", response_model=RegulationListResponse)
def regulations(session: RegulationSession = Depends(get_session)):
    """List every loaded regulation."""
    _require_loaded(session)
    return RegulationListResponse(
        regulations=[RegulationModel.from_regulation(reg) for reg in session.records],
        count=len(session.records)
    )


@router.post("/reload", response_model=RegulationListResponse)
def reload(session: RegulationSession = Depends(get_session)):
    """Fetch regulations from the store again (retry after a failed load)."""
    try:
        records = session.load()
    except StoreReadError as e:
        logger.error(f"Reload failed: {e}")
        raise HTTPException(status_code=503, detail=session.error)

    return RegulationListResponse(
        regulations=[RegulationModel.from_regulation(reg) for reg in records],
        count=len(records)
    )


@router.get("/health", response_model=HealthResponse)
def health(session: RegulationSession = Depends(get_session)):
    """Health check endpoint."""
    return HealthResponse(
        status="healthy" if session.loaded else "unhealthy",
        records_loaded=session.loaded,
        record_count=len(session.records),
        error=session.error
    )
