"""
Version 0 API endpoints.
List search only; single-record lookup is deliberately not offered.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
import logging

from fbopen.api.schemas import ErrorResponse, V0OppsResponse
from fbopen.models.search_engine import SearchEngine, get_engine
from fbopen.services.errors import EngineError, EngineUnavailableError, QueryValidationError
from fbopen.services.result_shaper import ApiVersion
from fbopen.services.search_service import search_opps

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v0", tags=["v0"])


@router.get(
    "/opps",
    response_model=V0OppsResponse,
    responses={400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def list_opps(
    q: Optional[str] = Query(None, description="Free-text query"),
    fq: Optional[str] = Query(None, description="Filter query (does not affect ranking)"),
    data_source: Optional[str] = Query(None, description="Source feed, e.g. fbo.gov (case-insensitive)"),
    show_noncompeted: Optional[str] = Query(None, description="1 to include non-competed opps"),
    show_closed: Optional[str] = Query(None, description="1 to include closed opps"),
    fl: Optional[str] = Query(None, description="Comma-separated list of fields to return"),
    start: Optional[str] = Query(None, description="Zero-based offset (wins over p)"),
    limit: Optional[str] = Query(None, description="Page size"),
    p: Optional[str] = Query(None, description="1-based page number"),
    engine: SearchEngine = Depends(get_engine),
):
    """
    Search opps.

    Example:
    GET /v0/opps?q=software&show_closed=1&limit=5

    Returns {numFound, docs}; each doc carries `score` and `data_type`.
    """
    params = {
        name: value
        for name, value in (
            ("q", q), ("fq", fq), ("data_source", data_source),
            ("show_noncompeted", show_noncompeted), ("show_closed", show_closed),
            ("fl", fl), ("start", start), ("limit", limit), ("p", p),
        )
        if value is not None
    }

    try:
        return await search_opps(engine, params, ApiVersion.v0)
    except QueryValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EngineUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except EngineError as e:
        logger.error(f"v0 search failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))
