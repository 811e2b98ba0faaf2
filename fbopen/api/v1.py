"""
Version 1 API endpoints.
Same list search as v0 with `_score` / `_type` naming, plus lookup of a
single opp by its composite id.
"""

from fastapi import APIRouter, Depends, HTTPException, Query
from typing import Optional
import logging

from fbopen.api.schemas import ErrorResponse, V1Opp, V1OppsResponse
from fbopen.models.search_engine import SearchEngine, get_engine
from fbopen.services.errors import EngineError, EngineUnavailableError, QueryValidationError
from fbopen.services.result_shaper import ApiVersion
from fbopen.services.search_service import get_opp, search_opps

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1", tags=["v1"])

ERRORS = {400: {"model": ErrorResponse}, 502: {"model": ErrorResponse}, 503: {"model": ErrorResponse}}


@router.get("/opps", response_model=V1OppsResponse, responses=ERRORS)
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
    GET /v1/opps?q=software&data_source=fbo.gov

    Returns {numFound, docs}; each doc carries `_score` and `_type`.
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
        return await search_opps(engine, params, ApiVersion.v1)
    except QueryValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except EngineUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except EngineError as e:
        logger.error(f"v1 search failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))


@router.get(
    "/opp/{opp_id:path}",
    response_model=V1Opp,
    responses={404: {"model": ErrorResponse}, **ERRORS},
)
async def read_opp(
    opp_id: str,
    fl: Optional[str] = Query(None, description="Comma-separated list of fields to return"),
    engine: SearchEngine = Depends(get_engine),
):
    """
    Get one opp by id, e.g. GET /v1/opp/fbo.gov:COMBINE:fa8571-14-r-0008

    Returns the record itself (not wrapped in docs), or 404.
    """
    params = {"fl": fl} if fl is not None else {}

    try:
        record = await get_opp(engine, opp_id, params)
    except EngineUnavailableError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except EngineError as e:
        logger.error(f"v1 lookup of {opp_id} failed: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    if record is None:
        raise HTTPException(status_code=404, detail="Not Found")
    return record
