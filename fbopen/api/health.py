"""
Health check endpoints for monitoring system status.
Shows whether the search engine behind the API is reachable.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
import time

from fbopen.models.search_engine import SearchEngine, get_engine

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_check():
    """Liveness check; does not touch the engine."""
    return {"status": "healthy"}


@router.get("/health/engine")
async def engine_health(engine: SearchEngine = Depends(get_engine)):
    """
    Check that the search engine answers.

    Returns 503 when it doesn't, so load balancers can act on it.
    """
    start_time = time.time()
    reachable = await engine.ping()
    elapsed_time = time.time() - start_time

    body = {
        "status": "healthy" if reachable else "unhealthy",
        "index": engine.index_name,
        "response_time_ms": round(elapsed_time * 1000, 2),
    }
    return JSONResponse(body, status_code=200 if reachable else 503)
