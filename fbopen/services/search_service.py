"""
Opp search service.
Builds the query, runs it once against the engine and shapes the result
for the requested API version.
"""

from typing import Any, Dict, Mapping, Optional
import logging

from fbopen.config import Settings, get_settings
from fbopen.models.search_engine import SearchEngine
from fbopen.services.query_builder import build_record_request, build_search_request
from fbopen.services.result_shaper import SHAPERS, ApiVersion, shape_v1_record

logger = logging.getLogger(__name__)


async def search_opps(
    engine: SearchEngine,
    params: Mapping[str, str],
    version: ApiVersion,
    settings: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Run a list query.

    Args:
        engine: Search engine to query
        params: Query-string parameters from the request
        version: API version deciding the response field names

    Returns:
        {"numFound": int, "docs": [...]}

    Raises:
        QueryValidationError: bad paging parameters (nothing is sent)
        EngineError: the engine failed; not retried here
    """
    settings = settings or get_settings()
    request = build_search_request(params, settings)

    logger.info(
        f"Search {version.value}: params={dict(params)}, offset={request.offset}, "
        f"limit={request.limit}, filters={request.filters}"
    )

    raw = await engine.search(request.body)
    result = SHAPERS[version](raw, request.fields)

    logger.info(f"Search {version.value}: numFound={result['numFound']}, returned={len(result['docs'])}")
    return result


async def get_opp(
    engine: SearchEngine,
    opp_id: str,
    params: Optional[Mapping[str, str]] = None,
) -> Optional[Dict[str, Any]]:
    """Fetch one opp by composite id in the v1 shape. None if it doesn't exist."""
    request = build_record_request(opp_id, params or {})

    raw = await engine.search(request.body)
    record = shape_v1_record(raw, request.fields)

    if record is None:
        logger.info(f"Opp not found: {opp_id}")
    return record
