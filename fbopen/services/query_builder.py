"""
Query builder: turns opp-search query-string parameters into an
Elasticsearch request body.

Pure functions only. Nothing here talks to the engine.

Filter semantics:
- default: competed AND open
- show_noncompeted=1 drops the competed restriction
- show_closed=1 drops the open restriction
- data_source: case-insensitive exact match
- fq: phrase/query-string filter, does not affect scoring
- q: relevance query, with an exact solnbr match boosted to the top

Paging: `start` is a zero-based offset and wins over `p` (1-based page)
when both are given. A page that ends past the engine's result window is
sent as a count-only search, so it comes back empty instead of failing.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional
import logging

from fbopen.config import Settings
from fbopen.services.errors import QueryValidationError

logger = logging.getLogger(__name__)

TRUTHY = ("1", "true")

# Query syntax accepted in q and fq
TEXT_FLAGS = "PHRASE|PREFIX|PRECEDENCE|AND|OR|ESCAPE|WHITESPACE"

# Never returned to clients, whatever the whitelist says.
INTERNAL_SOURCE_FIELDS = ["content", "attachments.content"]


@dataclass(frozen=True)
class FilterState:
    """Which default restrictions are active for a request."""
    competed_only: bool = True
    open_only: bool = True

    @classmethod
    def from_params(cls, params: Mapping[str, str]) -> "FilterState":
        return cls(
            competed_only=not _flag(params.get("show_noncompeted")),
            open_only=not _flag(params.get("show_closed")),
        )


@dataclass(frozen=True)
class SearchRequest:
    """A fully built search, ready to hand to the engine."""
    body: Dict[str, Any]
    offset: int
    limit: int
    fields: Optional[List[str]]
    filters: FilterState


def _flag(value: Optional[str]) -> bool:
    return value is not None and value.strip().lower() in TRUTHY


def _parse_int(params: Mapping[str, str], name: str, minimum: int, maximum: Optional[int] = None) -> Optional[int]:
    raw = params.get(name)
    if raw is None:
        return None

    try:
        value = int(raw.strip())
    except ValueError:
        raise QueryValidationError(name, raw, "must be an integer")

    if value < minimum:
        raise QueryValidationError(name, raw, f"must be >= {minimum}")
    if maximum is not None and value > maximum:
        raise QueryValidationError(name, raw, f"must be <= {maximum}")
    return value


def parse_fields(raw: Optional[str]) -> Optional[List[str]]:
    """Split an `fl` value into an ordered, de-duplicated field list."""
    if raw is None:
        return None

    fields: List[str] = []
    for name in raw.split(","):
        name = name.strip()
        if name and name not in fields:
            fields.append(name)
    return fields or None


def parse_paging(params: Mapping[str, str], settings: Settings) -> tuple:
    """
    Work out (offset, limit) from start/p/limit.

    start wins over p. Bad numbers raise QueryValidationError.
    """
    limit = _parse_int(params, "limit", 1, settings.max_limit)
    if limit is None:
        limit = settings.default_limit

    start = _parse_int(params, "start", 0)
    page = _parse_int(params, "p", 1)

    if start is not None:
        if page is not None:
            logger.debug(f"Both start={start} and p={page} given; using start")
        return start, limit
    if page is not None:
        return (page - 1) * limit, limit
    return 0, limit


def build_filters(params: Mapping[str, str], state: FilterState, settings: Settings) -> List[Dict[str, Any]]:
    """Filter clauses, all ANDed together and excluded from scoring."""
    filters: List[Dict[str, Any]] = []

    if state.competed_only:
        filters.append({"bool": {"must_not": [{"term": {"noncompeted": True}}]}})

    if state.open_only:
        now = settings.elasticsearch_now or "now/d"
        filters.append({
            "bool": {
                "should": [
                    {"range": {"close_dt": {"gte": now}}},
                    {"bool": {"must_not": [{"exists": {"field": "close_dt"}}]}},
                ],
                "minimum_should_match": 1,
            }
        })

    data_source = (params.get("data_source") or "").strip()
    if data_source:
        filters.append({"term": {"data_source": {"value": data_source, "case_insensitive": True}}})

    fq = (params.get("fq") or "").strip()
    if fq:
        filters.append(text_clause(fq, settings.search_fields))

    return filters


def text_clause(text: str, fields: List[str]) -> Dict[str, Any]:
    """
    User-supplied search text. simple_query_string never fails on bad
    syntax; leading "-" is not treated as negation.
    """
    return {
        "simple_query_string": {
            "query": text,
            "fields": list(fields),
            "flags": TEXT_FLAGS,
        }
    }


def build_text_query(q: str, settings: Settings) -> Dict[str, Any]:
    """Relevance clause: record fields or any attachment's content."""
    return {
        "bool": {
            "should": [
                text_clause(q, settings.search_fields),
                {
                    "has_child": {
                        "type": settings.attachment_type,
                        "query": text_clause(q, ["content"]),
                        "score_mode": "max",
                        "ignore_unmapped": True,
                    }
                },
            ],
            "minimum_should_match": 1,
        }
    }


def build_source(fields: Optional[List[str]]) -> Dict[str, Any]:
    source: Dict[str, Any] = {"excludes": list(INTERNAL_SOURCE_FIELDS)}
    if fields:
        source["includes"] = list(fields)
    return source


def build_search_request(params: Mapping[str, str], settings: Settings) -> SearchRequest:
    """
    Build the complete engine request for a list query.

    Args:
        params: Raw query-string parameters (name -> string value)
        settings: Application settings (index layout, paging limits)

    Returns:
        SearchRequest whose body can be sent to the engine as-is
    """
    offset, limit = parse_paging(params, settings)
    page_from, page_size = offset, limit
    if offset + limit > settings.max_result_window:
        # the engine refuses pages past its window; only count matches
        logger.info(f"Page {offset}+{limit} is past the result window ({settings.max_result_window})")
        page_from, page_size = 0, 0
    fields = parse_fields(params.get("fl"))
    state = FilterState.from_params(params)

    query: Dict[str, Any] = {"filter": build_filters(params, state, settings)}

    q = (params.get("q") or "").strip()
    if q:
        query["must"] = [build_text_query(q, settings)]
        # Exact solicitation numbers go first; solnbr is keyword-analyzed
        query["should"] = [{"match": {"solnbr": {"query": q, "boost": settings.solnbr_boost}}}]
    else:
        query["must"] = [{"match_all": {}}]

    body = {
        "query": {"bool": query},
        "sort": [{"_score": {"order": "desc"}}],
        "from": page_from,
        "size": page_size,
        "track_total_hits": True,
        "_source": build_source(fields),
    }

    return SearchRequest(body=body, offset=offset, limit=limit, fields=fields, filters=state)


def build_record_request(opp_id: str, params: Mapping[str, str]) -> SearchRequest:
    """Look up one opp by its composite id. Open/competed filters do not apply."""
    fields = parse_fields(params.get("fl"))
    body = {
        "query": {"ids": {"values": [opp_id]}},
        "from": 0,
        "size": 1,
        "_source": build_source(fields),
    }
    return SearchRequest(
        body=body,
        offset=0,
        limit=1,
        fields=fields,
        filters=FilterState(competed_only=False, open_only=False),
    )
