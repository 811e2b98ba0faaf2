"""
Result shaper: turns a raw Elasticsearch response into the public,
versioned JSON body.

v0 names the hit metadata `score` / `data_type`, v1 names it
`_score` / `_type`. Everything else is shared.
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Optional
import logging

from fbopen.services.errors import MalformedResponseError

logger = logging.getLogger(__name__)

DEFAULT_RECORD_TYPE = "opp"
TYPELESS = ("_doc", "doc", "")

INTERNAL_FIELDS = {"content"}


class ApiVersion(str, Enum):
    v0 = "v0"
    v1 = "v1"


# version -> (score key, type key)
FIELD_NAMES = {
    ApiVersion.v0: ("score", "data_type"),
    ApiVersion.v1: ("_score", "_type"),
}


def _hits_section(raw: Dict[str, Any]) -> Dict[str, Any]:
    hits = raw.get("hits") if isinstance(raw, dict) else None
    if not isinstance(hits, dict) or not isinstance(hits.get("hits"), list):
        raise MalformedResponseError("Engine response has no hits section")
    return hits


def total_hits(raw: Dict[str, Any]) -> int:
    """Total match count; engines report either an int or {"value": n}."""
    total = _hits_section(raw).get("total", 0)
    if isinstance(total, dict):
        total = total.get("value", 0)
    return int(total or 0)


def record_type(hit: Dict[str, Any]) -> str:
    hit_type = hit.get("_type") or ""
    return DEFAULT_RECORD_TYPE if hit_type in TYPELESS else hit_type


def clean_source(source: Dict[str, Any]) -> Dict[str, Any]:
    """Drop engine-internal keys and extracted attachment text."""
    cleaned = {}
    for key, value in source.items():
        if key.startswith("_") or key in INTERNAL_FIELDS:
            continue
        if key == "attachments" and isinstance(value, list):
            value = [
                {k: v for k, v in attachment.items() if k not in INTERNAL_FIELDS}
                if isinstance(attachment, dict) else attachment
                for attachment in value
            ]
        cleaned[key] = value
    return cleaned


def shape_doc(hit: Dict[str, Any], version: ApiVersion, fields: Optional[List[str]] = None) -> Dict[str, Any]:
    """
    Shape one hit into a public record.

    The whitelist is applied first, then the version-specific metadata
    names are added. The id is always present.
    """
    source = clean_source(hit.get("_source") or {})
    if fields:
        source = {k: v for k, v in source.items() if k in fields}

    score_key, type_key = FIELD_NAMES[version]
    score = hit.get("_score")

    doc = dict(source)
    doc["id"] = hit.get("_id")
    doc[score_key] = float(score) if score is not None else 0.0
    doc[type_key] = record_type(hit)
    return doc


def _shape_list(raw: Dict[str, Any], version: ApiVersion, fields: Optional[List[str]]) -> Dict[str, Any]:
    hits = _hits_section(raw)["hits"]
    return {
        "numFound": total_hits(raw),
        "docs": [shape_doc(hit, version, fields) for hit in hits],
    }


def shape_v0(raw: Dict[str, Any], fields: Optional[List[str]] = None) -> Dict[str, Any]:
    """v0 list body: {numFound, docs} with `score` / `data_type`."""
    return _shape_list(raw, ApiVersion.v0, fields)


def shape_v1(raw: Dict[str, Any], fields: Optional[List[str]] = None) -> Dict[str, Any]:
    """v1 list body: {numFound, docs} with `_score` / `_type`."""
    return _shape_list(raw, ApiVersion.v1, fields)


def shape_v1_record(raw: Dict[str, Any], fields: Optional[List[str]] = None) -> Optional[Dict[str, Any]]:
    """Flattened single v1 record, or None when nothing matched."""
    hits = _hits_section(raw)["hits"]
    if not hits:
        return None
    return shape_doc(hits[0], ApiVersion.v1, fields)


SHAPERS: Dict[ApiVersion, Callable[..., Dict[str, Any]]] = {
    ApiVersion.v0: shape_v0,
    ApiVersion.v1: shape_v1,
}
