import os
import re
from datetime import date

import pytest

# Fixture records are dated around this day
NOW = "2014-04-05"
os.environ["ELASTICSEARCH_NOW"] = NOW
os.environ["ELASTICSEARCH_INDEX"] = "fbopen_api_test"

from fastapi.testclient import TestClient

from fbopen.config import get_settings
from fbopen.main import app
from fbopen.models.search_engine import get_engine
from fbopen.services.errors import EngineError, EngineUnavailableError

get_settings.cache_clear()

EXACT_ID = "fbo.gov:COMBINE:fa8571-14-r-0008"
EXACT_SOLNBR = "fa8571-14-r-0008"
FIRST_SOLNBR = "ag-0355-s-14-0006"
SECOND_SOLNBR = "DHS-14-MT-041-000-01"

TOKEN_RE = re.compile(r"[a-z0-9]+")


def tokens(text):
    return TOKEN_RE.findall(str(text).lower())


def _opp(i):
    """
    Build fixture opp number i.

    0-358 competed/open, 359-388 competed/closed,
    389-406 noncompeted/open, 407-408 noncompeted/closed.
    0-23 come from bids.state.gov, 24-209 from fbo.gov.
    """
    if i < 24:
        source = "bids.state.gov"
    elif i < 210:
        source = "fbo.gov"
    else:
        source = "grants.gov"

    closed = 359 <= i < 389 or i >= 407
    noncompeted = i >= 389

    solnbr = f"sol-{i:04d}"
    if i == 0:
        solnbr = FIRST_SOLNBR
    elif i == 1:
        solnbr = SECOND_SOLNBR

    doc = {
        "solnbr": solnbr,
        "data_source": source,
        "agency": f"Agency {i % 7}",
        "title": f"Opportunity number {i}",
        "description": f"General supplies and services, lot {i}",
        "contact": f"officer{i}@example.gov",
        "posted_dt": "2014-01-15",
        "attachments": [{"filename": f"sow-{i}.pdf", "content": "statement of work text"}],
        "content": "raw extracted text",
    }

    # some open opps carry no close date at all
    if closed:
        doc["close_dt"] = "2014-03-01"
    elif i % 50 != 7:
        doc["close_dt"] = "2014-05-01"

    # missing flag means competed
    if noncompeted:
        doc["noncompeted"] = True
    elif i % 3:
        doc["noncompeted"] = False

    opp_id = f"{source}:PRESOL:{solnbr}"

    if i == 30:
        opp_id = EXACT_ID
        doc["solnbr"] = EXACT_SOLNBR
        doc["description"] = "Air Force base safety inspection services"
    elif 31 <= i <= 35:
        doc["description"] = "Amendment to fa8571-14-r-0008, see fa8571-14-r-0008 for details"
    elif i in (40, 41, 42):
        doc["description"] = "Air Force computer maintenance"
    elif i in (50, 51):
        doc["description"] = "Desktop computer procurement"
    elif i == 395:
        doc["description"] = "Sole source computer license renewal"

    return opp_id, doc


def make_opps():
    return [_opp(i) for i in range(409)]


class FakeEngine:
    """
    In-memory stand-in for Elasticsearch.

    Understands the query DSL subset the query builder emits. solnbr is
    keyword-analyzed (lowercased whole value); every other field is split
    into lowercase alphanumeric tokens. Equal scores keep insertion order.
    """

    KEYWORD_FIELDS = ("solnbr",)
    MAX_RESULT_WINDOW = 10000

    def __init__(self, opps=None, index_name="fbopen_api_test"):
        self.opps = list(opps if opps is not None else make_opps())
        self.index_name = index_name
        self.calls = []

    async def search(self, body):
        self.calls.append(body)
        if body.get("from", 0) + body.get("size", 10) > self.MAX_RESULT_WINDOW:
            raise EngineError("Search engine error: Result window is too large")

        scored = []
        for position, (opp_id, doc) in enumerate(self.opps):
            score = self._evaluate(body["query"], opp_id, doc)
            if score is not None:
                scored.append((score, position, opp_id, doc))
        scored.sort(key=lambda item: (-item[0], item[1]))

        start = body.get("from", 0)
        size = body.get("size", 10)
        hits = [
            {
                "_index": self.index_name,
                "_id": opp_id,
                "_score": score,
                "_source": self._project(doc, body.get("_source")),
            }
            for score, _, opp_id, doc in scored[start:start + size]
        ]
        return {
            "took": 1,
            "timed_out": False,
            "hits": {
                "total": {"value": len(scored), "relation": "eq"},
                "max_score": scored[0][0] if scored else None,
                "hits": hits,
            },
        }

    async def ping(self):
        return True

    async def close(self):
        pass

    def _project(self, doc, source):
        source = source or {}
        projected = dict(doc)
        for field in source.get("excludes", []):
            if "." in field:
                parent, child = field.split(".", 1)
                if isinstance(projected.get(parent), list):
                    projected[parent] = [
                        {k: v for k, v in item.items() if k != child} for item in projected[parent]
                    ]
            else:
                projected.pop(field, None)
        if source.get("includes"):
            projected = {k: v for k, v in projected.items() if k in source["includes"]}
        return projected

    def _text_score(self, query, fields, doc):
        phrases = re.findall(r'"([^"]*)"', query)
        if phrases:
            wanted = [tokens(phrase) for phrase in phrases]
        else:
            wanted = [[token] for token in tokens(query)]

        score = 0.0
        for field in fields:
            name = field.split("^", 1)[0]
            if name not in doc:
                continue
            haystack = tokens(doc[name])
            for phrase in wanted:
                width = len(phrase)
                if not width:
                    continue
                score += sum(
                    1 for k in range(len(haystack) - width + 1) if haystack[k:k + width] == phrase
                )
        return score

    def _evaluate(self, clause, opp_id, doc):
        """Score for a matching clause, None when the doc doesn't match."""
        kind, args = next(iter(clause.items()))

        if kind == "match_all":
            return 1.0

        if kind == "ids":
            return 1.0 if opp_id in args["values"] else None

        if kind == "term":
            field, expected = next(iter(args.items()))
            boost = 1.0
            case_insensitive = False
            if isinstance(expected, dict):
                boost = expected.get("boost", 1.0)
                case_insensitive = expected.get("case_insensitive", False)
                expected = expected["value"]
            if field not in doc:
                return None
            actual = doc[field]
            if case_insensitive and isinstance(actual, str):
                return boost if actual.lower() == str(expected).lower() else None
            return boost if actual == expected else None

        if kind == "exists":
            return 1.0 if doc.get(args["field"]) is not None else None

        if kind == "range":
            field, bounds = next(iter(args.items()))
            if doc.get(field) is None:
                return None
            gte = bounds["gte"]
            if gte == "now/d":
                gte = date.today().isoformat()
            return 1.0 if str(doc[field]) >= gte else None

        if kind == "match":
            field, options = next(iter(args.items()))
            if isinstance(options, dict):
                query, boost = options["query"], options.get("boost", 1.0)
            else:
                query, boost = options, 1.0
            if field not in doc:
                return None
            if field in self.KEYWORD_FIELDS:
                return boost if str(doc[field]).lower() == query.lower() else None
            score = self._text_score(query, [field], doc)
            return score * boost if score else None

        if kind == "simple_query_string":
            score = self._text_score(args["query"], args.get("fields", list(doc)), doc)
            return score if score else None

        if kind == "has_child":
            # fixture opps carry no child documents
            return None

        if kind == "bool":
            return self._evaluate_bool(args, opp_id, doc)

        raise AssertionError(f"FakeEngine does not understand {kind!r}")

    def _evaluate_bool(self, args, opp_id, doc):
        score = 0.0
        for clause in args.get("must", []):
            result = self._evaluate(clause, opp_id, doc)
            if result is None:
                return None
            score += result
        for clause in args.get("filter", []):
            if self._evaluate(clause, opp_id, doc) is None:
                return None
        for clause in args.get("must_not", []):
            if self._evaluate(clause, opp_id, doc) is not None:
                return None

        should = args.get("should", [])
        default_minimum = 0 if (args.get("must") or args.get("filter")) else 1
        minimum = args.get("minimum_should_match", default_minimum if should else 0)
        matched = 0
        for clause in should:
            result = self._evaluate(clause, opp_id, doc)
            if result is not None:
                matched += 1
                score += result
        if matched < minimum:
            return None
        return score


class DownEngine(FakeEngine):
    """Engine that is never reachable."""

    async def search(self, body):
        self.calls.append(body)
        raise EngineUnavailableError("Search engine unavailable")

    async def ping(self):
        return False


class BrokenEngine(FakeEngine):
    """Engine that answers every search with an error."""

    async def search(self, body):
        self.calls.append(body)
        raise EngineError("Search engine error: search_phase_execution_exception")


class MalformedEngine(FakeEngine):
    """Engine that answers with a body carrying no hits."""

    async def search(self, body):
        self.calls.append(body)
        return {}


@pytest.fixture
def settings():
    return get_settings()


@pytest.fixture
def fake_engine():
    return FakeEngine()


@pytest.fixture
def client(fake_engine):
    app.dependency_overrides[get_engine] = lambda: fake_engine
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def down_client():
    engine = DownEngine(opps=[])
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app), engine
    app.dependency_overrides.clear()


@pytest.fixture(params=[BrokenEngine, MalformedEngine], ids=["error", "malformed"])
def failing_client(request):
    engine = request.param(opps=[])
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app), engine
    app.dependency_overrides.clear()
