"""
Search engine connection using the async Elasticsearch client.
One shared client per process; requests never retry on their own.
"""

from typing import Any, Dict, Optional
import logging

from elasticsearch import AsyncElasticsearch, ApiError, ConnectionError, ConnectionTimeout

from fbopen.config import get_settings
from fbopen.services.errors import EngineError, EngineUnavailableError

logger = logging.getLogger(__name__)

settings = get_settings()


class SearchEngine:
    """
    Thin wrapper around AsyncElasticsearch bound to one index.

    Translates client exceptions into EngineError so callers never
    see transport-specific types.
    """

    def __init__(self, client: Any, index_name: str):
        self._client = client
        self._index_name = index_name

    @property
    def index_name(self) -> str:
        return self._index_name

    async def search(self, body: Dict[str, Any]) -> Dict[str, Any]:
        """
        Run one search against the index.

        Args:
            body: Elasticsearch request body

        Returns:
            Raw engine response as a plain dict
        """
        try:
            response = await self._client.search(index=self._index_name, body=body)
        except ConnectionTimeout as e:
            logger.error(f"Search timed out on index '{self._index_name}': {e}")
            raise EngineUnavailableError("Search engine timed out") from e
        except ConnectionError as e:
            logger.error(f"Search engine unreachable: {e}")
            raise EngineUnavailableError("Search engine unavailable") from e
        except ApiError as e:
            logger.error(f"Search failed on index '{self._index_name}': {e}")
            raise EngineError(f"Search engine error: {e}") from e

        return getattr(response, "body", response)

    async def ping(self) -> bool:
        try:
            return bool(await self._client.ping())
        except (ConnectionError, ConnectionTimeout) as e:
            logger.warning(f"Engine ping failed: {e}")
            return False

    async def close(self) -> None:
        await self._client.close()
        logger.info("Elasticsearch client closed")


def create_engine(url: Optional[str] = None, index_name: Optional[str] = None) -> SearchEngine:
    client = AsyncElasticsearch(
        url or settings.elasticsearch_url,
        request_timeout=settings.elasticsearch_timeout,
        max_retries=0,
        retry_on_timeout=False,
    )
    return SearchEngine(client, index_name or settings.elasticsearch_index)


# Shared engine (connections are opened lazily on first request)
engine = create_engine()


def get_engine() -> SearchEngine:
    """
    FastAPI dependency returning the shared engine.
    Overridden in tests with an in-memory engine.
    """
    return engine
