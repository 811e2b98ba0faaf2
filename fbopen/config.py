"""
Configuration settings loaded from environment variables.
Points the API at an Elasticsearch index and sets paging defaults.
"""

from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List, Optional


class Settings(BaseSettings):
    """
    Application settings.
    These are loaded from .env file automatically.
    """

    # Elasticsearch Configuration
    elasticsearch_host: str = "localhost"
    elasticsearch_port: int = 9200
    elasticsearch_index: str = "fbopen"
    elasticsearch_timeout: float = 10.0

    # Reference date for open/closed filtering (e.g. "2014-04-05").
    # When unset the engine's current day is used.
    elasticsearch_now: Optional[str] = None

    # Index layout
    attachment_type: str = "opp_attachment"
    search_fields: List[str] = [
        "title^2",
        "description",
        "agency",
        "office",
        "solnbr",
        "contact",
    ]
    solnbr_boost: float = 1000.0

    # Paging
    default_limit: int = 10
    max_limit: int = 1000
    # Elasticsearch index.max_result_window; from + size may not exceed it
    max_result_window: int = 10000

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def elasticsearch_url(self) -> str:
        host = self.elasticsearch_host
        if "://" not in host:
            host = f"http://{host}"
        return f"{host}:{self.elasticsearch_port}"


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings instance.
    lru_cache means we only create this once, then reuse it.
    """
    return Settings()
