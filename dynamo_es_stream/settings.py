"""
Environment configuration for dynamo_es_stream.

Uses pydantic-settings so a deployed handler can be configured entirely
from ``DYNAMO_ES_*`` environment variables.
"""

from functools import lru_cache
from typing import Any, Optional

from elasticsearch import AsyncElasticsearch
from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from dynamo_es_stream.config import DEFAULT_SEPARATOR
from dynamo_es_stream.handler import StreamIndexHandler


def _split_paths(value: Optional[str]) -> str | list[str] | None:
    """``"a,b"`` becomes ``["a", "b"]``; a single path stays a string."""
    if not value:
        return None
    paths = [path.strip() for path in value.split(",") if path.strip()]
    if len(paths) == 1:
        return paths[0]
    return paths


class StreamIndexSettings(BaseSettings):
    """Deployment settings for a stream indexing handler."""

    model_config = SettingsConfigDict(
        env_prefix="DYNAMO_ES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Elasticsearch
    elasticsearch_url: str = Field(
        default="http://localhost:9200",
        description="Elasticsearch endpoint",
    )
    elasticsearch_api_key: SecretStr = Field(
        default=SecretStr(""),
        description="Elasticsearch API key (empty for none)",
    )
    bulk_refresh: Optional[str] = Field(
        default=None,
        description="refresh parameter passed to every bulk call",
    )

    # Document mapping, comma-separated for composite fields
    index: Optional[str] = None
    index_field: Optional[str] = None
    index_prefix: Optional[str] = None
    type: Optional[str] = None
    type_field: Optional[str] = None
    id_field: Optional[str] = None
    parent_field: Optional[str] = None
    version_field: Optional[str] = None
    pick_fields: Optional[str] = None
    separator: str = Field(default=DEFAULT_SEPARATOR)

    # Delivery
    retries: int = Field(
        default=0,
        description="Additional bulk attempts after a failure",
        ge=0,
        le=10,
    )

    def handler_options(self, client: Any, **hooks: Any) -> dict[str, Any]:
        """Build raw handler options around ``client`` and any hooks."""
        bulk: dict[str, Any] = {}
        if self.bulk_refresh:
            bulk["refresh"] = self.bulk_refresh

        options: dict[str, Any] = {
            "elasticsearch": {"client": client, "bulk": bulk},
            "index": self.index,
            "index_field": _split_paths(self.index_field),
            "index_prefix": self.index_prefix,
            "type": self.type,
            "type_field": _split_paths(self.type_field),
            "id_field": _split_paths(self.id_field),
            "parent_field": self.parent_field,
            "version_field": self.version_field,
            "pick_fields": _split_paths(self.pick_fields),
            "separator": self.separator,
            "retry_options": {"retries": self.retries},
        }
        options.update(hooks)
        return {key: value for key, value in options.items() if value is not None}


@lru_cache
def get_settings() -> StreamIndexSettings:
    """Get cached settings instance."""
    return StreamIndexSettings()


def create_client(settings: StreamIndexSettings) -> AsyncElasticsearch:
    """Build an async Elasticsearch client from settings."""
    api_key = settings.elasticsearch_api_key.get_secret_value()
    return AsyncElasticsearch(
        settings.elasticsearch_url,
        api_key=api_key or None,
    )


def create_handler_from_settings(
    settings: Optional[StreamIndexSettings] = None,
    client: Any = None,
    **hooks: Any,
) -> StreamIndexHandler:
    """
    Build a handler from environment settings.

    Args:
        settings: Settings to use (defaults to the cached environment settings)
        client: Pre-built Elasticsearch client (defaults to one from settings)
        **hooks: Extra handler options such as ``after_hook``

    Raises:
        ValidationError: If the combined options are invalid
    """
    settings = settings or get_settings()
    client = client if client is not None else create_client(settings)
    return StreamIndexHandler(settings.handler_options(client, **hooks))


__all__ = [
    "StreamIndexSettings",
    "create_client",
    "create_handler_from_settings",
    "get_settings",
]
