"""
Cache policy - TTL table and cache key construction shared by every domain.

Keys have the shape ``<domain>:<operation>[:<discriminant>]``. The
discriminant is either an exact slug/id or the serialized parameter set.
"""

import json
from datetime import timedelta
from enum import Enum
from typing import Any

from pydantic import BaseModel


class ContentShape(str, Enum):
    """Shape of the content a call returns."""

    CATEGORIES = "categories"
    FEATURED = "featured"
    DETAIL = "detail"
    LIST = "list"
    SEARCH = "search"


# Staleness tolerance grows with how rarely the content changes
CACHE_TTL: dict[ContentShape, timedelta] = {
    ContentShape.CATEGORIES: timedelta(minutes=15),
    ContentShape.FEATURED: timedelta(minutes=5),
    ContentShape.DETAIL: timedelta(minutes=2),
    ContentShape.LIST: timedelta(seconds=30),
}


def is_cacheable(shape: ContentShape) -> bool:
    """Free-text search always goes to the API."""
    return shape in CACHE_TTL


def ttl_for(shape: ContentShape) -> timedelta:
    """TTL for a content shape. Raises KeyError for search."""
    return CACHE_TTL[shape]


def serialize_params(params: BaseModel | dict[str, Any] | None) -> str:
    """
    Serialize a parameter set for use as a key discriminant.

    Property order is kept as given, so two equal dicts built in a
    different order produce different strings. ``None`` values are dropped.
    """
    if params is None:
        return "{}"
    if isinstance(params, BaseModel):
        data = params.model_dump(by_alias=True, exclude_none=True)
    else:
        data = {k: v for k, v in params.items() if v is not None}
    return json.dumps(data, separators=(",", ":"), default=str)


class CacheKeys:
    """Cache key builders."""

    SEPARATOR = ":"

    @classmethod
    def build(
        cls,
        domain: str,
        operation: str,
        discriminant: str | int | None = None,
    ) -> str:
        if discriminant is None or discriminant == "":
            return f"{domain}{cls.SEPARATOR}{operation}"
        return f"{domain}{cls.SEPARATOR}{operation}{cls.SEPARATOR}{discriminant}"

    @classmethod
    def domain_prefix(cls, domain: str) -> str:
        """Prefix matching every key of a domain."""
        return f"{domain}{cls.SEPARATOR}"

    @classmethod
    def list_key(cls, domain: str, params: BaseModel | dict[str, Any] | None) -> str:
        return cls.build(domain, "list", serialize_params(params))

    @classmethod
    def detail_key(cls, domain: str, by: str, identifier: str) -> str:
        # by is "slug" or "id"
        return cls.build(domain, by, identifier)

    @classmethod
    def featured_key(cls, domain: str, limit: int | None = None) -> str:
        return cls.build(domain, "featured", limit)

    @classmethod
    def recent_key(cls, domain: str, limit: int | None = None) -> str:
        return cls.build(domain, "recent", limit)

    @classmethod
    def categories_key(cls, domain: str) -> str:
        return cls.build(domain, "categories")

    @classmethod
    def by_category_key(cls, domain: str, category: str) -> str:
        return cls.build(domain, "category", category)

    @classmethod
    def parse_key(cls, key: str) -> dict[str, str | None] | None:
        """
        Split a key back into its parts.

        The discriminant may itself contain the separator (serialized
        params), so only the first two separators are significant.
        """
        parts = key.split(cls.SEPARATOR, 2)
        if len(parts) < 2 or not parts[0] or not parts[1]:
            return None
        return {
            "domain": parts[0],
            "operation": parts[1],
            "discriminant": parts[2] if len(parts) == 3 else None,
        }
