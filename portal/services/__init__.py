"""
Service layer infrastructure - cached, deduplicated reads of the content API.

Provides:
- RequestCache: TTL cache with in-flight deduplication and metrics
- RequestDeduplicator: Prevents duplicate concurrent requests
- CacheKeys / CACHE_TTL: Key construction and TTL policy
- HttpTransport: httpx transport with retries
"""

from portal.services.errors import (
    ServiceError,
    NetworkError,
    HttpStatusError,
    ParseError,
    ValidationError,
    RequestCancelledError,
)
from portal.services.cache import CacheEntry, CacheStats, RequestCache, RequestMetrics
from portal.services.deduplicator import RequestDeduplicator, make_signature
from portal.services.policy import CACHE_TTL, CacheKeys, ContentShape, ttl_for
from portal.services.transport import HttpTransport, Transport

__all__ = [
    # Errors
    "ServiceError",
    "NetworkError",
    "HttpStatusError",
    "ParseError",
    "ValidationError",
    "RequestCancelledError",
    # Cache
    "CacheEntry",
    "CacheStats",
    "RequestCache",
    "RequestMetrics",
    # Deduplicator
    "RequestDeduplicator",
    "make_signature",
    # Policy
    "CACHE_TTL",
    "CacheKeys",
    "ContentShape",
    "ttl_for",
    # Transport
    "HttpTransport",
    "Transport",
]
