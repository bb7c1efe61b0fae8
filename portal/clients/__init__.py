"""
Domain clients - read access to the news, events, services and research APIs.
"""

from portal.clients.base import DomainClient, DomainConfig
from portal.clients.domains import (
    DOMAINS,
    EVENTS,
    NEWS,
    RESEARCH,
    SERVICES,
    create_client,
    get_domain_config,
)
from portal.clients.models import (
    Category,
    ContentItem,
    Event,
    ListParams,
    NewsArticle,
    PagedResult,
    ResearchArticle,
    SearchParams,
    ServiceOffering,
)

__all__ = [
    "DomainClient",
    "DomainConfig",
    "DOMAINS",
    "NEWS",
    "EVENTS",
    "SERVICES",
    "RESEARCH",
    "create_client",
    "get_domain_config",
    "Category",
    "ContentItem",
    "Event",
    "ListParams",
    "NewsArticle",
    "PagedResult",
    "ResearchArticle",
    "SearchParams",
    "ServiceOffering",
]
