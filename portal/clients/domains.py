"""
Endpoint layouts of the four content domains.
"""

from typing import Any

from portal.clients.base import DomainClient, DomainConfig
from portal.clients.models import Event, NewsArticle, ResearchArticle, ServiceOffering
from portal.services.transport import Transport

NEWS = DomainConfig(
    domain="news",
    items_key="news",
    item_key="news",
    featured_key="featured_news",
    item_model=NewsArticle,
    date_field="published_at",
)

EVENTS = DomainConfig(
    domain="events",
    items_key="events",
    item_key="event",
    featured_key="featured_event",
    item_model=Event,
    date_field="start_date",
)

SERVICES = DomainConfig(
    domain="services",
    items_key="services",
    item_key="service",
    featured_key="services",
    item_model=ServiceOffering,
    featured_path="published",
)

RESEARCH = DomainConfig(
    domain="research",
    items_key="research",
    item_key="research",
    featured_key="featured_research",
    item_model=ResearchArticle,
    date_field="publication_date",
)

DOMAINS: dict[str, DomainConfig[Any]] = {
    config.domain: config for config in (NEWS, EVENTS, SERVICES, RESEARCH)
}


def get_domain_config(domain: str) -> DomainConfig[Any]:
    try:
        return DOMAINS[domain]
    except KeyError:
        raise ValueError(
            f"Unknown content domain '{domain}' (expected one of {sorted(DOMAINS)})"
        ) from None


async def create_client(domain: str, transport: Transport, **kwargs: Any) -> DomainClient[Any]:
    """Build a client with a running cache for one domain."""
    return await DomainClient.create(get_domain_config(domain), transport, **kwargs)
