"""
Domain client - the fixed read operations every content domain exposes.

Each operation maps onto one REST path under ``/api/v1/<domain>`` and is
routed through the domain's RequestCache with the TTL for its content
shape. Free-text search always goes straight to the transport.
"""

from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Generic, TypeVar

import pydantic
from loguru import logger
from pydantic import BaseModel

from portal.clients.models import Category, ListParams, PagedResult, SearchParams
from portal.services.cache import DEFAULT_SWEEP_INTERVAL, RequestCache
from portal.services.errors import ParseError, ValidationError
from portal.services.policy import CacheKeys, ContentShape, ttl_for
from portal.services.transport import Transport

T = TypeVar("T", bound=BaseModel)


@dataclass(frozen=True)
class DomainConfig(Generic[T]):
    """Endpoint layout and response keys of one content domain."""

    domain: str
    items_key: str
    item_key: str
    featured_key: str
    item_model: type[T]
    featured_path: str = "featured"
    date_field: str | None = None

    @property
    def base_path(self) -> str:
        return f"/api/v1/{self.domain}"


class DomainClient(Generic[T]):
    """
    Read client for one content domain.

    Usage:
        client = await DomainClient.create(NEWS, transport)

        page = await client.get_list({"page": 1, "pageSize": 10})
        article = await client.get_by_slug("budget-2025")

        await client.dispose()
    """

    def __init__(
        self,
        config: DomainConfig[T],
        transport: Transport,
        cache: RequestCache | None = None,
    ):
        self.config = config
        self.transport = transport
        self._owns_cache = cache is None
        self.cache = cache or RequestCache()

    @classmethod
    async def create(
        cls,
        config: DomainConfig[T],
        transport: Transport,
        sweep_interval: timedelta = DEFAULT_SWEEP_INTERVAL,
        debug: bool = False,
    ) -> "DomainClient[T]":
        """Build a client with its own running cache."""
        cache = await RequestCache.create(sweep_interval=sweep_interval, debug=debug)
        client = cls(config, transport, cache)
        client._owns_cache = True
        logger.debug(f"Created {config.domain} client")
        return client

    async def dispose(self) -> None:
        """Release the cache this client owns."""
        if self._owns_cache:
            await self.cache.dispose()
        logger.debug(f"Disposed {self.domain} client")

    @property
    def domain(self) -> str:
        return self.config.domain

    # Operations

    async def get_list(
        self, params: ListParams | dict[str, Any] | None = None
    ) -> PagedResult[T]:
        """Paged, filtered collection."""
        query = _as_list_params(params)
        return await self._cached(
            self.config.base_path,
            query.to_query(),
            CacheKeys.list_key(self.domain, params if params is not None else query),
            ContentShape.LIST,
            self._parse_page,
        )

    async def get_by_slug(self, slug: str) -> T:
        _require(slug, "slug", self.domain)
        return await self._cached(
            f"{self.config.base_path}/slug/{slug}",
            None,
            CacheKeys.detail_key(self.domain, "slug", slug),
            ContentShape.DETAIL,
            self._parse_item,
        )

    async def get_by_id(self, item_id: str | int) -> T:
        _require(item_id, "id", self.domain)
        return await self._cached(
            f"{self.config.base_path}/{item_id}",
            None,
            CacheKeys.detail_key(self.domain, "id", str(item_id)),
            ContentShape.DETAIL,
            self._parse_item,
        )

    async def get_featured(self, limit: int | None = None) -> list[T]:
        return await self._cached(
            f"{self.config.base_path}/{self.config.featured_path}",
            {"limit": limit} if limit is not None else None,
            CacheKeys.featured_key(self.domain, limit),
            ContentShape.FEATURED,
            self._parse_featured,
        )

    async def get_categories(self) -> list[Category]:
        return await self._cached(
            f"{self.config.base_path}/categories",
            None,
            CacheKeys.categories_key(self.domain),
            ContentShape.CATEGORIES,
            _parse_categories,
        )

    async def get_recent(self, limit: int | None = None) -> list[T]:
        """Newest items: first page of the list endpoint."""
        query = _as_list_params({"page": 1, "pageSize": limit} if limit else {"page": 1})
        return await self._cached(
            self.config.base_path,
            query.to_query(),
            CacheKeys.recent_key(self.domain, limit),
            ContentShape.LIST,
            lambda body: self._parse_page(body).items,
        )

    async def get_by_category(self, category: str) -> PagedResult[T]:
        _require(category, "category", self.domain)
        return await self._cached(
            f"{self.config.base_path}/categories/{category}/{self.domain}",
            None,
            CacheKeys.by_category_key(self.domain, category),
            ContentShape.LIST,
            self._parse_page,
        )

    async def search(self, params: SearchParams | dict[str, Any] | str) -> PagedResult[T]:
        """Free-text search. Never cached: results must be current."""
        if isinstance(params, SearchParams):
            query = params
        else:
            try:
                query = SearchParams.model_validate(
                    {"q": params} if isinstance(params, str) else params
                )
            except pydantic.ValidationError as e:
                raise ValidationError(f"Invalid search parameters: {e}") from e
        body = await self.transport.request(
            f"{self.config.base_path}/search", query.to_query()
        )
        return self._parse_page(body)

    def invalidate_all(self) -> int:
        """Drop every cached read of this domain."""
        return self.cache.invalidate_by_prefix(CacheKeys.domain_prefix(self.domain))

    # Helpers

    async def _cached(
        self,
        endpoint: str,
        params: dict[str, Any] | None,
        cache_key: str,
        shape: ContentShape,
        parse: Callable[[Any], Any],
    ) -> Any:
        return await self.cache.read_through(
            self.transport, endpoint, params, cache_key, ttl_for(shape), parse=parse
        )

    def _parse_page(self, body: Any) -> PagedResult[T]:
        items = _field(body, self.config.items_key, self.domain)
        if not isinstance(items, list):
            raise ParseError(
                f"Expected a list under '{self.config.items_key}'",
                service_id=self.domain,
            )
        parsed = _validate_list(self.config.item_model, items, self.domain)
        return PagedResult[self.config.item_model](
            items=parsed,
            total=body.get("count", len(parsed)),
            correlation_id=body.get("correlation_id"),
        )

    def _parse_item(self, body: Any) -> T:
        item = _field(body, self.config.item_key, self.domain)
        return _validate(self.config.item_model, item, self.domain)

    def _parse_featured(self, body: Any) -> list[T]:
        # Some domains answer with a single featured item, some with a list
        featured = _field(body, self.config.featured_key, self.domain)
        if featured is None:
            return []
        if isinstance(featured, list):
            return _validate_list(self.config.item_model, featured, self.domain)
        return [_validate(self.config.item_model, featured, self.domain)]


def _as_list_params(params: ListParams | dict[str, Any] | None) -> ListParams:
    try:
        return ListParams.coerce(params)
    except pydantic.ValidationError as e:
        raise ValidationError(f"Invalid list parameters: {e}") from e


def _require(value: Any, name: str, domain: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(f"{domain}: {name} is required", service_id=domain)


def _field(body: Any, key: str, domain: str) -> Any:
    if not isinstance(body, dict) or key not in body:
        raise ParseError(f"Response has no '{key}' field", service_id=domain)
    return body[key]


def _validate(model: type[T], data: Any, domain: str) -> T:
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        raise ParseError(f"Malformed {domain} item: {e}", service_id=domain) from e


def _validate_list(model: type[T], data: list[Any], domain: str) -> list[T]:
    return [_validate(model, item, domain) for item in data]


def _parse_categories(body: Any) -> list[Category]:
    categories = _field(body, "categories", "categories")
    if not isinstance(categories, list):
        raise ParseError("Expected a list under 'categories'")
    return _validate_list(Category, categories, "categories")
