"""
DomainStore - reactive state for one content domain.

One generic store type with fixed setter names, instantiated per domain.
State is plain attributes the view layer reads: ``loading``, ``error``,
``items``, ``total``, ``page``, ``page_size``, ``search_total`` and friends.
"""

import math
import time
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Generic, TypeVar

from loguru import logger
from pydantic import BaseModel

from portal.clients.base import DomainClient
from portal.clients.models import Category, ListParams, PagedResult, SearchParams
from portal.stores.coordinator import StoreOptions, run_action, run_cached_action

TItem = TypeVar("TItem", bound=BaseModel)
TCategory = TypeVar("TCategory", bound=BaseModel)


@dataclass
class StoreState:
    """Snapshot of what a store exposes to the view layer."""

    loading: bool = False
    error: str | None = None
    total: int = 0
    page: int = 1
    page_size: int = 10
    search_total: int = 0
    cache_key: str | None = None
    last_cache_time: float = 0.0
    items: list[Any] = field(default_factory=list)


class DomainStore(Generic[TItem, TCategory]):
    """
    Store for one content domain.

    Usage:
        store = create_store(news_client)

        await store.fetch_items({"page": 2, "pageSize": 10})
        if store.error:
            ...
        render(store.items, store.total)
    """

    def __init__(
        self,
        client: DomainClient[TItem],
        default_options: StoreOptions | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.client = client
        self.default_options = default_options or StoreOptions()
        self._clock = clock

        self.loading: bool = False
        self.error: str | None = None
        self.total: int = 0
        self.page: int = 1
        self.page_size: int = 10
        self.search_total: int = 0

        self.items: list[TItem] = []
        self.categories: list[TCategory] = []
        self.featured: list[TItem] = []
        self.search_results: list[TItem] = []
        self.current: TItem | None = None

        # Store-level cache: "already ran these exact params recently"
        self.cache_key: str | None = None
        self.last_cache_time: float = 0.0

        self._slug_generation = 0

    @property
    def domain(self) -> str:
        return self.client.domain

    # Setters

    def set_items(self, items: list[TItem], total: int) -> None:
        self.items = items
        self.total = total

    def set_categories(self, categories: list[TCategory]) -> None:
        self.categories = categories

    def set_featured(self, featured: list[TItem]) -> None:
        self.featured = featured

    def set_search_results(self, results: list[TItem], total: int) -> None:
        self.search_results = results
        self.search_total = total

    def set_current(self, item: TItem | None) -> None:
        self.current = item

    def set_cache_data(self, key: str) -> None:
        self.cache_key = key
        self.last_cache_time = self._clock()

    def clear_cache_data(self) -> None:
        self.cache_key = None
        self.last_cache_time = 0.0

    def is_cache_valid(self, key: str, ttl: timedelta) -> bool:
        if self.cache_key is None or self.cache_key != key:
            return False
        return self._clock() - self.last_cache_time < ttl.total_seconds()

    def snapshot(self) -> StoreState:
        return StoreState(
            loading=self.loading,
            error=self.error,
            total=self.total,
            page=self.page,
            page_size=self.page_size,
            search_total=self.search_total,
            cache_key=self.cache_key,
            last_cache_time=self.last_cache_time,
            items=list(self.items),
        )

    # Derived state

    @property
    def total_pages(self) -> int:
        if self.total <= 0 or self.page_size <= 0:
            return 0
        return math.ceil(self.total / self.page_size)

    @property
    def has_items(self) -> bool:
        return len(self.items) > 0

    @property
    def recent_items(self) -> list[TItem]:
        """Loaded items, newest first by the domain's date field."""
        date_field = self.client.config.date_field
        if date_field is None:
            return list(self.items)
        dated = [item for item in self.items if getattr(item, date_field, None)]
        undated = [item for item in self.items if not getattr(item, date_field, None)]
        dated.sort(key=lambda item: getattr(item, date_field), reverse=True)
        return dated + undated

    def items_by_category(self) -> dict[Any, list[TItem]]:
        grouped: dict[Any, list[TItem]] = {}
        for item in self.items:
            grouped.setdefault(getattr(item, "category_id", None), []).append(item)
        return grouped

    def clear_search_results(self) -> None:
        self.set_search_results([], 0)

    # Actions

    async def fetch_items(
        self,
        params: ListParams | dict[str, Any] | None = None,
        options: StoreOptions | None = None,
    ) -> None:
        """Load a page of items, skipping the call if it was just made."""

        def on_success(result: PagedResult[TItem]) -> None:
            query = ListParams.coerce(params)
            self.set_items(result.items, result.total)
            self.page = query.page
            self.page_size = query.page_size

        await run_cached_action(
            self,
            params,
            options or self.default_options,
            lambda: self.client.get_list(params),
            on_success,
            self.set_items,
            f"Failed to load {self.domain}",
        )

    async def fetch_item_by_slug(self, slug: str) -> TItem | None:
        """
        Load one item into ``current``.

        A response for a slug that has since been superseded by a newer
        request is dropped: it touches neither ``current`` nor the
        ``loading``/``error`` flags of the newer request.
        """
        self._slug_generation += 1
        generation = self._slug_generation

        item = await run_action(
            self,
            lambda: self.client.get_by_slug(slug),
            f"Failed to load {self.domain} item",
            is_current=lambda: generation == self._slug_generation,
        )
        if generation != self._slug_generation:
            logger.debug(f"Dropping superseded {self.domain} response for '{slug}'")
            return item
        self.set_current(item)
        return item

    async def fetch_featured(self, limit: int | None = None) -> None:
        featured = await run_action(
            self,
            lambda: self.client.get_featured(limit),
            f"Failed to load featured {self.domain}",
        )
        if featured is not None:
            self.set_featured(featured)

    async def search(self, params: SearchParams | dict[str, Any] | str) -> None:
        result = await run_action(
            self,
            lambda: self.client.search(params),
            f"Failed to search {self.domain}",
        )
        if result is not None:
            self.set_search_results(result.items, result.total)
        else:
            self.set_search_results([], 0)

    async def fetch_categories(self) -> None:
        categories = await run_action(
            self,
            self.client.get_categories,
            f"Failed to load {self.domain} categories",
        )
        if categories is not None:
            self.set_categories(categories)

    def invalidate_cache(self) -> None:
        """Forget both cache tiers for this domain."""
        self.clear_cache_data()
        removed = self.client.invalidate_all()
        logger.debug(f"Invalidated {self.domain} store cache ({removed} cached reads)")


def create_store(
    client: DomainClient[TItem],
    options: StoreOptions | None = None,
) -> DomainStore[TItem, Category]:
    """Store for the client's domain."""
    return DomainStore(client, options)
