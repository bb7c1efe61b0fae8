"""Tests for the domain store and its actions end to end."""

import asyncio

import pytest

from portal.clients import NEWS, DomainClient, NewsArticle
from portal.services.errors import HttpStatusError
from portal.stores import DomainStore, StoreOptions, create_store
from tests.conftest import FakeTimer, FakeTransport, news_item, news_page

LIST = "/api/v1/news"


@pytest.fixture
def client(transport: FakeTransport) -> DomainClient:
    return DomainClient(NEWS, transport)


@pytest.fixture
def store(client: DomainClient, timer: FakeTimer) -> DomainStore:
    return DomainStore(client, clock=timer)


class TestFetchItems:
    async def test_populates_state(self, store: DomainStore, transport: FakeTransport) -> None:
        transport.responses[LIST] = news_page("a", "b", count=7)

        await store.fetch_items({"page": 2, "pageSize": 2})

        assert [item.slug for item in store.items] == ["a", "b"]
        assert store.total == 7
        assert store.page == 2
        assert store.page_size == 2
        assert store.loading is False
        assert store.error is None

    async def test_repeat_within_ttl_hits_transport_once(
        self, store: DomainStore, transport: FakeTransport, timer: FakeTimer
    ) -> None:
        transport.responses[LIST] = news_page("a")
        params = {"page": 1, "pageSize": 10}

        await store.fetch_items(params, StoreOptions(use_cache=True))
        first = store.items
        timer.advance(5)
        await store.fetch_items(params, StoreOptions(use_cache=True))

        assert transport.calls_to(LIST) == 1
        assert store.items is first

    async def test_invalidate_cache_forces_refetch(
        self, store: DomainStore, transport: FakeTransport
    ) -> None:
        transport.responses[LIST] = news_page("a")
        params = {"page": 1, "pageSize": 10}

        await store.fetch_items(params)
        store.invalidate_cache()
        await store.fetch_items(params)

        assert transport.calls_to(LIST) == 2
        assert store.cache_key is not None

    async def test_invalidate_clears_store_cache_state(self, store: DomainStore, transport: FakeTransport) -> None:
        transport.responses[LIST] = news_page("a")
        await store.fetch_items()

        store.invalidate_cache()

        assert store.cache_key is None
        assert store.last_cache_time == 0

    async def test_failure_resets_items(self, store: DomainStore, transport: FakeTransport) -> None:
        transport.responses[LIST] = news_page("a")
        await store.fetch_items({"page": 1})
        transport.responses[LIST] = HttpStatusError("server error", status_code=500)

        await store.fetch_items({"page": 2})

        assert store.items == []
        assert store.total == 0
        assert store.error == "server error"
        assert store.loading is False

    async def test_invalid_params_become_store_error(self, store: DomainStore, transport: FakeTransport) -> None:
        await store.fetch_items({"page": -1})

        assert store.error is not None
        assert transport.calls == []


class TestFetchItemBySlug:
    async def test_sets_current(self, store: DomainStore, transport: FakeTransport) -> None:
        transport.responses["/api/v1/news/slug/budget"] = news_item("budget")

        item = await store.fetch_item_by_slug("budget")

        assert item is store.current
        assert store.current.slug == "budget"

    async def test_missing_slug(
        self, store: DomainStore, client: DomainClient, transport: FakeTransport
    ) -> None:
        transport.responses["/api/v1/news/slug/missing"] = HttpStatusError(
            "news not found", status_code=404
        )

        assert await store.fetch_item_by_slug("missing") is None

        assert store.error == "news not found"
        assert store.loading is False
        assert not client.cache.has("news:slug:missing")

    async def test_empty_slug_is_an_error_not_an_exception(
        self, store: DomainStore, transport: FakeTransport
    ) -> None:
        assert await store.fetch_item_by_slug("") is None
        assert "slug is required" in store.error
        assert transport.calls == []

    async def test_superseded_response_is_dropped(
        self, store: DomainStore, transport: FakeTransport
    ) -> None:
        transport.responses["/api/v1/news/slug/old"] = news_item("old")
        transport.responses["/api/v1/news/slug/new"] = news_item("new")
        old_gate = transport.gate("/api/v1/news/slug/old")

        old = asyncio.create_task(store.fetch_item_by_slug("old"))
        await asyncio.sleep(0)
        await store.fetch_item_by_slug("new")
        old_gate.set()
        await old

        assert store.current.slug == "new"

    async def test_late_failure_of_superseded_slug_is_ignored(
        self, store: DomainStore, transport: FakeTransport
    ) -> None:
        transport.responses["/api/v1/news/slug/old"] = HttpStatusError(
            "old not found", status_code=404
        )
        transport.responses["/api/v1/news/slug/new"] = news_item("new")
        old_gate = transport.gate("/api/v1/news/slug/old")

        old = asyncio.create_task(store.fetch_item_by_slug("old"))
        await asyncio.sleep(0)
        await store.fetch_item_by_slug("new")
        old_gate.set()
        await old

        assert store.current.slug == "new"
        assert store.error is None
        assert store.loading is False

    async def test_superseded_success_keeps_newer_request_loading(
        self, store: DomainStore, transport: FakeTransport
    ) -> None:
        transport.responses["/api/v1/news/slug/old"] = news_item("old")
        transport.responses["/api/v1/news/slug/new"] = news_item("new")
        old_gate = transport.gate("/api/v1/news/slug/old")
        new_gate = transport.gate("/api/v1/news/slug/new")

        old = asyncio.create_task(store.fetch_item_by_slug("old"))
        await asyncio.sleep(0)
        new = asyncio.create_task(store.fetch_item_by_slug("new"))
        await asyncio.sleep(0)
        old_gate.set()
        await old

        assert store.loading is True
        assert store.current is None

        new_gate.set()
        await new

        assert store.loading is False
        assert store.current.slug == "new"


class TestOtherActions:
    async def test_fetch_featured(self, store: DomainStore, transport: FakeTransport) -> None:
        transport.responses["/api/v1/news/featured"] = {"featured_news": [{"slug": "a"}]}

        await store.fetch_featured(3)

        assert [item.slug for item in store.featured] == ["a"]

    async def test_fetch_categories(self, store: DomainStore, transport: FakeTransport) -> None:
        transport.responses["/api/v1/news/categories"] = {"categories": [{"name": "Policy"}]}

        await store.fetch_categories()

        assert [category.name for category in store.categories] == ["Policy"]

    async def test_search(self, store: DomainStore, transport: FakeTransport) -> None:
        transport.responses["/api/v1/news/search"] = news_page("a", "b", count=9)

        await store.search("budget")

        assert len(store.search_results) == 2
        assert store.search_total == 9

    async def test_failed_search_clears_results(
        self, store: DomainStore, transport: FakeTransport
    ) -> None:
        transport.responses["/api/v1/news/search"] = news_page("a")
        await store.search("budget")
        transport.responses["/api/v1/news/search"] = HttpStatusError(
            "slow down", status_code=429
        )

        await store.search("budget")

        assert store.search_results == []
        assert store.search_total == 0
        assert store.error == "slow down"

    async def test_failed_featured_keeps_previous(
        self, store: DomainStore, transport: FakeTransport
    ) -> None:
        transport.responses["/api/v1/news/featured"] = {"featured_news": [{"slug": "a"}]}
        await store.fetch_featured()
        store.invalidate_cache()
        transport.responses["/api/v1/news/featured"] = HttpStatusError("boom", status_code=500)

        await store.fetch_featured()

        assert [item.slug for item in store.featured] == ["a"]
        assert store.error == "boom"


class TestCreateStore:
    def test_stores_are_independent(self, client: DomainClient) -> None:
        first = create_store(client)
        second = create_store(client)
        first.set_cache_data("key")

        assert second.cache_key is None
        assert first.snapshot().cache_key == "key"


class TestDerivedState:
    def test_total_pages(self, store: DomainStore) -> None:
        assert store.total_pages == 0

        store.total, store.page_size = 25, 10
        assert store.total_pages == 3

        store.total, store.page_size = 15, 5
        assert store.total_pages == 3

    def test_has_items(self, store: DomainStore) -> None:
        assert not store.has_items

        store.set_items([NewsArticle(slug="a")], 1)

        assert store.has_items

    def test_items_by_category(self, store: DomainStore) -> None:
        store.set_items(
            [
                NewsArticle(slug="a", category_id="cat-1"),
                NewsArticle(slug="b", category_id="cat-2"),
                NewsArticle(slug="c", category_id="cat-1"),
            ],
            3,
        )

        grouped = store.items_by_category()

        assert [item.slug for item in grouped["cat-1"]] == ["a", "c"]
        assert [item.slug for item in grouped["cat-2"]] == ["b"]

    def test_recent_items_newest_first(self, store: DomainStore) -> None:
        store.set_items(
            [
                NewsArticle(slug="older", published_at="2023-01-01"),
                NewsArticle(slug="undated"),
                NewsArticle(slug="recent", published_at="2024-05-01"),
            ],
            3,
        )

        assert [item.slug for item in store.recent_items] == ["recent", "older", "undated"]

    async def test_clear_search_results(self, store: DomainStore, transport: FakeTransport) -> None:
        transport.responses["/api/v1/news/search"] = news_page("a", count=4)
        await store.search("budget")

        store.clear_search_results()

        assert store.search_results == []
        assert store.search_total == 0


class TestDisposeDuringAction:
    async def test_dispose_is_recorded_as_store_error(self, transport: FakeTransport) -> None:
        client = await DomainClient.create(NEWS, transport)
        store = DomainStore(client)
        transport.responses[LIST] = news_page("a")
        transport.gate(LIST)

        task = asyncio.create_task(store.fetch_items())
        await asyncio.sleep(0)
        await client.dispose()
        await task

        assert "cancelled" in store.error
        assert store.loading is False
        assert store.items == []
