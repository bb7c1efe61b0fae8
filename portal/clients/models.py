"""
Content models and query parameters for the domain clients.
"""

from typing import Any, Generic, TypeVar

from pydantic import BaseModel, ConfigDict, Field


class ListParams(BaseModel):
    """Pagination and filters for a list call."""

    model_config = ConfigDict(populate_by_name=True)

    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=10, ge=1, le=100, alias="pageSize")
    search: str | None = None
    category: str | None = None
    featured: bool | None = None

    @classmethod
    def coerce(cls, params: "ListParams | dict[str, Any] | None") -> "ListParams":
        if params is None:
            return cls()
        if isinstance(params, cls):
            return params
        return cls.model_validate(params)

    def to_query(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class SearchParams(BaseModel):
    """Free-text search."""

    model_config = ConfigDict(populate_by_name=True)

    q: str
    page: int | None = Field(default=None, ge=1)
    page_size: int | None = Field(default=None, ge=1, le=100, alias="pageSize")

    def to_query(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ContentItem(BaseModel):
    """Fields every content domain shares. Anything else is kept as-is."""

    model_config = ConfigDict(extra="allow")

    id: str | int | None = None
    slug: str | None = None
    title: str | None = None
    summary: str | None = None
    category_id: str | int | None = None
    is_featured: bool | None = None


class NewsArticle(ContentItem):
    published_at: str | None = None


class Event(ContentItem):
    start_date: str | None = None
    end_date: str | None = None
    location: str | None = None


class ServiceOffering(ContentItem):
    name: str | None = None


class ResearchArticle(ContentItem):
    authors: list[str] | None = None
    publication_date: str | None = None


class Category(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str | int | None = None
    slug: str | None = None
    name: str | None = None
    description: str | None = None


T = TypeVar("T", bound=BaseModel)


class PagedResult(BaseModel, Generic[T]):
    """A list-shaped response: the items plus the server-side count."""

    items: list[T] = Field(default_factory=list)
    total: int = 0
    correlation_id: str | None = None
