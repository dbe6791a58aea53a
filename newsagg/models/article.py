"""Article models for stored articles and read queries."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from .base import DBModel

MAX_PER_PAGE = 100
DEFAULT_PER_PAGE = 20


def clamp_per_page(value: Optional[int]) -> int:
    """Clamp a requested page size to [1, MAX_PER_PAGE]."""
    if value is None:
        return DEFAULT_PER_PAGE
    return min(max(int(value), 1), MAX_PER_PAGE)


class Article(DBModel):
    """Article model."""

    source_id: int = Field(..., description="Foreign key to sources table")
    category_id: Optional[int] = Field(None, description="Foreign key to categories table")
    author_id: Optional[int] = Field(None, description="Foreign key to authors table")
    title: str = Field(..., description="Article title")
    description: Optional[str] = Field(None, description="Article summary")
    article_url: str = Field(..., description="Unique article URL")
    image_url: Optional[str] = Field(None, description="Lead image URL")
    published_at: datetime = Field(..., description="Publication timestamp")


class ArticleListing(Article):
    """Article joined with its source, category and author names."""

    source_name: str = Field(..., description="Source name")
    source_slug: str = Field(..., description="Source slug")
    category_name: Optional[str] = Field(None, description="Category name")
    category_slug: Optional[str] = Field(None, description="Category slug")
    author_name: Optional[str] = Field(None, description="Author name")


class ArticleFilters(BaseModel):
    """Filters for the article search query."""

    keyword: Optional[str] = Field(None, description="Full-text search terms")
    published_on: Optional[date] = Field(None, description="Exact publication date")
    date_from: Optional[date] = Field(None, description="Earliest publication date")
    date_to: Optional[date] = Field(None, description="Latest publication date")
    category: Optional[str] = Field(None, description="Category slug")
    source: Optional[str] = Field(None, description="Source slug")
    author: Optional[str] = Field(None, description="Author name")
    page: int = Field(1, ge=1, description="1-based page number")
    per_page: int = Field(DEFAULT_PER_PAGE, description="Page size, clamped to [1, 100]")

    @field_validator("per_page", mode="before")
    @classmethod
    def validate_per_page(cls, v: Optional[int]) -> int:
        return clamp_per_page(v)


class FeedPreferences(BaseModel):
    """A reader's preferred sources, categories and authors."""

    source_ids: List[int] = Field(default_factory=list)
    category_ids: List[int] = Field(default_factory=list)
    author_ids: List[int] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (self.source_ids or self.category_ids or self.author_ids)


class ArticlePage(BaseModel):
    """One page of query results."""

    items: List[ArticleListing] = Field(default_factory=list)
    total: int = Field(0, description="Total matching articles")
    page: int = Field(1, description="1-based page number")
    per_page: int = Field(DEFAULT_PER_PAGE, description="Page size")

    @property
    def last_page(self) -> int:
        return max(1, -(-self.total // self.per_page))
