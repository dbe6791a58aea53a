"""Reference entities an article points at."""

from pydantic import Field

from .base import DBModel


class Source(DBModel):
    """Publishing outlet, e.g. "The Guardian"."""

    name: str = Field(..., description="Source name")
    slug: str = Field(..., description="URL-safe unique identifier")


class Category(DBModel):
    """Section or topic an article is filed under."""

    name: str = Field(..., description="Category name")
    slug: str = Field(..., description="URL-safe unique identifier")


class Author(DBModel):
    """Article author as printed in the byline."""

    name: str = Field(..., description="Author name")
