"""Data models for the News Aggregator."""

from .article import (
    Article,
    ArticleFilters,
    ArticleListing,
    ArticlePage,
    FeedPreferences,
    clamp_per_page,
)
from .run import AdapterResult, FetchRun, RunSummary
from .source import Author, Category, Source

__all__ = [
    "AdapterResult",
    "Article",
    "ArticleFilters",
    "ArticleListing",
    "ArticlePage",
    "Author",
    "Category",
    "FeedPreferences",
    "FetchRun",
    "RunSummary",
    "Source",
    "clamp_per_page",
]
