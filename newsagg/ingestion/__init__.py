"""Provider adapters and article normalization."""

from .base import NewsAdapter, ProviderAuthError, ProviderError, ProviderRateLimitError
from .guardian import GuardianAdapter
from .models import CanonicalArticle
from .newsapi import NewsApiAdapter
from .nyt import NytAdapter
from .registry import ADAPTER_CLASSES, build_adapters

__all__ = [
    "ADAPTER_CLASSES",
    "CanonicalArticle",
    "GuardianAdapter",
    "NewsAdapter",
    "NewsApiAdapter",
    "NytAdapter",
    "ProviderAuthError",
    "ProviderError",
    "ProviderRateLimitError",
    "build_adapters",
]
