"""Explicit adapter registry built at process start."""

from typing import Dict, List, Optional, Type

import httpx

from ..config import Config
from ..db.cache import CacheStore
from .base import NewsAdapter
from .guardian import GuardianAdapter
from .newsapi import NewsApiAdapter
from .nyt import NytAdapter

ADAPTER_CLASSES: Dict[str, Type[NewsAdapter]] = {
    "newsapi": NewsApiAdapter,
    "guardian": GuardianAdapter,
    "nyt": NytAdapter,
}


def build_adapters(
    config: Config,
    cache: Optional[CacheStore] = None,
    client: Optional[httpx.Client] = None,
    include_disabled: bool = False,
) -> List[NewsAdapter]:
    """
    Instantiate one adapter per configured provider.

    Args:
        config: Loaded configuration
        cache: Cache handed to adapters that memoize responses
        client: Optional shared HTTP client
        include_disabled: Also build adapters for disabled providers

    Returns:
        Adapters in registration order
    """
    adapters = []
    for name, provider in config.config.providers.items():
        if not provider.enabled and not include_disabled:
            continue

        adapter_cls = ADAPTER_CLASSES[name]
        api_key = config.get_api_key(provider)
        if adapter_cls is NewsApiAdapter:
            adapters.append(NewsApiAdapter(provider, api_key, client=client, cache=cache))
        else:
            adapters.append(adapter_cls(provider, api_key, client=client))

    return adapters
