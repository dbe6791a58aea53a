"""NewsAPI.org adapter."""

import time
from typing import Any, Callable, Dict, List, Optional

import httpx
import pendulum

from ..config import NewsApiConfig
from ..db.cache import CacheStore
from ..logging import get_logger
from .base import NewsAdapter
from .models import CanonicalArticle
from .normalizer import (
    DEFAULT_CATEGORY,
    clean_author_name,
    parse_date,
    sanitize_text,
    validate_image_url,
)

logger = get_logger(__name__)


class NewsApiAdapter(NewsAdapter):
    """
    Adapter for the NewsAPI ``/everything`` endpoint.

    Connection failures are retried a fixed number of times with a fixed
    delay. Results are cached per clock hour so repeated runs inside the
    same hour do not spend API quota.
    """

    name = "newsapi"
    label = "NewsAPI"
    duplicate_policy = "last"

    def __init__(
        self,
        config: NewsApiConfig,
        api_key: Optional[str],
        client: Optional[httpx.Client] = None,
        cache: Optional[CacheStore] = None,
        clock: Callable[[], pendulum.DateTime] = lambda: pendulum.now("UTC"),
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        super().__init__(config, api_key, client)
        self.cache = cache
        self.clock = clock
        self.sleep = sleep

    @property
    def endpoint(self) -> str:
        return "everything"

    def build_params(self) -> Dict[str, Any]:
        return {
            "q": self.config.query,
            "apiKey": self.api_key,
            "pageSize": self.config.page_size,
            "language": self.config.language,
            "sortBy": self.config.sort_by,
        }

    def probe_params(self) -> Dict[str, Any]:
        params = self.build_params()
        params["pageSize"] = 5
        return params

    def extract_items(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        return payload.get("articles") or []

    def extract_total(self, payload: Dict[str, Any]) -> int:
        return int(payload.get("totalResults") or 0)

    def map_item(self, item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not item.get("url") or not item.get("title"):
            return None

        source = item.get("source") or {}
        return {
            "source_name": sanitize_text(source.get("name")) or "Unknown",
            "author_name": clean_author_name(item.get("author")),
            "category_name": DEFAULT_CATEGORY,
            "title": sanitize_text(item["title"]),
            "description": sanitize_text(item.get("description")),
            "article_url": item["url"],
            "image_url": validate_image_url(item.get("urlToImage")),
            "published_at": parse_date(item.get("publishedAt")),
        }

    def cache_key(self) -> str:
        """Cache key for the current hour bucket."""
        return f"newsapi_articles_{self.clock().format('YYYY-MM-DD-HH')}"

    def fetch_and_adapt(self) -> List[CanonicalArticle]:
        if self.cache is None or self.config.cache_ttl_seconds <= 0:
            return super().fetch_and_adapt()

        key = self.cache_key()
        cached = self._read_cache(key)
        if cached is not None:
            logger.info("adapter.cache_hit", adapter=self.name, key=key, count=len(cached))
            return cached

        articles = super().fetch_and_adapt()
        # An empty result is usually a failure; leave the next run free to retry
        if articles:
            self._write_cache(key, articles)
        return articles

    def send(self, url: str, params: Dict[str, Any]) -> httpx.Response:
        attempts = max(1, self.config.retry_times)
        delay = self.config.retry_delay_ms / 1000.0

        for attempt in range(1, attempts):
            try:
                return super().send(url, params)
            except httpx.TransportError as e:
                logger.warning(
                    "adapter.retrying",
                    adapter=self.name,
                    attempt=attempt,
                    attempts=attempts,
                    error=str(e),
                )
                self.sleep(delay)

        return super().send(url, params)

    def _read_cache(self, key: str) -> Optional[List[CanonicalArticle]]:
        try:
            cached = self.cache.get(key)
            if cached is None:
                return None
            return [CanonicalArticle.model_validate(article) for article in cached]
        except Exception as e:
            logger.warning("adapter.cache_unavailable", adapter=self.name, error=str(e))
            return None

    def _write_cache(self, key: str, articles: List[CanonicalArticle]) -> None:
        try:
            self.cache.put(
                key,
                [article.model_dump(mode="json") for article in articles],
                self.config.cache_ttl_seconds,
            )
        except Exception as e:
            logger.warning("adapter.cache_unavailable", adapter=self.name, error=str(e))
