"""Base class for news provider adapters."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..config import ProviderConfig
from ..logging import get_logger
from .models import CanonicalArticle
from .normalizer import dedupe_by_url

logger = get_logger(__name__)

USER_AGENT = "newsagg/0.1 (News Aggregator)"


class ProviderError(Exception):
    """A provider call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderAuthError(ProviderError):
    """The provider rejected our credentials, or none are configured."""


class ProviderRateLimitError(ProviderError):
    """The provider is throttling us."""


class NewsAdapter(ABC):
    """
    Fetches one provider and maps its payload to CanonicalArticle records.

    Subclasses describe the request (endpoint and query parameters) and how
    one raw item maps to the canonical fields. The base class owns the HTTP
    call, error classification, validation and in-batch deduplication.
    ``fetch_and_adapt`` never raises: any failure is logged and yields [].
    """

    #: Short key used for CLI filtering and logs
    name: str = ""
    #: Human readable provider name
    label: str = ""
    #: Which duplicate wins when one batch repeats an article URL
    duplicate_policy: str = "last"

    def __init__(
        self,
        config: ProviderConfig,
        api_key: Optional[str],
        client: Optional[httpx.Client] = None,
    ) -> None:
        """
        Initialize adapter.

        Args:
            config: Provider settings
            api_key: Resolved API key, None when not configured
            client: Optional shared HTTP client (a fresh one is used per call otherwise)
        """
        self.config = config
        self.api_key = api_key
        self.client = client

    @property
    def base_url(self) -> str:
        return self.config.base_url.rstrip("/")

    @property
    @abstractmethod
    def endpoint(self) -> str:
        """Path of the search endpoint, relative to base_url."""
        pass

    @abstractmethod
    def build_params(self) -> Dict[str, Any]:
        """Query parameters for a regular fetch, including the API key."""
        pass

    def probe_params(self) -> Dict[str, Any]:
        """Query parameters for a small connectivity probe."""
        return self.build_params()

    @abstractmethod
    def extract_items(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        """Pull the list of raw articles out of a response body."""
        pass

    @abstractmethod
    def extract_total(self, payload: Dict[str, Any]) -> int:
        """Number of matching articles the provider reports."""
        pass

    @abstractmethod
    def map_item(self, item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """
        Map one raw item to CanonicalArticle fields.

        Returns:
            Field dict, or None to drop the item
        """
        pass

    def fetch_and_adapt(self) -> List[CanonicalArticle]:
        """Fetch the provider and return normalized articles."""
        try:
            items = self.fetch_items()
            articles = self.adapt(items)
            logger.info(
                "adapter.fetched",
                adapter=self.name,
                received=len(items),
                kept=len(articles),
            )
            return articles
        except ProviderAuthError as e:
            logger.critical(
                "adapter.auth_failed",
                adapter=self.name,
                status=e.status_code,
                error=str(e),
            )
        except ProviderRateLimitError as e:
            logger.warning(
                "adapter.rate_limited",
                adapter=self.name,
                status=e.status_code,
                error=str(e),
            )
        except ProviderError as e:
            logger.error(
                "adapter.request_failed",
                adapter=self.name,
                status=e.status_code,
                error=str(e),
            )
        except httpx.TimeoutException as e:
            logger.error("adapter.timeout", adapter=self.name, error=str(e))
        except httpx.HTTPError as e:
            logger.error("adapter.connection_failed", adapter=self.name, error=str(e))
        except Exception as e:
            logger.error(
                "adapter.unexpected_error",
                adapter=self.name,
                error=str(e),
                exc_info=True,
            )
        return []

    def fetch_items(self) -> List[Dict[str, Any]]:
        """Request the provider and return its raw items."""
        if not self.api_key:
            raise ProviderAuthError(f"{self.label} API key is not configured")

        payload = self.get_json(self.build_params())
        items = self.extract_items(payload)

        if not items:
            logger.warning("adapter.no_articles", adapter=self.name)
        return items

    def adapt(self, items: List[Dict[str, Any]]) -> List[CanonicalArticle]:
        """Map, validate and deduplicate raw items."""
        articles = []
        for item in items:
            try:
                data = self.map_item(item)
            except (KeyError, TypeError, AttributeError, IndexError) as e:
                logger.warning("adapter.item_malformed", adapter=self.name, error=str(e))
                continue
            if data is None:
                continue

            try:
                articles.append(CanonicalArticle(**data))
            except ValidationError as e:
                logger.debug(
                    "adapter.item_dropped",
                    adapter=self.name,
                    url=data.get("article_url"),
                    errors=e.error_count(),
                )

        return dedupe_by_url(articles, keep=self.duplicate_policy)

    def probe(self) -> Dict[str, Any]:
        """
        Issue one small request and report what came back.

        Unlike fetch_and_adapt this raises on failure, so callers can show it.
        """
        if not self.api_key:
            raise ProviderAuthError(f"{self.label} API key is not configured")

        payload = self.get_json(self.probe_params())
        items = self.extract_items(payload)
        sample = None
        if items:
            mapped = self.map_item(items[0])
            sample = mapped.get("title") if mapped else None

        return {
            "total": self.extract_total(payload),
            "count": len(items),
            "sample": sample,
        }

    def get_json(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """GET the endpoint and return the decoded JSON body."""
        url = f"{self.base_url}/{self.endpoint.lstrip('/')}"
        response = self.send(url, params)
        self.raise_for_status(response)

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderError(f"Malformed JSON from {self.label}: {e}", response.status_code)

        if not isinstance(payload, dict):
            raise ProviderError(f"Unexpected payload from {self.label}", response.status_code)
        return payload

    def send(self, url: str, params: Dict[str, Any]) -> httpx.Response:
        """Perform one HTTP GET with the configured timeout."""
        if self.client is not None:
            return self.client.get(url, params=params, timeout=self.config.timeout)

        with httpx.Client(
            timeout=self.config.timeout,
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
        ) as client:
            return client.get(url, params=params)

    def raise_for_status(self, response: httpx.Response) -> None:
        """Turn a failed response into the matching ProviderError."""
        if response.is_success:
            return

        status = response.status_code
        message = self._error_message(response)

        if status in (401, 403):
            raise ProviderAuthError(
                f"{self.label} authentication failed - check API key ({message})", status
            )
        if status == 429:
            raise ProviderRateLimitError(f"{self.label} rate limit exceeded ({message})", status)
        raise ProviderError(f"{self.label} request failed with HTTP {status} ({message})", status)

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.reason_phrase or "no details"
        if isinstance(body, dict):
            for key in ("message", "fault", "error"):
                value = body.get(key)
                if isinstance(value, dict):
                    value = value.get("faultstring") or value.get("message")
                if value:
                    return str(value)
            response_block = body.get("response")
            if isinstance(response_block, dict) and response_block.get("message"):
                return str(response_block["message"])
        return response.reason_phrase or "no details"
