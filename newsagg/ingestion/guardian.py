"""The Guardian Open Platform adapter."""

from typing import Any, Dict, List, Optional

from .base import NewsAdapter
from .normalizer import (
    DEFAULT_CATEGORY,
    clean_author_name,
    parse_date,
    sanitize_text,
    validate_image_url,
)

SOURCE_NAME = "The Guardian"


class GuardianAdapter(NewsAdapter):
    """Adapter for the Guardian content ``/search`` endpoint."""

    name = "guardian"
    label = "The Guardian"
    duplicate_policy = "last"

    @property
    def endpoint(self) -> str:
        return "search"

    def build_params(self) -> Dict[str, Any]:
        return {
            "api-key": self.api_key,
            "q": self.config.query,
            "show-fields": self.config.show_fields,
            "page-size": self.config.page_size,
        }

    def probe_params(self) -> Dict[str, Any]:
        return {
            "api-key": self.api_key,
            "show-fields": "thumbnail,bodyText",
            "page-size": 5,
        }

    def extract_items(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        return (payload.get("response") or {}).get("results") or []

    def extract_total(self, payload: Dict[str, Any]) -> int:
        return int((payload.get("response") or {}).get("total") or 0)

    def map_item(self, item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        if not item.get("webUrl"):
            return None

        fields = item.get("fields") or {}
        title = sanitize_text(item.get("webTitle"))
        byline = fields.get("byline")

        return {
            "source_name": SOURCE_NAME,
            "author_name": clean_author_name(byline) if byline else SOURCE_NAME,
            "category_name": sanitize_text(item.get("sectionName")) or DEFAULT_CATEGORY,
            "title": title,
            "description": sanitize_text(fields.get("bodyText")) or title,
            "article_url": item["webUrl"],
            "image_url": validate_image_url(fields.get("thumbnail")),
            "published_at": parse_date(item.get("webPublicationDate")),
        }
