"""New York Times Article Search adapter."""

from typing import Any, Dict, List, Optional

from .base import NewsAdapter
from .normalizer import (
    DEFAULT_CATEGORY,
    clean_author_name,
    parse_date,
    sanitize_text,
    validate_image_url,
)

SOURCE_NAME = "The New York Times"
SITE_ROOT = "https://www.nytimes.com/"


class NytAdapter(NewsAdapter):
    """
    Adapter for ``articlesearch.json``.

    Fetches a single page per run. The first occurrence of a repeated URL
    wins, and articles without any description are dropped.
    """

    name = "nyt"
    label = "New York Times"
    duplicate_policy = "first"

    @property
    def endpoint(self) -> str:
        return "articlesearch.json"

    def build_params(self) -> Dict[str, Any]:
        return {
            "api-key": self.api_key,
            "sort": self.config.sort,
            "page": self.config.page,
        }

    def probe_params(self) -> Dict[str, Any]:
        return {"api-key": self.api_key, "page": 0}

    def extract_items(self, payload: Dict[str, Any]) -> List[Dict[str, Any]]:
        return (payload.get("response") or {}).get("docs") or []

    def extract_total(self, payload: Dict[str, Any]) -> int:
        meta = (payload.get("response") or {}).get("meta") or {}
        return int(meta.get("hits") or 0)

    def map_item(self, item: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        description = ""
        for field in ("abstract", "snippet", "lead_paragraph"):
            description = sanitize_text(item.get(field))
            if description:
                break

        if not item.get("web_url") or not description:
            return None

        headline = item.get("headline") or {}
        return {
            "source_name": SOURCE_NAME,
            "author_name": self._author(item.get("byline") or {}),
            "category_name": sanitize_text(item.get("section_name")) or DEFAULT_CATEGORY,
            "title": sanitize_text(headline.get("main")) or "Untitled",
            "description": description,
            "article_url": item["web_url"],
            "image_url": validate_image_url(self._image_url(item.get("multimedia"))),
            "published_at": parse_date(item.get("pub_date")),
        }

    @staticmethod
    def _author(byline: Dict[str, Any]) -> str:
        original = byline.get("original")
        if original:
            if original.startswith("By "):
                original = original[3:]
            return clean_author_name(original)

        people = byline.get("person") or []
        if people:
            person = people[0]
            full_name = f"{person.get('firstname') or ''} {person.get('lastname') or ''}"
            return clean_author_name(full_name)

        return SOURCE_NAME

    @staticmethod
    def _image_url(multimedia: Any) -> Optional[str]:
        # Older responses carry a list, newer ones a {"default": {...}} mapping
        url = None
        if isinstance(multimedia, list) and multimedia:
            url = (multimedia[0] or {}).get("url")
        elif isinstance(multimedia, dict):
            url = (multimedia.get("default") or {}).get("url")

        if not url:
            return None
        if url.startswith("http"):
            return url
        return SITE_ROOT + url.lstrip("/")
