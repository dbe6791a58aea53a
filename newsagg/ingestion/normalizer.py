"""Shared value rules applied by every provider adapter."""

import html
import re
import unicodedata
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from pathlib import PurePosixPath
from typing import Iterable, List, Optional, TypeVar
from urllib.parse import urlparse

import pendulum

from ..logging import get_logger

logger = get_logger(__name__)

UNKNOWN_AUTHOR = "Unknown"
DEFAULT_CATEGORY = "General"
IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp"}
# Width of the articles.article_url and articles.image_url columns
MAX_URL_LENGTH = 2048

_TAG_RE = re.compile(r"<[^>]*>")
_EMAIL_RE = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
_URL_RE = re.compile(r"https?://\S+")
_SLUG_STRIP_RE = re.compile(r"[^\w\s-]")
_SLUG_SEPARATOR_RE = re.compile(r"[\s_-]+")

T = TypeVar("T")


def sanitize_text(text: Optional[str]) -> str:
    """Strip markup tags, decode HTML entities and trim whitespace."""
    if not text:
        return ""
    text = _TAG_RE.sub("", text)
    text = html.unescape(text)
    # Postgres text columns reject NUL bytes
    text = text.replace("\x00", "")
    return text.strip()


def clean_author_name(author: Optional[str]) -> str:
    """Remove e-mail addresses and links from a byline."""
    if not author:
        return UNKNOWN_AUTHOR

    author = _EMAIL_RE.sub("", author)
    author = _URL_RE.sub("", author)
    author = sanitize_text(author)
    # Collapse the gaps left behind by removed fragments
    author = " ".join(author.split())
    return author or UNKNOWN_AUTHOR


def is_valid_url(url: Optional[str]) -> bool:
    """Check that a string is a well-formed absolute http(s) URL."""
    if not url or not isinstance(url, str):
        return False
    if "\x00" in url or any(ch.isspace() for ch in url):
        return False
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def validate_image_url(url: Optional[str]) -> Optional[str]:
    """
    Keep an image URL only when it looks like an image.

    The URL must be well formed and either end in a known image extension
    or contain the word "image" somewhere.
    """
    if not url:
        return None
    url = url.strip()
    if len(url) > MAX_URL_LENGTH:
        return None
    if not is_valid_url(url):
        return None

    extension = PurePosixPath(urlparse(url).path).suffix.lstrip(".").lower()
    if extension not in IMAGE_EXTENSIONS and "image" not in url:
        return None

    return url


def parse_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a provider timestamp into an aware UTC datetime.

    Returns:
        The parsed timestamp, or None when the value cannot be understood
    """
    if not value:
        return None

    try:
        parsed = pendulum.parse(str(value), strict=False)
        if isinstance(parsed, pendulum.DateTime):
            return datetime.fromisoformat(parsed.in_timezone("UTC").isoformat())
    except (ValueError, TypeError, OverflowError):
        pass

    # RFC 2822 style dates ("Tue, 05 Nov 2024 10:00:00 GMT")
    try:
        parsed = parsedate_to_datetime(str(value))
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed.astimezone(timezone.utc)
    except (ValueError, TypeError, IndexError):
        logger.warning("normalizer.date_unparseable", date=value)
        return None


def slugify(value: str, separator: str = "-") -> str:
    """Build a URL-safe slug from a display name."""
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = value.replace("@", f"{separator}at{separator}")
    value = _SLUG_STRIP_RE.sub("", value.lower())
    return _SLUG_SEPARATOR_RE.sub(separator, value).strip(separator)


def dedupe_by_url(articles: Iterable[T], keep: str = "first") -> List[T]:
    """
    Drop repeated article URLs from one batch.

    Args:
        articles: Objects exposing an ``article_url`` attribute
        keep: "first" keeps the first occurrence, "last" the last one

    Returns:
        Articles in first-seen order
    """
    if keep not in ("first", "last"):
        raise ValueError(f"keep must be 'first' or 'last', got {keep!r}")

    by_url = {}
    for article in articles:
        url = getattr(article, "article_url", None)
        if not url:
            continue
        if keep == "first" and url in by_url:
            continue
        by_url[url] = article

    return list(by_url.values())
