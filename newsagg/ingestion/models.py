"""Data models for ingestion."""

from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from .normalizer import (
    DEFAULT_CATEGORY,
    MAX_URL_LENGTH,
    UNKNOWN_AUTHOR,
    is_valid_url,
    validate_image_url,
)


class CanonicalArticle(BaseModel):
    """Provider-independent article produced by an adapter."""

    source_name: str = Field(..., min_length=1, description="Publishing source name")
    author_name: str = Field(UNKNOWN_AUTHOR, description="Author byline")
    category_name: str = Field(DEFAULT_CATEGORY, description="Section or category")
    title: str = Field(..., description="Article title")
    description: str = Field("", description="Summary or body excerpt")
    article_url: str = Field(
        ..., max_length=MAX_URL_LENGTH, description="Absolute article URL, the identity key"
    )
    image_url: Optional[str] = Field(None, description="Lead image URL")
    published_at: datetime = Field(..., description="Publication timestamp")

    @field_validator(
        "source_name", "author_name", "category_name", "title", "description", mode="before"
    )
    @classmethod
    def drop_nul_bytes(cls, v):
        """Postgres text columns reject NUL bytes."""
        if isinstance(v, str):
            return v.replace("\x00", "")
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Reject blank titles."""
        v = v.strip()
        if not v:
            raise ValueError("title must not be empty")
        return v

    @field_validator("author_name")
    @classmethod
    def default_author(cls, v: str) -> str:
        """Use the placeholder for blank authors."""
        return v.strip() or UNKNOWN_AUTHOR

    @field_validator("category_name")
    @classmethod
    def default_category(cls, v: str) -> str:
        """Use the default category for blank sections."""
        return v.strip() or DEFAULT_CATEGORY

    @field_validator("article_url")
    @classmethod
    def validate_article_url(cls, v: str) -> str:
        """Require a well-formed absolute URL."""
        v = v.strip()
        if not is_valid_url(v):
            raise ValueError(f"invalid article URL: {v!r}")
        return v

    @field_validator("image_url")
    @classmethod
    def validate_image(cls, v: Optional[str]) -> Optional[str]:
        """Discard anything that is not a usable image URL."""
        return validate_image_url(v)

    @field_validator("published_at")
    @classmethod
    def ensure_aware(cls, v: datetime) -> datetime:
        """Store naive timestamps as UTC."""
        if v.tzinfo is None:
            return v.replace(tzinfo=timezone.utc)
        return v
