"""Article storage: the dedup/upsert engine and read queries."""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from psycopg import Connection

from ..ingestion.models import CanonicalArticle
from ..logging import get_logger
from ..models import ArticleFilters, ArticleListing, ArticlePage, FeedPreferences, clamp_per_page
from .references import ReferenceManager

logger = get_logger(__name__)

LISTING_SELECT = """
    SELECT
        a.id,
        a.source_id,
        a.category_id,
        a.author_id,
        a.title,
        a.description,
        a.article_url,
        a.image_url,
        a.published_at,
        a.created_at,
        a.updated_at,
        s.name AS source_name,
        s.slug AS source_slug,
        c.name AS category_name,
        c.slug AS category_slug,
        au.name AS author_name
"""

LISTING_FROM = """
    FROM articles a
    JOIN sources s ON a.source_id = s.id
    LEFT JOIN categories c ON a.category_id = c.id
    LEFT JOIN authors au ON a.author_id = au.id
"""


class ArticleStorage:
    """Handle article storage and deduplication."""

    def __init__(self, references: Optional[ReferenceManager] = None) -> None:
        """Initialize article storage."""
        self.references = references or ReferenceManager()

    def upsert_article(
        self,
        conn: Connection,
        article: CanonicalArticle,
        source_id: int,
        author_id: Optional[int],
        category_id: Optional[int],
    ) -> Tuple[int, bool]:
        """
        Insert the article, or update the row that already has its URL.

        The id and created_at of an existing row are left untouched.

        Returns:
            Tuple of (article_id, is_new)
        """
        with conn.cursor() as cur:
            cur.execute(
                """
                INSERT INTO articles (
                    source_id, author_id, category_id, title, description,
                    article_url, image_url, published_at
                ) VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
                ON CONFLICT (article_url) DO UPDATE SET
                    source_id = EXCLUDED.source_id,
                    author_id = EXCLUDED.author_id,
                    category_id = EXCLUDED.category_id,
                    title = EXCLUDED.title,
                    description = EXCLUDED.description,
                    image_url = EXCLUDED.image_url,
                    published_at = EXCLUDED.published_at
                RETURNING id, (xmax = 0) AS inserted
                """,
                (
                    source_id,
                    author_id,
                    category_id,
                    article.title,
                    article.description,
                    article.article_url,
                    article.image_url,
                    article.published_at,
                ),
            )
            row = cur.fetchone()
            return row["id"], bool(row["inserted"])

    def store_batch(
        self,
        conn: Connection,
        articles: Iterable[CanonicalArticle],
    ) -> Dict[str, int]:
        """
        Persist one adapter's batch as a single transaction.

        Any failure rolls back every write of the batch and is re-raised.

        Returns:
            Statistics dictionary
        """
        articles = list(articles)
        stats = {
            "total": len(articles),
            "new": 0,
            "updated": 0,
            "stored": 0,
        }
        resolved: Dict[Tuple[str, str], int] = {}

        def resolve(table: str, name: str) -> int:
            key = (table, name)
            if key not in resolved:
                resolved[key] = self.references.find_or_create(conn, table, name)
            return resolved[key]

        try:
            for article in articles:
                source_id = resolve("sources", article.source_name)
                author_id = resolve("authors", article.author_name)
                category_id = resolve("categories", article.category_name)

                _, is_new = self.upsert_article(
                    conn, article, source_id, author_id, category_id
                )

                if is_new:
                    stats["new"] += 1
                else:
                    stats["updated"] += 1
                stats["stored"] += 1

            conn.commit()
        except Exception:
            conn.rollback()
            raise

        return stats

    def count_older_than(self, conn: Connection, cutoff: datetime) -> int:
        """Count articles published before cutoff."""
        with conn.cursor() as cur:
            cur.execute(
                "SELECT COUNT(*) AS total FROM articles WHERE published_at < %s",
                (cutoff,),
            )
            return cur.fetchone()["total"]

    def delete_older_than(self, conn: Connection, cutoff: datetime) -> int:
        """Delete articles published before cutoff and return how many went."""
        try:
            with conn.cursor() as cur:
                cur.execute("DELETE FROM articles WHERE published_at < %s", (cutoff,))
                deleted = cur.rowcount
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        return deleted

    def count_articles(self, conn: Connection) -> int:
        """Count all stored articles."""
        with conn.cursor() as cur:
            cur.execute("SELECT COUNT(*) AS total FROM articles")
            return cur.fetchone()["total"]

    def search_articles(self, conn: Connection, filters: ArticleFilters) -> ArticlePage:
        """Get one page of articles matching the filters, newest first."""
        conditions: List[str] = []
        params: List[Any] = []

        if filters.keyword:
            conditions.append("a.search_vector @@ plainto_tsquery('english', %s)")
            params.append(filters.keyword)
        if filters.published_on:
            conditions.append("(a.published_at AT TIME ZONE 'UTC')::date = %s")
            params.append(filters.published_on)
        if filters.date_from:
            conditions.append("(a.published_at AT TIME ZONE 'UTC')::date >= %s")
            params.append(filters.date_from)
        if filters.date_to:
            conditions.append("(a.published_at AT TIME ZONE 'UTC')::date <= %s")
            params.append(filters.date_to)
        if filters.category:
            conditions.append("c.slug = %s")
            params.append(filters.category)
        if filters.source:
            conditions.append("s.slug = %s")
            params.append(filters.source)
        if filters.author:
            conditions.append("au.name = %s")
            params.append(filters.author)

        return self._page(conn, conditions, params, filters.page, filters.per_page)

    def get_feed(
        self,
        conn: Connection,
        preferences: Optional[FeedPreferences] = None,
        page: int = 1,
        per_page: Optional[int] = None,
    ) -> ArticlePage:
        """
        Get a reader's feed.

        Articles match when they belong to ANY preferred source, category or
        author. Without preferences the feed is every article.
        """
        conditions: List[str] = []
        params: List[Any] = []

        if preferences is not None and not preferences.is_empty:
            alternatives = []
            for column, ids in (
                ("a.source_id", preferences.source_ids),
                ("a.category_id", preferences.category_ids),
                ("a.author_id", preferences.author_ids),
            ):
                if ids:
                    alternatives.append(f"{column} = ANY(%s)")
                    params.append(list(ids))
            conditions.append("(" + " OR ".join(alternatives) + ")")

        return self._page(conn, conditions, params, max(1, page), clamp_per_page(per_page))

    def _page(
        self,
        conn: Connection,
        conditions: List[str],
        params: List[Any],
        page: int,
        per_page: int,
    ) -> ArticlePage:
        where = ""
        if conditions:
            where = " WHERE " + " AND ".join(conditions)

        with conn.cursor() as cur:
            cur.execute(f"SELECT COUNT(*) AS total {LISTING_FROM}{where}", params)
            total = cur.fetchone()["total"]

            cur.execute(
                f"""
                {LISTING_SELECT}
                {LISTING_FROM}
                {where}
                ORDER BY a.published_at DESC, a.id DESC
                LIMIT %s OFFSET %s
                """,
                [*params, per_page, (page - 1) * per_page],
            )
            rows = cur.fetchall()

        return ArticlePage(
            items=[ArticleListing(**row) for row in rows],
            total=total,
            page=page,
            per_page=per_page,
        )
