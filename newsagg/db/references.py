"""Sources, categories and authors: resolved lazily during ingestion."""

from typing import Dict, Iterator, List, Optional

from psycopg import Connection, Cursor, sql

from ..ingestion.normalizer import UNKNOWN_AUTHOR, slugify
from ..models import Author, Category, Source

# Table name -> whether rows carry a slug
REFERENCE_TABLES = {
    "sources": True,
    "categories": True,
    "authors": False,
}

FALLBACK_SLUG = "n-a"


def normalize_reference_name(name: Optional[str]) -> str:
    """Blank names and the placeholder all map onto one "Unknown" row."""
    name = (name or "").strip()
    if not name or name == UNKNOWN_AUTHOR:
        return UNKNOWN_AUTHOR
    return name


class ReferenceManager:
    """Find-or-create and listing of reference rows."""

    def __init__(self, max_slug_attempts: int = 100) -> None:
        """Initialize reference manager."""
        self.max_slug_attempts = max_slug_attempts

    def find_or_create(self, conn: Connection, table: str, name: Optional[str]) -> int:
        """
        Return the id of the row with this exact name, creating it if needed.

        Inserts use ON CONFLICT DO NOTHING so that two runs creating the same
        name at once both end up with the single surviving row. Slug
        collisions move on to ``slug-1``, ``slug-2`` and so on.

        Returns:
            Row id
        """
        if table not in REFERENCE_TABLES:
            raise ValueError(f"Unknown reference table: {table}")

        name = normalize_reference_name(name)

        with conn.cursor() as cur:
            existing = self._find(cur, table, name)
            if existing is not None:
                return existing

            if not REFERENCE_TABLES[table]:
                cur.execute(
                    sql.SQL(
                        "INSERT INTO {} (name) VALUES (%s) ON CONFLICT DO NOTHING RETURNING id"
                    ).format(sql.Identifier(table)),
                    (name,),
                )
                row = cur.fetchone()
                if row:
                    return row["id"]
                return self._find(cur, table, name)

            base_slug = slugify(name) or FALLBACK_SLUG
            for slug in self._slug_candidates(cur, table, base_slug):
                cur.execute(
                    sql.SQL(
                        """
                        INSERT INTO {} (name, slug) VALUES (%s, %s)
                        ON CONFLICT DO NOTHING
                        RETURNING id
                        """
                    ).format(sql.Identifier(table)),
                    (name, slug),
                )
                row = cur.fetchone()
                if row:
                    return row["id"]

                # Lost a race: either the name now exists or the slug was taken
                existing = self._find(cur, table, name)
                if existing is not None:
                    return existing

        raise RuntimeError(f"Could not find a free slug for {name!r} in {table}")

    def _find(self, cur: Cursor, table: str, name: str) -> Optional[int]:
        cur.execute(
            sql.SQL("SELECT id FROM {} WHERE name = %s").format(sql.Identifier(table)),
            (name,),
        )
        row = cur.fetchone()
        return row["id"] if row else None

    def _slug_candidates(self, cur: Cursor, table: str, base_slug: str) -> Iterator[str]:
        """Yield base_slug, base_slug-1, ... skipping slugs already stored."""
        cur.execute(
            sql.SQL("SELECT slug FROM {} WHERE slug = %s OR slug LIKE %s").format(
                sql.Identifier(table)
            ),
            (base_slug, f"{base_slug}-%"),
        )
        taken = {row["slug"] for row in cur.fetchall()}

        counter = 0
        yielded = 0
        while yielded < self.max_slug_attempts:
            candidate = base_slug if counter == 0 else f"{base_slug}-{counter}"
            counter += 1
            if candidate in taken:
                continue
            yielded += 1
            yield candidate

    def list_sources(self, conn: Connection) -> List[Source]:
        """Get all sources ordered by name."""
        return [Source(**row) for row in self._list(conn, "sources")]

    def list_categories(self, conn: Connection) -> List[Category]:
        """Get all categories ordered by name."""
        return [Category(**row) for row in self._list(conn, "categories")]

    def list_authors(self, conn: Connection) -> List[Author]:
        """Get all authors ordered by name."""
        return [Author(**row) for row in self._list(conn, "authors")]

    def _list(self, conn: Connection, table: str) -> List[Dict]:
        with conn.cursor() as cur:
            cur.execute(
                sql.SQL("SELECT * FROM {} ORDER BY name").format(sql.Identifier(table))
            )
            return cur.fetchall()
