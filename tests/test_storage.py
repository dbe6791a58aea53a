"""Storage tests against a real Postgres database.

Set NEWSAGG_TEST_DATABASE_URL (e.g. postgresql://user:pw@localhost/newsagg_test)
to run them. Every table is truncated before each test.
"""

import os
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

import psycopg
import pytest
from psycopg.rows import dict_row

from newsagg.db.articles import ArticleStorage
from newsagg.db.cache import PostgresCache
from newsagg.db.init import SCHEMA_SQL
from newsagg.config import NewsApiConfig
from newsagg.db.references import ReferenceManager
from newsagg.ingestion import CanonicalArticle, NewsApiAdapter
from newsagg.models import ArticleFilters, FeedPreferences
from newsagg.pipeline import FetchOrchestrator, RunLock

from .conftest import json_client, newsapi_item

DATABASE_URL = os.environ.get("NEWSAGG_TEST_DATABASE_URL")

pytestmark = pytest.mark.skipif(
    not DATABASE_URL, reason="NEWSAGG_TEST_DATABASE_URL is not set"
)

NOW = datetime.now(timezone.utc).replace(microsecond=0)


@pytest.fixture(scope="module")
def schema():
    with psycopg.connect(DATABASE_URL) as conn:
        conn.execute(SCHEMA_SQL)


@pytest.fixture
def conn(schema):
    with psycopg.connect(DATABASE_URL, row_factory=dict_row) as conn:
        conn.execute(
            "TRUNCATE articles, sources, categories, authors, cache_entries RESTART IDENTITY CASCADE"
        )
        conn.commit()
        yield conn


@pytest.fixture
def connection_factory(schema):
    @contextmanager
    def connect():
        with psycopg.connect(DATABASE_URL, row_factory=dict_row) as conn:
            yield conn

    return connect


def _article(url, title="Title", published_at=NOW, **overrides):
    fields = {
        "source_name": "Example News",
        "author_name": "Jane Doe",
        "category_name": "Technology",
        "title": title,
        "description": "Description",
        "article_url": url,
        "published_at": published_at,
    }
    fields.update(overrides)
    return CanonicalArticle(**fields)


def _count(conn, table):
    return conn.execute(f"SELECT COUNT(*) AS total FROM {table}").fetchone()["total"]


def test_store_batch_is_idempotent(conn):
    storage = ArticleStorage()
    batch = [_article("https://x/1"), _article("https://x/2")]

    first = storage.store_batch(conn, batch)
    second = storage.store_batch(conn, batch)

    assert first == {"total": 2, "new": 2, "updated": 0, "stored": 2}
    assert second == {"total": 2, "new": 0, "updated": 2, "stored": 2}
    assert _count(conn, "articles") == 2
    assert _count(conn, "sources") == 1
    assert _count(conn, "authors") == 1
    assert _count(conn, "categories") == 1


def test_upsert_updates_content_and_keeps_identity(conn):
    storage = ArticleStorage()
    storage.store_batch(conn, [_article("https://x/1", title="A")])
    before = conn.execute(
        "SELECT id, created_at FROM articles WHERE article_url = %s", ("https://x/1",)
    ).fetchone()

    stats = storage.store_batch(
        conn, [_article("https://x/1", title="B", published_at=NOW + timedelta(hours=1))]
    )
    after = conn.execute(
        "SELECT id, created_at, title FROM articles WHERE article_url = %s", ("https://x/1",)
    ).fetchone()

    assert stats["updated"] == 1
    assert after["id"] == before["id"]
    assert after["created_at"] == before["created_at"]
    assert after["title"] == "B"


def test_same_url_twice_in_one_batch_leaves_one_row(conn):
    ArticleStorage().store_batch(
        conn,
        [
            _article("https://x/1", title="A", published_at=NOW),
            _article("https://x/1", title="B", published_at=NOW + timedelta(minutes=5)),
        ],
    )

    rows = conn.execute("SELECT title FROM articles WHERE article_url = 'https://x/1'").fetchall()
    assert [row["title"] for row in rows] == ["B"]


def test_failed_batch_rolls_back_everything(conn):
    storage = ArticleStorage()
    # Built without validation so the database itself rejects the row
    too_long = CanonicalArticle.model_construct(
        **dict(_article("https://x/2").model_dump(), article_url="https://example.com/" + "a" * 3000)
    )

    with pytest.raises(psycopg.Error):
        storage.store_batch(
            conn,
            [_article("https://x/1", source_name="Fresh Source"), too_long],
        )

    assert _count(conn, "articles") == 0
    assert _count(conn, "sources") == 0


def _store_newsapi_batch(conn, *items):
    adapter = NewsApiAdapter(
        NewsApiConfig(retry_delay_ms=0),
        "key",
        client=json_client({"articles": list(items)}),
    )
    return ArticleStorage().store_batch(conn, adapter.fetch_and_adapt())


def test_oversized_image_url_is_nulled_not_fatal(conn):
    huge_image = "https://cdn.example.com/" + "a" * 2100 + ".jpg"

    stats = _store_newsapi_batch(
        conn,
        newsapi_item("https://x/1"),
        newsapi_item("https://x/2", urlToImage=huge_image),
    )

    assert stats["stored"] == 2
    row = conn.execute("SELECT image_url FROM articles WHERE article_url = 'https://x/2'").fetchone()
    assert row["image_url"] is None


def test_oversized_article_url_is_dropped_not_fatal(conn):
    stats = _store_newsapi_batch(
        conn,
        newsapi_item("https://x/1"),
        newsapi_item("https://example.com/" + "a" * 2100),
    )

    assert stats["stored"] == 1
    assert _count(conn, "articles") == 1


def test_nul_bytes_are_stripped_before_storage(conn):
    stats = _store_newsapi_batch(
        conn,
        newsapi_item("https://x/1"),
        newsapi_item(
            "https://x/2",
            title="Nul\x00title",
            description="bad\x00text",
            author="Jane\x00 Doe",
            source={"name": "Tech\x00Crunch"},
        ),
    )

    assert stats["stored"] == 2
    row = conn.execute(
        """
        SELECT a.title, a.description, s.name AS source_name, au.name AS author_name
        FROM articles a
        JOIN sources s ON a.source_id = s.id
        JOIN authors au ON a.author_id = au.id
        WHERE a.article_url = 'https://x/2'
        """
    ).fetchone()
    assert row == {
        "title": "Nultitle",
        "description": "badtext",
        "source_name": "TechCrunch",
        "author_name": "Jane Doe",
    }


def test_reference_slugs_get_suffixes(conn):
    references = ReferenceManager()

    first = references.find_or_create(conn, "categories", "Foo")
    second = references.find_or_create(conn, "categories", "foo")
    third = references.find_or_create(conn, "categories", "FOO!")
    again = references.find_or_create(conn, "categories", "Foo")
    conn.commit()

    slugs = [c.slug for c in references.list_categories(conn)]
    assert again == first
    assert len({first, second, third}) == 3
    assert sorted(slugs) == ["foo", "foo-1", "foo-2"]


def test_unknown_author_is_shared(conn):
    references = ReferenceManager()

    unknown = references.find_or_create(conn, "authors", None)

    assert references.find_or_create(conn, "authors", "") == unknown
    assert references.find_or_create(conn, "authors", "Unknown") == unknown


def test_cleanup_counts_and_deletes_old_articles(conn):
    storage = ArticleStorage()
    storage.store_batch(
        conn,
        [
            _article("https://x/old", published_at=NOW - timedelta(days=45)),
            _article("https://x/new", published_at=NOW - timedelta(days=1)),
        ],
    )
    cutoff = NOW - timedelta(days=30)

    assert storage.count_older_than(conn, cutoff) == 1
    assert _count(conn, "articles") == 2

    assert storage.delete_older_than(conn, cutoff) == 1
    assert [row["article_url"] for row in conn.execute("SELECT article_url FROM articles")] == [
        "https://x/new"
    ]


def test_search_filters_and_paging(conn):
    storage = ArticleStorage()
    storage.store_batch(
        conn,
        [
            _article("https://x/1", title="Quantum computing breakthrough", published_at=NOW - timedelta(days=2)),
            _article("https://x/2", title="Football results", published_at=NOW - timedelta(days=1),
                     category_name="Sport", source_name="Other Paper"),
            _article("https://x/3", title="Quantum networking", published_at=NOW),
        ],
    )

    everything = storage.search_articles(conn, ArticleFilters())
    assert [a.article_url for a in everything.items] == ["https://x/3", "https://x/2", "https://x/1"]

    quantum = storage.search_articles(conn, ArticleFilters(keyword="quantum"))
    assert {a.article_url for a in quantum.items} == {"https://x/1", "https://x/3"}

    sport = storage.search_articles(conn, ArticleFilters(category="sport"))
    assert [a.source_slug for a in sport.items] == ["other-paper"]

    paged = storage.search_articles(conn, ArticleFilters(page=2, per_page=2))
    assert paged.total == 3
    assert paged.last_page == 2
    assert [a.article_url for a in paged.items] == ["https://x/1"]


def test_feed_matches_any_preference(conn):
    storage = ArticleStorage()
    storage.store_batch(
        conn,
        [
            _article("https://x/1", source_name="A Paper", category_name="Tech"),
            _article("https://x/2", source_name="B Paper", category_name="Sport"),
            _article("https://x/3", source_name="C Paper", category_name="Arts"),
        ],
    )
    sources = {s.name: s.id for s in ReferenceManager().list_sources(conn)}
    categories = {c.name: c.id for c in ReferenceManager().list_categories(conn)}

    feed = storage.get_feed(
        conn,
        FeedPreferences(source_ids=[sources["A Paper"]], category_ids=[categories["Sport"]]),
    )

    assert {a.article_url for a in feed.items} == {"https://x/1", "https://x/2"}
    assert storage.get_feed(conn).total == 3


def test_postgres_cache_add_and_conditional_delete(conn, connection_factory):
    cache = PostgresCache(connection_factory)

    assert cache.add("lock", "one", ttl=60)
    assert not cache.add("lock", "two", ttl=60)
    assert cache.get("lock") == "one"
    assert not cache.delete("lock", expected="two")
    assert cache.delete("lock", expected="one")

    cache.put("expired", {"a": 1}, ttl=-1)
    assert cache.get("expired") is None
    assert cache.add("expired", "fresh", ttl=60)
    assert cache.purge_expired() == 0


def test_orchestrator_end_to_end(conn, connection_factory):
    class StubAdapter:
        name = "stub"

        def fetch_and_adapt(self):
            return [_article("https://x/1"), _article("https://x/2")]

    cache = PostgresCache(connection_factory)
    orchestrator = FetchOrchestrator(
        adapters=[StubAdapter()],
        storage=ArticleStorage(),
        connection_factory=connection_factory,
        cache=cache,
    )

    summary = orchestrator.run()
    assert summary.success
    assert summary.total_stored == 2

    assert orchestrator.run().skip_reason == "too_soon"

    assert RunLock(cache).acquire()
    assert orchestrator.run(force=True).skip_reason == "locked"
    assert _count(conn, "articles") == 2
