"""Tests for the listing cache."""

from __future__ import annotations

from unittest.mock import MagicMock

import sqlalchemy as sa
from tree_builder import make_post

from redseen.cache import ListingCache
from redseen.db import CachedListing
from redseen.diff import annotate
from redseen.models import Snapshot


class TestListingCache:
    def test_miss_when_empty(self, engine):
        assert ListingCache(engine).get("python", "hot") is None

    def test_fresh_hit(self, engine):
        cache = ListingCache(engine, ttl_seconds=300)
        cache.put("python", "hot", [make_post()], now=1_000_000)

        posts = cache.get("python", "hot", now=1_000_000 + 299_000)
        assert [p.permalink for p in posts] == ["/r/python/comments/abc123/test_post/"]
        assert [c.id for c in posts[0].comments] == ["a", "b"]
        assert posts[0].comments[1].replies[0].id == "c"

    def test_expired_after_ttl(self, engine):
        cache = ListingCache(engine, ttl_seconds=300)
        cache.put("python", "hot", [make_post()], now=1_000_000)

        assert cache.get("python", "hot", now=1_000_000 + 300_000) is None

    def test_other_sort_is_a_miss(self, engine):
        cache = ListingCache(engine)
        cache.put("python", "hot", [make_post()], now=1_000_000)

        assert cache.get("python", "new", now=1_000_001) is None

    def test_subreddit_key_is_case_insensitive(self, engine):
        cache = ListingCache(engine)
        cache.put("Python", "hot", [make_post()], now=1_000_000)

        assert cache.get("python", "hot", now=1_000_001) is not None

    def test_put_replaces_entry(self, engine):
        cache = ListingCache(engine)
        cache.put("python", "hot", [make_post("/r/python/1/")], now=1_000_000)
        cache.put("python", "hot", [make_post("/r/python/2/")], now=1_000_000)

        assert [p.permalink for p in cache.get("python", "hot", now=1_000_001)] == ["/r/python/2/"]
        assert cache.count() == 1

    def test_annotations_are_not_stored(self, engine):
        post = make_post()
        annotated = post.model_copy(update={"comments": annotate(post.comments, Snapshot(comment_ids=frozenset()))})
        cache = ListingCache(engine)
        cache.put("python", "hot", [annotated], now=1_000_000)

        cached = cache.get("python", "hot", now=1_000_001)[0]
        assert not any(c.is_new for c in cached.comments)

    def test_malformed_entry_is_a_miss(self, engine):
        log = MagicMock()
        with engine.begin() as conn:
            conn.execute(sa.insert(CachedListing).values(subreddit="python", sort="hot", posts_json="{oops", fetched_at=1_000_000))

        assert ListingCache(engine, log=log).get("python", "hot", now=1_000_001) is None
        log.warning.assert_called_once_with("cache.malformed", subreddit="python")

    def test_permalinks_spans_all_entries(self, engine):
        cache = ListingCache(engine)
        cache.put("python", "hot", [make_post("/r/python/1/"), make_post("/r/python/2/")], now=1)
        cache.put("rust", "new", [make_post("/r/rust/3/")], now=1)

        assert cache.permalinks() == {"/r/python/1/", "/r/python/2/", "/r/rust/3/"}
