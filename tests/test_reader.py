"""Tests for the Reader: caching, annotation, first-view baseline, acknowledgement."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from tree_builder import c, make_post, scenario_tree, tree

from redseen.cache import ListingCache
from redseen.config import AppConfig, SubredditConfig
from redseen.models import Snapshot
from redseen.read_posts import DAY_MS, ReadPostStore
from redseen.reader import Reader
from redseen.snapshots import MemorySnapshotStore, SqlSnapshotStore
from redseen.statuses import ListingSort, PostState

PERMALINK = "/r/python/comments/abc123/test_post/"


def _make_config(**kwargs) -> AppConfig:
    return AppConfig(**kwargs)


def _make_reader(engine, posts=None, store=None, config=None, client=None) -> Reader:
    if client is None:
        client = MagicMock()
        client.fetch_posts.return_value = posts if posts is not None else [make_post()]
    return Reader(
        client=client,
        store=store if store is not None else MemorySnapshotStore(),
        cache=ListingCache(engine),
        read_posts=ReadPostStore(engine),
        config=config or _make_config(),
        log=MagicMock(),
    )


def _new_ids(view) -> set[str]:
    ids: set[str] = set()

    def walk(comments):
        for comment in comments:
            if comment.is_new:
                ids.add(comment.id)
            walk(comment.replies)

    walk(view.comments)
    return ids


class TestLoadPosts:
    def test_first_time_view_has_nothing_new(self, engine):
        views = _make_reader(engine).load_posts("python")

        assert len(views) == 1
        view = views[0]
        assert view.state == PostState.UNSEEN
        assert view.new_comment_count == 0
        assert view.has_new_comments is False
        assert view.comment_count == 3
        assert view.is_newly_fetched is True
        assert _new_ids(view) == set()

    def test_annotates_against_stored_snapshot(self, engine):
        store = MemorySnapshotStore({PERMALINK: Snapshot(comment_ids=frozenset({"a"}), last_fetch_time=1)})
        view = _make_reader(engine, store=store).load_posts("python")[0]

        assert view.state == PostState.SEEN_WITH_NEW
        assert view.new_comment_count == 2
        assert view.has_new_comments is True
        assert _new_ids(view) == {"b", "c"}

    def test_uses_config_limit_and_sort(self, engine):
        config = _make_config(subreddits=[SubredditConfig(name="thewallstreet", limit=3, sort=ListingSort.NEW)])
        reader = _make_reader(engine, config=config)

        reader.load_posts("TheWallStreet")
        reader.client.fetch_posts.assert_called_once_with("TheWallStreet", ListingSort.NEW, 3)

    def test_default_limit_and_sort(self, engine):
        reader = _make_reader(engine)
        reader.load_posts("python")
        reader.client.fetch_posts.assert_called_once_with("python", ListingSort.HOT, 6)

    def test_second_load_served_from_cache(self, engine):
        reader = _make_reader(engine)
        reader.load_posts("python")
        views = reader.load_posts("python")

        assert reader.client.fetch_posts.call_count == 1
        assert views[0].is_newly_fetched is False

    def test_refresh_bypasses_cache(self, engine):
        reader = _make_reader(engine)
        reader.load_posts("python")
        reader.load_posts("python", refresh=True)

        assert reader.client.fetch_posts.call_count == 2

    def test_cached_posts_are_reannotated(self, engine):
        store = MemorySnapshotStore()
        reader = _make_reader(engine, store=store)
        assert reader.load_posts("python")[0].new_comment_count == 0

        store.set(PERMALINK, Snapshot(comment_ids=frozenset({"a", "b"}), last_fetch_time=1))
        view = reader.load_posts("python")[0]

        assert reader.client.fetch_posts.call_count == 1
        assert _new_ids(view) == {"c"}

    def test_fetch_errors_propagate(self, engine):
        client = MagicMock()
        client.fetch_posts.side_effect = RuntimeError("boom")
        reader = _make_reader(engine, client=client)

        with pytest.raises(RuntimeError):
            reader.load_posts("python")

    def test_get_post_clamps_index(self, engine):
        posts = [make_post("/r/python/1/", title="one"), make_post("/r/python/2/", title="two")]
        reader = _make_reader(engine, posts=posts)

        assert reader.get_post("python", 0).title == "one"
        assert reader.get_post("python", 9).title == "two"
        assert reader.get_post("python", -3).title == "one"

    def test_get_post_empty_listing(self, engine):
        assert _make_reader(engine, posts=[]).get_post("python", 0) is None


class TestOpenPost:
    def test_first_view_records_baseline(self, engine):
        store = MemorySnapshotStore()
        reader = _make_reader(engine, store=store)
        view = reader.open_post(reader.load_posts("python")[0])

        assert view.state == PostState.SEEN
        assert view.is_read is True
        assert store.get(PERMALINK).comment_ids == frozenset({"a", "b", "c"})

    def test_first_view_without_comments_stays_unseen(self, engine):
        store = MemorySnapshotStore()
        reader = _make_reader(engine, posts=[make_post(comments=[])], store=store)
        view = reader.open_post(reader.load_posts("python")[0])

        assert view.state == PostState.UNSEEN
        assert store.get(PERMALINK) is None

    def test_repeat_view_keeps_new_flags(self, engine):
        store = MemorySnapshotStore({PERMALINK: Snapshot(comment_ids=frozenset({"a"}), last_fetch_time=1)})
        reader = _make_reader(engine, store=store)
        view = reader.open_post(reader.load_posts("python")[0])

        assert view.new_comment_count == 2
        assert store.get(PERMALINK).comment_ids == frozenset({"a"})

    def test_marks_post_read(self, engine):
        reader = _make_reader(engine)
        reader.open_post(reader.load_posts("python")[0])

        assert reader.load_posts("python")[0].is_read is True


class TestAcknowledge:
    def test_replaces_snapshot_and_clears_flags(self, engine):
        store = SqlSnapshotStore(engine, MagicMock())
        store.set(PERMALINK, Snapshot(comment_ids=frozenset({"a", "z"}), last_fetch_time=1))
        reader = _make_reader(engine, store=store)

        view = reader.acknowledge(reader.load_posts("python")[0])

        assert view.state == PostState.SEEN
        assert view.new_comment_count == 0
        assert _new_ids(view) == set()
        assert store.get(PERMALINK).comment_ids == frozenset({"a", "b", "c"})

    def test_new_comments_after_acknowledge(self, engine):
        store = MemorySnapshotStore()
        reader = _make_reader(engine, store=store)
        reader.acknowledge(reader.load_posts("python")[0])

        grown = make_post(comments=scenario_tree() + tree(c("d", c("e"))))
        reader.client.fetch_posts.return_value = [grown]
        view = reader.load_posts("python", refresh=True)[0]

        assert view.state == PostState.SEEN_WITH_NEW
        assert [t.new_comment.id for t in reader.new_threads(view)] == ["d", "e"]

    def test_new_threads_empty_when_nothing_new(self, engine):
        reader = _make_reader(engine)
        assert reader.new_threads(reader.load_posts("python")[0]) == []


class TestCleanupReadPosts:
    def test_removes_uncached_and_expired(self, engine):
        posts = [make_post("/r/python/1/"), make_post("/r/python/2/")]
        reader = _make_reader(engine, posts=posts)
        reader.load_posts("python")

        now = 100 * DAY_MS
        reader.read_posts.mark_read("/r/python/1/", now=now - DAY_MS)
        reader.read_posts.mark_read("/r/python/2/", now=now - 5 * DAY_MS)
        reader.read_posts.mark_read("/r/elsewhere/3/", now=now)

        assert reader.cleanup_read_posts(now=now) == 2
        assert reader.read_posts.read_permalinks() == {"/r/python/1/"}
