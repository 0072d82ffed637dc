"""Reader: load subreddit posts, annotate new comments, acknowledge on request."""

from __future__ import annotations

import structlog

from redseen import diff
from redseen.cache import ListingCache
from redseen.config import AppConfig
from redseen.models import Post, PostView, Thread
from redseen.read_posts import ReadPostStore
from redseen.reddit import RedditClient
from redseen.snapshots import SnapshotStore
from redseen.statuses import ListingSort, PostState


class Reader:
    """Glue between the fetch layer, the snapshot store and the diff engine.

    Posts come from the listing cache while it is fresh; annotations are
    always recomputed against the current snapshots.
    """

    def __init__(
        self,
        client: RedditClient,
        store: SnapshotStore,
        cache: ListingCache,
        read_posts: ReadPostStore,
        config: AppConfig,
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        self.client = client
        self.store = store
        self.cache = cache
        self.read_posts = read_posts
        self.config = config
        self.log = log

    def load_posts(
        self,
        subreddit: str,
        sort: ListingSort | str | None = None,
        refresh: bool = False,
    ) -> list[PostView]:
        sort = ListingSort(sort) if sort else self.config.sort_for(subreddit)

        posts = None if refresh else self.cache.get(subreddit, sort)
        newly_fetched = posts is None
        if posts is None:
            posts = self.client.fetch_posts(subreddit, sort, self.config.post_limit(subreddit))
            self.cache.put(subreddit, sort, posts)

        read = self.read_posts.read_permalinks()
        views = [self.view(post, newly_fetched=newly_fetched, is_read=post.permalink in read) for post in posts]
        self.log.info(
            "reader.posts_loaded",
            subreddit=subreddit,
            sort=str(sort),
            posts=len(views),
            cached=not newly_fetched,
            new_comments=sum(v.new_comment_count for v in views),
        )
        return views

    def get_post(
        self,
        subreddit: str,
        index: int,
        sort: ListingSort | str | None = None,
        refresh: bool = False,
    ) -> PostView | None:
        """Post at *index*, clamped into range. None if the listing is empty."""
        views = self.load_posts(subreddit, sort, refresh)
        if not views:
            return None
        return views[max(0, min(index, len(views) - 1))]

    def view(self, post: Post, newly_fetched: bool = False, is_read: bool = False) -> PostView:
        snapshot = self.store.get(post.permalink)
        new_count = diff.count_new(post.comments, snapshot)
        return PostView(
            **post.model_dump(include=set(Post.model_fields) - {"comments"}),
            comments=diff.annotate(post.comments, snapshot),
            new_comment_count=new_count,
            has_new_comments=new_count > 0,
            comment_count=len(diff.collect_ids(post.comments)),
            is_newly_fetched=newly_fetched,
            is_read=is_read,
            state=diff.post_state(post.comments, snapshot),
        )

    def open_post(self, view: PostView) -> PostView:
        """Mark the post read; a first view with comments records the baseline."""
        self.read_posts.mark_read(view.permalink)
        view = view.model_copy(update={"is_read": True})
        if view.state == PostState.UNSEEN and view.comments:
            self.log.info("reader.baseline_recorded", permalink=view.permalink)
            return self.acknowledge(view)
        return view

    def acknowledge(self, view: PostView) -> PostView:
        """Replace the post's snapshot with every comment id currently in the tree."""
        snapshot = diff.acknowledge(view.comments)
        self.store.set(view.permalink, snapshot)
        self.log.info(
            "snapshots.acknowledged",
            permalink=view.permalink,
            comment_ids=len(snapshot.comment_ids),
            cleared=view.new_comment_count,
        )
        return view.model_copy(
            update={
                "comments": diff.clear_new_flags(view.comments),
                "new_comment_count": 0,
                "has_new_comments": False,
                "state": PostState.SEEN,
            }
        )

    def new_threads(self, view: PostView) -> list[Thread]:
        return diff.find_new_threads(view.comments)

    def cleanup_read_posts(self, now: int | None = None) -> int:
        removed = self.read_posts.prune(self.cache.permalinks(), self.config.settings.read_retention_days, now=now)
        self.log.info("reader.read_posts_pruned", removed=removed)
        return removed
