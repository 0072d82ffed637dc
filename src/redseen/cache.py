"""Listing cache: fetched posts per subreddit with a freshness window."""

from __future__ import annotations

import json

import sqlalchemy as sa
import structlog
from pydantic import TypeAdapter, ValidationError

from redseen.db import CachedListing, upsert
from redseen.models import Post
from redseen.utils.db import now_ms

_posts_adapter = TypeAdapter(list[Post])


class ListingCache:
    """Posts are stored without annotations; callers re-annotate on every read."""

    def __init__(
        self,
        engine: sa.engine.Engine,
        ttl_seconds: int = 300,
        log: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self.engine = engine
        self.ttl_seconds = ttl_seconds
        self.log = log or structlog.get_logger("redseen.cache")

    def get(self, subreddit: str, sort: str, now: int | None = None) -> list[Post] | None:
        """Return cached posts if fresh and fetched with the same sort, else None."""
        with self.engine.connect() as conn:
            row = conn.execute(
                sa.select(CachedListing.sort, CachedListing.posts_json, CachedListing.fetched_at)
                .where(CachedListing.subreddit == subreddit.lower())
            ).first()
        if row is None or row.sort != sort:
            return None

        age_ms = (now_ms() if now is None else now) - row.fetched_at
        if age_ms >= self.ttl_seconds * 1000:
            return None

        try:
            return _posts_adapter.validate_json(row.posts_json)
        except ValidationError:
            self.log.warning("cache.malformed", subreddit=subreddit)
            return None

    def put(self, subreddit: str, sort: str, posts: list[Post], now: int | None = None) -> None:
        values = dict(
            subreddit=subreddit.lower(),
            sort=sort,
            posts_json=_posts_adapter.dump_json(posts).decode(),
            fetched_at=now_ms() if now is None else now,
        )
        with self.engine.begin() as conn:
            upsert(conn, CachedListing, values, key="subreddit")

    def permalinks(self) -> set[str]:
        """Permalinks of every cached post, fresh or not."""
        with self.engine.connect() as conn:
            rows = conn.execute(sa.select(CachedListing.posts_json)).fetchall()
        permalinks: set[str] = set()
        for row in rows:
            try:
                permalinks.update(post["permalink"] for post in json.loads(row.posts_json))
            except (json.JSONDecodeError, KeyError, TypeError):
                continue
        return permalinks

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(sa.select(sa.func.count()).select_from(CachedListing)).scalar() or 0
