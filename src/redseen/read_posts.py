"""Read markers: when each post was first opened."""

from __future__ import annotations

from collections.abc import Collection

import sqlalchemy as sa

from redseen.db import ReadPost
from redseen.utils.db import now_ms

DAY_MS = 24 * 60 * 60 * 1000


class ReadPostStore:
    def __init__(self, engine: sa.engine.Engine) -> None:
        self.engine = engine

    def mark_read(self, permalink: str, now: int | None = None) -> bool:
        """Record the first read of a post. Returns False if it was already read."""
        with self.engine.begin() as conn:
            exists = conn.execute(sa.select(ReadPost.permalink).where(ReadPost.permalink == permalink)).first()
            if exists:
                return False
            conn.execute(sa.insert(ReadPost).values(permalink=permalink, read_at=now_ms() if now is None else now))
        return True

    def read_permalinks(self) -> set[str]:
        with self.engine.connect() as conn:
            return {row.permalink for row in conn.execute(sa.select(ReadPost.permalink))}

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(sa.select(sa.func.count()).select_from(ReadPost)).scalar() or 0

    def prune(self, keep: Collection[str], retention_days: int, now: int | None = None) -> int:
        """Drop markers older than the retention window or not in *keep*."""
        cutoff = (now_ms() if now is None else now) - retention_days * DAY_MS
        with self.engine.begin() as conn:
            rows = conn.execute(sa.select(ReadPost.permalink, ReadPost.read_at)).fetchall()
            stale = [row.permalink for row in rows if row.permalink not in keep or row.read_at <= cutoff]
            if stale:
                conn.execute(sa.delete(ReadPost).where(ReadPost.permalink.in_(stale)))
        return len(stale)
