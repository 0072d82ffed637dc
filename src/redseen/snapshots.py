"""Snapshot stores: per-post record of comment ids seen at last acknowledgement."""

from __future__ import annotations

import json
from typing import Any, Protocol

import sqlalchemy as sa
import structlog

from redseen.db import CommentSnapshot, upsert
from redseen.models import Snapshot
from redseen.utils.db import now_iso


def parse_snapshot(raw: str | bytes | dict[str, Any] | None) -> Snapshot | None:
    """Decode stored snapshot data. Anything malformed reads as no snapshot."""
    if raw is None:
        return None
    try:
        data = json.loads(raw) if isinstance(raw, (str, bytes)) else raw
        return Snapshot.model_validate(data)
    except ValueError:  # JSONDecodeError, UnicodeDecodeError and ValidationError
        return None


def dump_snapshot(snapshot: Snapshot) -> str:
    return snapshot.model_dump_json(by_alias=True)


class SnapshotStore(Protocol):
    """Key-value persistence of snapshots, keyed by post permalink."""

    def get(self, permalink: str) -> Snapshot | None:
        ...

    def set(self, permalink: str, snapshot: Snapshot) -> None:
        ...


class MemorySnapshotStore:
    """Dict-backed store for tests and single-process use."""

    def __init__(self, initial: dict[str, Snapshot] | None = None) -> None:
        self._snapshots: dict[str, Snapshot] = dict(initial or {})

    def get(self, permalink: str) -> Snapshot | None:
        return self._snapshots.get(permalink)

    def set(self, permalink: str, snapshot: Snapshot) -> None:
        self._snapshots[permalink] = snapshot

    def __len__(self) -> int:
        return len(self._snapshots)


class SqlSnapshotStore:
    """One ``comment_snapshots`` row per permalink; each write replaces the row."""

    def __init__(self, engine: sa.engine.Engine, log: structlog.stdlib.BoundLogger | None = None) -> None:
        self.engine = engine
        self.log = log or structlog.get_logger("redseen.snapshots")

    def get(self, permalink: str) -> Snapshot | None:
        with self.engine.connect() as conn:
            row = conn.execute(
                sa.select(CommentSnapshot.comment_ids, CommentSnapshot.last_fetch_time)
                .where(CommentSnapshot.permalink == permalink)
            ).first()
        if row is None:
            return None

        try:
            comment_ids = json.loads(row.comment_ids)
        except ValueError:
            comment_ids = None
        snapshot = parse_snapshot({"commentIds": comment_ids, "lastFetchTime": row.last_fetch_time})
        if snapshot is None:
            self.log.warning("snapshots.malformed", permalink=permalink)
        return snapshot

    def set(self, permalink: str, snapshot: Snapshot) -> None:
        values = dict(
            permalink=permalink,
            comment_ids=json.dumps(sorted(snapshot.comment_ids)),
            last_fetch_time=snapshot.last_fetch_time,
            updated_at=now_iso(),
        )
        with self.engine.begin() as conn:
            upsert(conn, CommentSnapshot, values, key="permalink")
        self.log.debug("snapshots.stored", permalink=permalink, comment_ids=len(snapshot.comment_ids))

    def delete(self, permalink: str) -> bool:
        with self.engine.begin() as conn:
            result = conn.execute(sa.delete(CommentSnapshot).where(CommentSnapshot.permalink == permalink))
        return result.rowcount > 0

    def count(self) -> int:
        with self.engine.connect() as conn:
            return conn.execute(sa.select(sa.func.count()).select_from(CommentSnapshot)).scalar() or 0

    def permalinks(self) -> list[str]:
        with self.engine.connect() as conn:
            rows = conn.execute(sa.select(CommentSnapshot.permalink).order_by(CommentSnapshot.permalink)).fetchall()
        return [row.permalink for row in rows]
