"""Database engine, ORM models, and connection management."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import sqlalchemy as sa
from sqlalchemy import event
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


metadata = Base.metadata


class CommentSnapshot(Base):
    """Comment ids known for a post as of its last acknowledgement."""

    __tablename__ = "comment_snapshots"

    permalink: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    comment_ids: Mapped[str] = mapped_column(sa.Text, nullable=False)
    last_fetch_time: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)
    updated_at: Mapped[str | None] = mapped_column(sa.Text, nullable=True)


class ReadPost(Base):
    __tablename__ = "read_posts"

    permalink: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    read_at: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)


class CachedListing(Base):
    __tablename__ = "cached_listings"

    subreddit: Mapped[str] = mapped_column(sa.Text, primary_key=True)
    sort: Mapped[str] = mapped_column(sa.Text, nullable=False)
    posts_json: Mapped[str] = mapped_column(sa.Text, nullable=False)
    fetched_at: Mapped[int] = mapped_column(sa.BigInteger, nullable=False)


sa.Index("idx_read_posts_read_at", ReadPost.read_at)


def _set_sqlite_pragmas(dbapi_conn, connection_record):  # noqa: N802
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.execute("PRAGMA busy_timeout=5000")
    cursor.close()


def get_engine(database_url: str) -> sa.engine.Engine:
    """Create a SQLAlchemy engine. SQLite files get their directory and pragmas."""
    url = sa.engine.make_url(database_url)
    if url.get_backend_name() != "sqlite":
        return sa.create_engine(url, echo=False)

    if url.database and url.database != ":memory:":
        Path(url.database).parent.mkdir(parents=True, exist_ok=True)
    engine = sa.create_engine(url, echo=False)
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


def init_db(engine: sa.engine.Engine) -> None:
    """Create any missing tables."""
    Base.metadata.create_all(engine)


def upsert(conn: sa.Connection, table: type[Base], values: dict[str, Any], key: str) -> None:
    """Insert a row, or overwrite every non-key column of the existing one."""
    if conn.dialect.name == "postgresql":
        from sqlalchemy.dialects.postgresql import insert
    else:
        from sqlalchemy.dialects.sqlite import insert

    stmt = insert(table).values(**values)
    set_ = {col: getattr(stmt.excluded, col) for col in values if col != key}
    stmt = stmt.on_conflict_do_update(index_elements=[key], set_=set_)
    conn.execute(stmt)
