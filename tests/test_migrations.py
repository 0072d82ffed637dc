"""Alembic migrations against a fresh SQLite file."""

from __future__ import annotations

from pathlib import Path

import sqlalchemy as sa
from alembic import command
from alembic.config import Config

ROOT = Path(__file__).resolve().parents[1]


def _run_alembic(database_url: str, target: str) -> None:
    alembic_cfg = Config(str(ROOT / "alembic.ini"))
    alembic_cfg.set_main_option("script_location", str(ROOT / "alembic"))
    alembic_cfg.set_main_option("sqlalchemy.url", database_url)
    if target == "base":
        command.downgrade(alembic_cfg, target)
    else:
        command.upgrade(alembic_cfg, target)


class TestAlembicMigration:
    def test_upgrade_head_creates_expected_tables(self, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'migrated.db'}"
        _run_alembic(db_url, "head")

        engine = sa.create_engine(db_url)
        inspector = sa.inspect(engine)
        assert {"comment_snapshots", "read_posts", "cached_listings"} <= set(inspector.get_table_names())
        assert "idx_read_posts_read_at" in {idx["name"] for idx in inspector.get_indexes("read_posts")}
        engine.dispose()

    def test_downgrade_removes_tables(self, tmp_path):
        db_url = f"sqlite:///{tmp_path / 'migrated.db'}"
        _run_alembic(db_url, "head")
        _run_alembic(db_url, "base")

        engine = sa.create_engine(db_url)
        table_names = set(sa.inspect(engine).get_table_names())
        assert "comment_snapshots" not in table_names
        assert "read_posts" not in table_names
        assert "cached_listings" not in table_names
        engine.dispose()
