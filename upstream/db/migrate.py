"""Small idempotent migrations for SQLite installations."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy import text
from sqlalchemy.engine import Engine

# Additive only: columns and indexes are added, data is copied, nothing is dropped.

# Canonical date key -> legacy mirror key that report queries filter on.
DATE_MIRRORS: dict[str, str] = {
    "upst_start_date": "upst_start_date__YMD",
    "upst_end_date": "upst_end_date__YMD",
}


def _table_columns(engine: Engine, table: str) -> list[dict[str, object]]:
    with engine.connect() as conn:
        return conn.execute(text(f"PRAGMA table_info({table})")).mappings().all()


def _column_names(engine: Engine, table: str) -> set[str]:
    return {record["name"] for record in _table_columns(engine, table)}


def _add_column_sqlite(engine: Engine, table: str, col_def: str) -> None:
    with engine.begin() as conn:
        conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {col_def}"))


def _create_index_if_not_exists(engine: Engine, table: str, name: str, cols: Iterable[str], unique: bool = False) -> None:
    cols_sql = ", ".join(cols)
    unique_sql = "UNIQUE " if unique else ""
    with engine.begin() as conn:
        conn.execute(text(f"CREATE {unique_sql}INDEX IF NOT EXISTS {name} ON {table} ({cols_sql})"))


def _backfill_date_mirrors(engine: Engine) -> int:
    """Copy milestone dates into missing ``__YMD`` mirror keys. Returns rows added."""

    added = 0
    with engine.begin() as conn:
        for source_key, mirror_key in DATE_MIRRORS.items():
            result = conn.execute(
                text(
                    """
                    INSERT INTO postmeta (post_id, meta_key, meta_value)
                    SELECT m.post_id, :mirror_key, m.meta_value
                    FROM postmeta AS m
                    JOIN posts AS p ON p.id = m.post_id
                    WHERE m.meta_key = :source_key
                      AND p.post_type = 'upst_milestone'
                      AND NOT EXISTS (
                          SELECT 1 FROM postmeta AS x
                          WHERE x.post_id = m.post_id AND x.meta_key = :mirror_key
                      )
                    """
                ),
                {"source_key": source_key, "mirror_key": mirror_key},
            )
            added += result.rowcount or 0
    return added


def run_migrations(engine: Engine) -> None:
    """Bring an existing SQLite schema up to what the models expect."""

    post_cols = _column_names(engine, "posts")
    if not post_cols:
        # Fresh database: Base.metadata.create_all builds the current schema.
        return

    if "post_modified" not in post_cols:
        _add_column_sqlite(engine, "posts", "post_modified TEXT")
        with engine.begin() as conn:
            conn.execute(text("UPDATE posts SET post_modified = post_date WHERE post_modified IS NULL"))

    if _column_names(engine, "postmeta"):
        _create_index_if_not_exists(engine, "postmeta", "ix_postmeta_post_key", ["post_id", "meta_key"])
        _backfill_date_mirrors(engine)
