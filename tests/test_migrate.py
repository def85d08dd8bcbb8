import os
import sys
from pathlib import Path

from sqlalchemy import create_engine, text

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

os.environ.setdefault("DATA_DIR", str(ROOT / "data"))

from upstream.db.migrate import run_migrations


def _legacy_engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'legacy.db'}")
    with engine.begin() as conn:
        conn.execute(
            text(
                """
                CREATE TABLE posts (
                    id INTEGER PRIMARY KEY,
                    post_type TEXT NOT NULL,
                    post_title TEXT NOT NULL,
                    post_content TEXT NOT NULL,
                    post_author INTEGER NOT NULL,
                    post_status TEXT NOT NULL,
                    post_date TEXT NOT NULL
                )
                """
            )
        )
        conn.execute(
            text(
                """
                CREATE TABLE postmeta (
                    meta_id INTEGER PRIMARY KEY,
                    post_id INTEGER NOT NULL,
                    meta_key TEXT NOT NULL,
                    meta_value TEXT
                )
                """
            )
        )
        conn.execute(
            text(
                "INSERT INTO posts VALUES "
                "(1, 'upst_milestone', 'Design', '', 1, 'publish', '2024-04-01 10:00:00'), "
                "(2, 'project', 'Relaunch', '', 1, 'publish', '2024-04-01 09:00:00')"
            )
        )
        conn.execute(
            text(
                "INSERT INTO postmeta (post_id, meta_key, meta_value) VALUES "
                "(1, 'upst_start_date', '\"2024-05-01\"'), "
                "(1, 'upst_end_date', '\"2024-05-31\"'), "
                "(1, 'upst_end_date__YMD', '\"2024-05-31\"'), "
                "(2, 'upst_start_date', '\"2024-01-01\"')"
            )
        )
    return engine


def test_run_migrations_adds_columns_and_backfills_mirrors(tmp_path):
    engine = _legacy_engine(tmp_path)

    run_migrations(engine)

    with engine.connect() as conn:
        columns = {row["name"] for row in conn.execute(text("PRAGMA table_info(posts)")).mappings()}
        assert "post_modified" in columns
        modified = conn.execute(text("SELECT post_modified FROM posts WHERE id = 1")).scalar_one()
        assert modified == "2024-04-01 10:00:00"

        mirrors = conn.execute(
            text("SELECT post_id, meta_key, meta_value FROM postmeta WHERE meta_key LIKE '%__YMD' ORDER BY meta_key")
        ).all()
    assert [tuple(row) for row in mirrors] == [
        (1, "upst_end_date__YMD", '"2024-05-31"'),
        (1, "upst_start_date__YMD", '"2024-05-01"'),
    ]


def test_run_migrations_is_idempotent(tmp_path):
    engine = _legacy_engine(tmp_path)
    run_migrations(engine)
    run_migrations(engine)

    with engine.connect() as conn:
        count = conn.execute(text("SELECT COUNT(*) FROM postmeta WHERE meta_key LIKE '%__YMD'")).scalar_one()
    assert count == 2


def test_run_migrations_skips_fresh_databases(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'fresh.db'}")
    run_migrations(engine)
    with engine.connect() as conn:
        tables = conn.execute(text("SELECT name FROM sqlite_master WHERE type = 'table'")).all()
    assert tables == []
