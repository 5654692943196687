"""Tests for database schema creation."""

import sqlite3

from pricey.ocr.db.schema import ensure_schema


def test_ensure_schema_creates_tables(tmp_path):
    """ensure_schema creates all expected tables."""
    db_path = tmp_path / "test.db"
    conn = ensure_schema(db_path)

    tables = {
        row[0]
        for row in conn.execute(
            "SELECT name FROM sqlite_master WHERE type='table'"
        ).fetchall()
    }
    assert "receipt_jobs" in tables
    assert "extracted_receipts" in tables
    assert "extracted_items" in tables
    assert "schema_version" in tables
    conn.close()


def test_ensure_schema_idempotent(tmp_path):
    """Calling ensure_schema twice does not fail or reset data."""
    db_path = tmp_path / "test.db"
    conn1 = ensure_schema(db_path)
    conn1.execute(
        "INSERT INTO receipt_jobs (id, image_ref, created_at, updated_at) "
        "VALUES ('r1', 'a.jpg', 'x', 'x')"
    )
    conn1.commit()
    conn1.close()

    conn2 = ensure_schema(db_path)
    count = conn2.execute("SELECT COUNT(*) FROM receipt_jobs").fetchone()[0]
    assert count == 1
    version = conn2.execute("SELECT version FROM schema_version").fetchone()[0]
    assert version == 1
    conn2.close()


def test_ensure_schema_creates_parent_dirs(tmp_path):
    """ensure_schema creates parent directories if needed."""
    db_path = tmp_path / "sub" / "dir" / "test.db"
    conn = ensure_schema(db_path)
    assert db_path.exists()
    conn.close()


def test_wal_and_foreign_keys(tmp_path):
    conn = ensure_schema(tmp_path / "test.db")
    assert conn.execute("PRAGMA journal_mode").fetchone()[0] == "wal"
    assert conn.execute("PRAGMA foreign_keys").fetchone()[0] == 1
    conn.close()


def test_row_factory(tmp_path):
    conn = ensure_schema(tmp_path / "test.db")
    row = conn.execute("SELECT 1 AS one").fetchone()
    assert isinstance(row, sqlite3.Row)
    assert row["one"] == 1
    conn.close()
