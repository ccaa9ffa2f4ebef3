"""Tests for database schema creation and migration."""

from kachori.db.schema import _SCHEMA_VERSION, ensure_schema


def test_ensure_schema_creates_tables(tmp_path):
    """Schema creates the key-value and version tables."""
    db_path = tmp_path / "test.db"
    conn = ensure_schema(db_path)

    tables = conn.execute(
        "SELECT name FROM sqlite_master WHERE type='table' ORDER BY name"
    ).fetchall()
    table_names = {row["name"] for row in tables}

    assert "kv_store" in table_names
    assert "schema_version" in table_names

    conn.close()


def test_ensure_schema_creates_parent_dirs(tmp_path):
    """Schema creates parent directories if they don't exist."""
    db_path = tmp_path / "sub" / "dir" / "test.db"
    conn = ensure_schema(db_path)
    assert db_path.exists()
    conn.close()


def test_ensure_schema_sets_version(tmp_path):
    """Schema version is set after creation."""
    conn = ensure_schema(tmp_path / "test.db")

    row = conn.execute("SELECT version FROM schema_version").fetchone()
    assert row["version"] == _SCHEMA_VERSION

    conn.close()


def test_ensure_schema_idempotent(tmp_path):
    """Calling ensure_schema twice doesn't error."""
    db_path = tmp_path / "test.db"
    conn1 = ensure_schema(db_path)
    conn1.close()

    conn2 = ensure_schema(db_path)
    row = conn2.execute("SELECT version FROM schema_version").fetchone()
    assert row["version"] == _SCHEMA_VERSION
    conn2.close()


def test_ensure_schema_wal_mode(tmp_path):
    """Schema sets WAL journal mode."""
    conn = ensure_schema(tmp_path / "test.db")

    mode = conn.execute("PRAGMA journal_mode").fetchone()
    assert mode[0] == "wal"

    conn.close()


def test_ensure_schema_in_memory():
    """An in-memory database gets the same tables."""
    conn = ensure_schema(":memory:")

    info = conn.execute("PRAGMA table_info(kv_store)").fetchall()
    col_names = {row["name"] for row in info}
    assert {"key", "value", "updated_at"}.issubset(col_names)

    conn.close()
