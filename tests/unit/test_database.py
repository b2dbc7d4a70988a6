"""Unit tests for the database layer

Tests cover:
- cosine_distance SQL function (including undefined cases)
- md5 SQL function
- Pooled connections: foreign keys, rollback on error, temporary connections
- JSON column helpers
- Schema validation
"""

from __future__ import annotations

import hashlib
import json
import sqlite3

import pytest

from mindweave.infrastructure.database import (
    cosine_distance,
    db_transaction,
    execute_query,
    from_json,
    get_db_connection,
    get_pool,
    get_pool_stats,
    reset_pool,
    retry_on_db_lock,
    validate_schema,
)


class TestCosineDistance:
    def test_identical_vectors_have_zero_distance(self):
        assert cosine_distance("[1, 2, 3]", "[1, 2, 3]") == pytest.approx(0.0)

    def test_orthogonal_and_opposite(self):
        assert cosine_distance("[1, 0]", "[0, 1]") == pytest.approx(1.0)
        assert cosine_distance("[1, 0]", "[-1, 0]") == pytest.approx(2.0)

    @pytest.mark.parametrize(
        ("a", "b"),
        [
            ("[0, 0, 0]", "[1, 2, 3]"),  # zero vector
            ("[1, 2]", "[1, 2, 3]"),  # mismatched dimensions
            ("[]", "[]"),
            (None, "[1]"),
        ],
    )
    def test_undefined_distance_is_null(self, a, b):
        assert cosine_distance(a, b) is None

    def test_registered_on_connections(self):
        with get_db_connection() as conn:
            row = conn.execute(
                "SELECT cosine_distance(?, ?) AS d, md5('mindweave') AS h",
                (json.dumps([1.0, 0.0]), json.dumps([1.0, 1.0])),
            ).fetchone()
        assert row["d"] == pytest.approx(1 - 1 / 2**0.5)
        assert row["h"] == hashlib.md5(b"mindweave").hexdigest()


def test_foreign_keys_enforced(user):
    """Test that content cannot reference a missing user"""
    with pytest.raises(sqlite3.IntegrityError):
        with db_transaction() as conn:
            conn.execute(
                """
                INSERT INTO content (id, user_id, type, title, created_at, updated_at)
                VALUES ('c1', 'ghost', 'note', 't', '2024-01-01', '2024-01-01')
                """
            )


def test_transaction_rolls_back_on_error(user):
    with pytest.raises(RuntimeError):
        with db_transaction() as conn:
            conn.execute(
                "INSERT INTO search_history (id, user_id, query, created_at) "
                "VALUES ('s1', ?, 'q', '2024-01-01')",
                (user.id,),
            )
            raise RuntimeError("abort")

    rows = execute_query("SELECT * FROM search_history")
    assert rows == []


def test_missing_database_raises(tmp_path, monkeypatch):
    monkeypatch.setenv("MINDWEAVE_DB_PATH", str(tmp_path / "absent" / "db.sqlite"))
    reset_pool()
    with pytest.raises(FileNotFoundError, match="init_database"):
        with get_db_connection():
            pass


def test_exhausted_pool_opens_temporary_connection(monkeypatch):
    monkeypatch.setattr("mindweave.infrastructure.database.DB_POOL_TIMEOUT", 0.01)
    pool = get_pool()
    held = [pool.get_connection() for _ in range(pool.pool_size)]

    extra = pool.get_connection()
    assert pool.temp_conn_count == 1
    pool.return_connection(extra)
    assert pool.temp_conn_count == 0

    for conn in held:
        pool.return_connection(conn)
    assert get_pool_stats()["available"] == pool.pool_size


def test_retry_on_db_lock_retries_locked_errors(monkeypatch):
    monkeypatch.setattr("mindweave.infrastructure.database.time.sleep", lambda _: None)
    attempts = {"n": 0}

    @retry_on_db_lock(max_retries=3)
    def flaky():
        attempts["n"] += 1
        if attempts["n"] < 3:
            raise sqlite3.OperationalError("database is locked")
        return "ok"

    assert flaky() == "ok"
    assert attempts["n"] == 3


def test_retry_on_db_lock_does_not_retry_other_errors():
    attempts = {"n": 0}

    @retry_on_db_lock()
    def broken():
        attempts["n"] += 1
        raise sqlite3.OperationalError("no such table: nope")

    with pytest.raises(sqlite3.OperationalError):
        broken()
    assert attempts["n"] == 1


def test_from_json_falls_back_to_default():
    assert from_json(None, []) == []
    assert from_json("not json", {}) == {}
    assert from_json('["a"]', []) == ["a"]


def test_schema_validates():
    assert validate_schema() is True
