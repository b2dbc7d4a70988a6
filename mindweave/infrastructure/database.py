"""Database access for Mindweave

All features share ONE SQLite database (default: mindweave/data/mindweave.db,
override with MINDWEAVE_DB_PATH) and reach it through get_db_connection() or
db_transaction().

Provides:
- Connection pooling (connections are reused across requests)
- Vector similarity in SQL: every connection registers cosine_distance(a, b)
  over JSON-encoded embeddings, so similarity queries stay in the database
- JSON helpers for list/object columns
- Retry on SQLITE_BUSY with exponential backoff
- Schema initialization and validation
"""

from __future__ import annotations

import atexit
import hashlib
import json
import math
import os
import random
import sqlite3
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from functools import lru_cache, wraps
from pathlib import Path
from queue import Empty, Full, Queue
from threading import Lock
from typing import Any, TypeVar

import numpy as np

from mindweave.config import (
    DB_CONNECT_TIMEOUT,
    DB_POOL_SIZE,
    DB_POOL_TIMEOUT,
    DB_RETRY_BASE_DELAY,
    DB_RETRY_JITTER,
    DB_RETRY_MAX,
    DB_RETRY_MAX_DELAY,
    DB_TEMP_CONN_MAX,
)
from mindweave.observability.logging import get_logger
from mindweave.observability.telemetry import counter, log_event

F = TypeVar("F", bound=Callable[..., Any])

DB_PATH = Path(__file__).parent.parent / "data" / "mindweave.db"

logger = get_logger(__name__)


def retry_on_db_lock(
    max_retries: int = DB_RETRY_MAX,
    base_delay: float = DB_RETRY_BASE_DELAY,
    max_delay: float = DB_RETRY_MAX_DELAY,
) -> Callable[[F], F]:
    """
    Retry a database operation when SQLite reports the database is locked/busy.

    Usage:
        @retry_on_db_lock()
        def save_item():
            with db_transaction() as conn:
                conn.execute("INSERT INTO ...")

    Any other OperationalError propagates immediately.
    """

    def decorator(func: F) -> F:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return func(*args, **kwargs)
                except sqlite3.OperationalError as e:
                    message = str(e).lower()
                    if "locked" not in message and "busy" not in message:
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "Database lock retry exhausted after %d attempts: %s", max_retries, e
                        )
                        counter("database.lock_retry_exhausted")
                        raise

                    delay = min(base_delay * (2**attempt), max_delay)
                    sleep_time = delay + random.uniform(0, delay * DB_RETRY_JITTER)
                    logger.warning(
                        "Database locked (attempt %d/%d), retrying in %.2fs",
                        attempt + 1,
                        max_retries,
                        sleep_time,
                    )
                    time.sleep(sleep_time)
            return None  # pragma: no cover

        return wrapper  # type: ignore[return-value]

    return decorator


# ---------------------------------------------------------------------------
# SQL functions
# ---------------------------------------------------------------------------


def cosine_distance(a_json: str | None, b_json: str | None) -> float | None:
    """
    Cosine distance between two JSON-encoded vectors (1 - cosine similarity).

    Zero-magnitude, mismatched or missing vectors have no defined distance:
    the function returns None, which SQLite sees as NULL, so similarity
    queries drop those rows with `IS NOT NULL`.
    """
    if a_json is None or b_json is None:
        return None

    a = np.asarray(json.loads(a_json), dtype=np.float64)
    b = np.asarray(json.loads(b_json), dtype=np.float64)
    if a.shape != b.shape or a.size == 0:
        return None

    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0:
        return None
    distance = 1.0 - float(np.dot(a, b) / norm)
    return None if math.isnan(distance) else distance


def _md5_hex(value: str | None) -> str | None:
    if value is None:
        return None
    return hashlib.md5(value.encode("utf-8")).hexdigest()


class DatabaseConnectionPool:
    """
    Thread-safe connection pool for SQLite

    Pooled connections are created with WAL mode, foreign keys enabled, the
    Row factory and the Mindweave SQL functions registered.
    """

    def __init__(self, db_path: Path, pool_size: int = DB_POOL_SIZE):
        self.db_path = db_path
        self.pool_size = pool_size
        self.pool: Queue[sqlite3.Connection] = Queue(maxsize=pool_size)
        self.lock = Lock()
        self.closed = False
        self.temp_conn_count = 0
        self.temp_conn_max = DB_TEMP_CONN_MAX
        # sqlite3.Connection takes no extra attributes, so temporaries are tracked by id
        self._temp_ids: set[int] = set()
        self._initialize_pool()

        atexit.register(self.close_all)

    def _create_connection(self) -> sqlite3.Connection:
        """
        Open a configured SQLite connection

        Raises:
            RuntimeError: If the integrity check fails
        """
        conn = sqlite3.connect(
            str(self.db_path),
            timeout=DB_CONNECT_TIMEOUT,
            check_same_thread=False,
        )

        try:
            result = conn.execute("PRAGMA quick_check(1)").fetchone()
        except sqlite3.DatabaseError as e:
            conn.close()
            logger.critical("Database error during integrity check: %s", e)
            counter("database.corruption_detected")
            raise RuntimeError(f"Database corruption detected: {e}") from e
        if result[0] != "ok":
            conn.close()
            logger.critical("Database corruption detected: %s", result[0])
            counter("database.corruption_detected")
            raise RuntimeError(f"Database corruption detected: {result[0]}")

        conn.execute("PRAGMA journal_mode=WAL")
        conn.execute("PRAGMA synchronous=NORMAL")
        conn.execute("PRAGMA foreign_keys=ON")

        conn.create_function("cosine_distance", 2, cosine_distance, deterministic=True)
        conn.create_function("md5", 1, _md5_hex, deterministic=True)

        conn.row_factory = sqlite3.Row
        return conn

    def _initialize_pool(self) -> None:
        for _ in range(self.pool_size):
            try:
                self.pool.put(self._create_connection())
            except Exception as e:
                logger.warning("Failed to create pooled connection: %s", e)

    def get_connection(self) -> sqlite3.Connection:
        """
        Take a connection from the pool, or open a temporary one when exhausted.

        Raises:
            RuntimeError: If the pool is closed or the temporary limit is reached
        """
        if self.closed:
            raise RuntimeError("Connection pool has been closed")

        try:
            return self.pool.get(block=True, timeout=DB_POOL_TIMEOUT)
        except Empty:
            with self.lock:
                if self.temp_conn_count >= self.temp_conn_max:
                    logger.critical(
                        "Temporary connection limit reached: %d/%d (pool_size=%d)",
                        self.temp_conn_count,
                        self.temp_conn_max,
                        self.pool_size,
                    )
                    raise RuntimeError(
                        "Database connection pool exhausted and temporary connection "
                        f"limit reached (pool_size={self.pool_size})"
                    ) from None
                self.temp_conn_count += 1
                temp_count = self.temp_conn_count

            logger.error(
                "Connection pool exhausted (pool_size=%d), opening temporary connection %d/%d",
                self.pool_size,
                temp_count,
                self.temp_conn_max,
            )
            log_event("database.pool_exhausted", pool_size=self.pool_size, temp=temp_count)

            conn = self._create_connection()
            with self.lock:
                self._temp_ids.add(id(conn))
            return conn

    def return_connection(self, conn: sqlite3.Connection) -> None:
        """Return a connection to the pool; temporary connections are closed."""
        with self.lock:
            is_temp = id(conn) in self._temp_ids
            if is_temp:
                self._temp_ids.discard(id(conn))
                self.temp_conn_count -= 1

        if self.closed or is_temp:
            conn.close()
            return

        if conn.in_transaction:
            conn.rollback()

        try:
            self.pool.put_nowait(conn)
        except Full:
            logger.warning("Failed to return connection to pool (pool full), closing")
            conn.close()

    def close_all(self) -> None:
        """Close every pooled connection and mark the pool closed."""
        self.closed = True
        while not self.pool.empty():
            try:
                self.pool.get_nowait().close()
            except Empty:
                break


@lru_cache(maxsize=1)
def get_pool() -> DatabaseConnectionPool:
    """Process-wide connection pool (singleton via lru_cache)."""
    return DatabaseConnectionPool(get_db_path(), pool_size=DB_POOL_SIZE)


def reset_pool() -> None:
    """Close and forget the current pool (tests and DB path changes)."""
    if get_pool.cache_info().currsize:
        get_pool().close_all()
    get_pool.cache_clear()


def get_db_path() -> Path:
    """Database path: MINDWEAVE_DB_PATH if set, else the default location."""
    if env_path := os.getenv("MINDWEAVE_DB_PATH"):
        return Path(env_path)
    return DB_PATH


@contextmanager
def get_db_connection() -> Generator[sqlite3.Connection, None, None]:
    """
    Pooled database connection (context manager)

    Usage:
        with get_db_connection() as conn:
            rows = conn.execute("SELECT * FROM content WHERE user_id = ?", (uid,)).fetchall()

    Raises:
        FileNotFoundError: If the database has not been initialized
    """
    db_path = get_db_path()
    if not db_path.exists():
        raise FileNotFoundError(f"Database not found: {db_path}\nRun init_database() first")

    pool = get_pool()
    conn = pool.get_connection()
    try:
        yield conn
    finally:
        pool.return_connection(conn)


@contextmanager
def db_transaction() -> Generator[sqlite3.Connection, None, None]:
    """
    Transaction scope: commits on success, rolls back on error.

    Usage:
        with db_transaction() as conn:
            conn.execute("INSERT INTO collections ...")
            conn.execute("INSERT INTO content_collections ...")
    """
    with get_db_connection() as conn:
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise


def execute_query(
    query: str,
    params: tuple[Any, ...] | dict[str, Any] | None = None,
    fetch: str = "all",
) -> list[sqlite3.Row] | sqlite3.Row | None:
    """
    Run a single statement on a pooled connection.

    Args:
        query: SQL query string
        params: Query parameters (tuple or dict)
        fetch: 'all', 'one', or 'none' (commits)
    """
    with get_db_connection() as conn:
        cursor = conn.execute(query, params or ())
        if fetch == "all":
            return cursor.fetchall()
        if fetch == "one":
            return cursor.fetchone()
        conn.commit()
        return None


# ---------------------------------------------------------------------------
# Column helpers
# ---------------------------------------------------------------------------


def to_json(value: Any) -> str:
    return json.dumps(value)


def from_json(raw: str | None, default: Any) -> Any:
    """Decode a JSON column, falling back to default on NULL or bad data."""
    if raw is None or raw == "":
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.warning("Invalid JSON column value, using default")
        return default


def init_database() -> None:
    """Create tables and indexes if missing (idempotent)."""
    from mindweave.infrastructure.database_schema import init_database as _init_database

    _init_database(get_db_path())


def validate_schema() -> bool:
    """
    Check the database has every required table and column.

    Raises:
        ValueError: If tables or columns are missing
    """
    from mindweave.infrastructure.database_schema import validate_schema as _validate_schema

    with get_db_connection() as conn:
        return _validate_schema(conn)


def get_pool_stats() -> dict[str, Any]:
    """Connection pool health metrics for /health/db."""
    pool = get_pool()
    available = pool.pool.qsize()
    in_use = pool.pool_size - available
    usage_percent = (in_use / pool.pool_size) * 100 if pool.pool_size > 0 else 0

    return {
        "pool_size": pool.pool_size,
        "available": available,
        "in_use": in_use,
        "temporary": pool.temp_conn_count,
        "usage_percent": round(usage_percent, 1),
        "closed": pool.closed,
    }
