"""SQLite database connection and initialization."""
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from src.app.config import get_settings

logger = logging.getLogger("tagcat.storage")

_SCHEMA_PATH = Path(__file__).parent / "schema.sql"
_BUSY_TIMEOUT_MS = 5000


def get_connection() -> sqlite3.Connection:
    settings = get_settings()
    settings.db_path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(settings.db_path), isolation_level=None)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA journal_mode=WAL")
    conn.execute(f"PRAGMA busy_timeout={_BUSY_TIMEOUT_MS}")
    return conn


@contextmanager
def transaction() -> Iterator[sqlite3.Connection]:
    """Open a write transaction; read-modify-write inside it is atomic.

    BEGIN IMMEDIATE takes the write lock before the first read.
    """
    conn = get_connection()
    try:
        conn.execute("BEGIN IMMEDIATE")
        try:
            yield conn
        except Exception:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.close()


def init_db() -> None:
    schema_sql = _SCHEMA_PATH.read_text(encoding="utf-8")
    conn = get_connection()
    try:
        conn.executescript(schema_sql)
    finally:
        conn.close()
    logger.debug("Database initialized at %s", get_settings().db_path)
