"""DuckDB key-value storage for persisted store documents.

Each store (session, orders, books) owns one JSON document under a logical
key. Loading flags and errors are never written here.
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional

import duckdb

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"


class DuckDBKeyValueStorage:
    """Durable document storage backed by a single DuckDB table.

    Stores call the blocking methods through ``loop.run_in_executor``, so every
    use of the connection is serialized with a lock.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path or MEMORY_DB
        self.conn: Optional[duckdb.DuckDBPyConnection] = None
        self._lock = threading.Lock()

    def start(self) -> None:
        """Open the database and create the documents table."""
        if self.conn is not None:
            return
        if self.db_path != MEMORY_DB:
            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        self.conn = duckdb.connect(self.db_path)
        self._create_schema()
        logger.info(f"Key-value storage initialized: {self.db_path}")

    def _create_schema(self) -> None:
        with self._lock:
            self._require_conn().execute("""
                CREATE TABLE IF NOT EXISTS kv_documents (
                    key VARCHAR PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def _require_conn(self) -> duckdb.DuckDBPyConnection:
        if self.conn is None:
            raise RuntimeError("Storage not started! Call start() first.")
        return self.conn

    def save_document(self, key: str, data: Dict[str, Any]) -> None:
        """Insert or replace the document stored under ``key``."""
        payload = json.dumps(data, default=str)
        with self._lock:
            self._require_conn().execute(
                "INSERT OR REPLACE INTO kv_documents (key, value, updated_at) "
                "VALUES (?, ?, CURRENT_TIMESTAMP)",
                (key, payload),
            )
        logger.debug(f"Saved document '{key}' ({len(payload)} bytes)")

    def load_document(self, key: str) -> Optional[Dict[str, Any]]:
        """Return the stored document, or None if absent or unreadable."""
        with self._lock:
            row = self._require_conn().execute(
                "SELECT value FROM kv_documents WHERE key = ?", (key,)
            ).fetchone()
        if row is None:
            return None
        try:
            data = json.loads(row[0])
        except json.JSONDecodeError as e:
            logger.error(f"Discarding corrupt document '{key}': {e}")
            return None
        if not isinstance(data, dict):
            logger.error(f"Discarding document '{key}': expected an object")
            return None
        return data

    def delete_document(self, key: str) -> None:
        with self._lock:
            self._require_conn().execute("DELETE FROM kv_documents WHERE key = ?", (key,))
        logger.debug(f"Deleted document '{key}'")

    def list_keys(self) -> List[str]:
        with self._lock:
            rows = self._require_conn().execute(
                "SELECT key FROM kv_documents ORDER BY key"
            ).fetchall()
        return [row[0] for row in rows]

    def close(self) -> None:
        """Close the connection; safe to call more than once."""
        with self._lock:
            if self.conn is not None:
                self.conn.close()
                self.conn = None
                logger.info(f"Key-value storage closed: {self.db_path}")
