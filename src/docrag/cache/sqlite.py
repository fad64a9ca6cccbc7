"""
SQLite-based embedding cache.

Persists chunk embeddings so a document is embedded once and served from
disk on every later request.

Schema:
- ``embedding_records``: one row per (document_id, chunk_index), holding the
  chunk text and the vector serialized as a JSON array. The primary key makes
  every write an upsert.
- ``embedded_documents``: one manifest row per document with the number of
  chunks the batch contained. ``exists`` compares it with the stored record
  count, so a document is only reported once its whole batch is present.

Example:
    >>> async with SQLiteEmbeddingCache(db_path="./embeddings.db") as cache:
    ...     if not await cache.exists(doc_id):
    ...         await cache.put_batch(doc_id, records)
    ...     embeddings = await cache.get_all(doc_id)
"""

import asyncio
import contextlib
import json
import logging
import sqlite3
import threading
from pathlib import Path
from typing import Sequence

from ..core.embedding import ChunkEmbedding, EmbeddingRecord
from ..errors import CacheReadError, CacheWriteError
from .base import BaseEmbeddingCache, validate_batch

logger = logging.getLogger(__name__)


class SQLiteEmbeddingCache(BaseEmbeddingCache):
    """
    Persistent embedding cache using SQLite.

    This implementation uses a single reusable connection with proper
    thread synchronization; blocking calls run in worker threads via
    ``asyncio.to_thread`` so the event loop is never blocked.

    Attributes:
        db_path: Path to the SQLite database file
        timeout: Connection timeout in seconds (default: 30.0)
    """

    def __init__(self, db_path: str = "embeddings.db", timeout: float = 30.0):
        """
        Initialize the SQLite embedding cache.

        Args:
            db_path: Path to SQLite database file (parent directories are created)
            timeout: Connection timeout in seconds (default: 30.0)

        Raises:
            CacheReadError: If the database cannot be opened
        """
        self.db_path = db_path
        self.timeout = timeout
        self._lock = threading.RLock()
        self._closed = False

        try:
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            self._connection = sqlite3.connect(
                self.db_path,
                timeout=self.timeout,
                check_same_thread=False  # Allow multi-thread access with our lock
            )
            # WAL gives concurrent readers a consistent snapshot during writes
            self._connection.execute("PRAGMA journal_mode=WAL")
            self._init_db()
        except sqlite3.Error as e:
            raise CacheReadError(
                f"Cannot open embedding cache at {db_path}", original_error=e
            ) from e

        logger.debug(f"SQLiteEmbeddingCache initialized: {db_path}")

    def _init_db(self) -> None:
        """Create the tables if they don't exist."""
        with self._lock, self._connection:
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS embedding_records (
                    document_id TEXT NOT NULL,
                    chunk_index INTEGER NOT NULL,
                    chunk_text TEXT NOT NULL,
                    vector TEXT NOT NULL,
                    PRIMARY KEY (document_id, chunk_index)
                )
            """)
            self._connection.execute("""
                CREATE TABLE IF NOT EXISTS embedded_documents (
                    document_id TEXT PRIMARY KEY,
                    chunk_count INTEGER NOT NULL,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                )
            """)

    def _check_closed(self, error_class: type[CacheReadError] | type[CacheWriteError]) -> None:
        if self._closed:
            raise error_class(
                "Cannot perform operation: SQLiteEmbeddingCache connection has been closed. "
                "Create a new SQLiteEmbeddingCache instance to continue."
            )

    # -- sync implementations ------------------------------------------------

    def _exists_sync(self, document_id: str) -> bool:
        self._check_closed(CacheReadError)
        try:
            with self._lock:
                row = self._connection.execute(
                    """
                    SELECT d.chunk_count,
                           (SELECT COUNT(*) FROM embedding_records r WHERE r.document_id = d.document_id)
                    FROM embedded_documents d
                    WHERE d.document_id = ?
                    """,
                    (document_id,),
                ).fetchone()
        except sqlite3.Error as e:
            raise CacheReadError(
                "Failed to check embedding cache",
                details={"document_id": document_id},
                original_error=e,
            ) from e

        return row is not None and row[0] > 0 and row[0] == row[1]

    def _get_all_sync(self, document_id: str) -> list[ChunkEmbedding]:
        self._check_closed(CacheReadError)
        try:
            with self._lock:
                rows = self._connection.execute(
                    "SELECT chunk_index, chunk_text, vector FROM embedding_records "
                    "WHERE document_id = ? ORDER BY chunk_index",
                    (document_id,),
                ).fetchall()
            return [
                ChunkEmbedding(index=index, chunk=text, vector=json.loads(vector))
                for index, text, vector in rows
            ]
        except (sqlite3.Error, ValueError) as e:
            raise CacheReadError(
                "Failed to read cached embeddings",
                details={"document_id": document_id},
                original_error=e,
            ) from e

    def _put_batch_sync(self, document_id: str, records: list[EmbeddingRecord]) -> None:
        self._check_closed(CacheWriteError)
        params = [
            (r.document_id, r.chunk_index, r.text, json.dumps(r.vector))
            for r in records
        ]

        try:
            # One transaction: committed on success, rolled back on any error
            with self._lock, self._connection:
                self._connection.execute(
                    "DELETE FROM embedding_records WHERE document_id = ?", (document_id,)
                )
                self._connection.executemany(
                    "INSERT OR REPLACE INTO embedding_records "
                    "(document_id, chunk_index, chunk_text, vector) VALUES (?, ?, ?, ?)",
                    params,
                )
                self._connection.execute(
                    "INSERT OR REPLACE INTO embedded_documents (document_id, chunk_count) "
                    "VALUES (?, ?)",
                    (document_id, len(records)),
                )
        except sqlite3.Error as e:
            raise CacheWriteError(
                "Failed to persist embedding batch",
                details={"document_id": document_id, "records": len(records)},
                original_error=e,
            ) from e

    def _delete_sync(self, document_id: str) -> None:
        self._check_closed(CacheWriteError)
        try:
            with self._lock, self._connection:
                self._connection.execute(
                    "DELETE FROM embedded_documents WHERE document_id = ?", (document_id,)
                )
                self._connection.execute(
                    "DELETE FROM embedding_records WHERE document_id = ?", (document_id,)
                )
        except sqlite3.Error as e:
            raise CacheWriteError(
                "Failed to delete cached embeddings",
                details={"document_id": document_id},
                original_error=e,
            ) from e

    # -- async API -------------------------------------------------------------

    async def exists(self, document_id: str) -> bool:
        return await asyncio.to_thread(self._exists_sync, document_id)

    async def get_all(self, document_id: str) -> list[ChunkEmbedding]:
        return await asyncio.to_thread(self._get_all_sync, document_id)

    async def put_batch(self, document_id: str, records: Sequence[EmbeddingRecord]) -> None:
        if not records:
            return
        ordered = validate_batch(document_id, records)
        await asyncio.to_thread(self._put_batch_sync, document_id, ordered)
        logger.debug(f"Cached {len(ordered)} embeddings for {document_id}")

    async def delete(self, document_id: str) -> None:
        await asyncio.to_thread(self._delete_sync, document_id)

    def close_sync(self) -> None:
        """
        Close the database connection.

        Note:
            After calling close, the cache instance cannot be used.
            Any subsequent operations will raise CacheReadError / CacheWriteError.
        """
        if self._closed:
            return

        with self._lock:
            try:
                self._connection.close()
                logger.debug(f"SQLiteEmbeddingCache connection closed: {self.db_path}")
            except sqlite3.Error as e:
                logger.warning(f"Error closing SQLiteEmbeddingCache connection: {e}")
            finally:
                self._closed = True

    async def close(self) -> None:
        self.close_sync()

    def __del__(self):
        """Clean up database connection on garbage collection."""
        if not getattr(self, "_closed", True):
            with contextlib.suppress(Exception):
                self.close_sync()
