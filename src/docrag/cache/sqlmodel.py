"""Embedding cache on any SQLAlchemy-supported database via SQLModel."""

import asyncio
from datetime import datetime, timezone
from typing import Optional, Sequence

from loguru import logger
from sqlalchemy import Column, JSON, Text, UniqueConstraint, delete, func
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel, create_engine, select

from ..core.embedding import ChunkEmbedding, EmbeddingRecord
from ..errors import CacheReadError, CacheWriteError
from .base import MAX_DOCUMENT_ID_LENGTH, BaseEmbeddingCache, validate_batch


class EmbeddingRow(SQLModel, table=True):
    """One cached chunk embedding."""
    __tablename__ = "embedding_records"
    __table_args__ = (UniqueConstraint("document_id", "chunk_index", name="uq_document_chunk"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    document_id: str = Field(index=True, max_length=MAX_DOCUMENT_ID_LENGTH)
    chunk_index: int
    chunk_text: str = Field(sa_column=Column(Text, nullable=False))
    vector: list[float] = Field(sa_column=Column(JSON, nullable=False))


class EmbeddedDocument(SQLModel, table=True):
    """Completeness manifest: written in the same transaction as the rows."""
    __tablename__ = "embedded_documents"

    document_id: str = Field(primary_key=True, max_length=MAX_DOCUMENT_ID_LENGTH)
    chunk_count: int
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SQLModelEmbeddingCache(BaseEmbeddingCache):
    """
    Embedding cache backed by a pooled SQLAlchemy engine.

    Works with any SQLAlchemy URL (``sqlite:///...``, ``mysql+pymysql://...``,
    ``postgresql+psycopg://...``). The engine's connection pool is owned by
    the cache instance, which is constructed once and passed to the pipeline.

    Args:
        database_url: SQLAlchemy database URL
        echo: Log emitted SQL
    """

    def __init__(self, database_url: str, echo: bool = False):
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        try:
            self.engine = create_engine(
                database_url,
                echo=echo,
                pool_pre_ping=True,
                connect_args=connect_args,
            )
            SQLModel.metadata.create_all(
                self.engine,
                tables=[EmbeddingRow.__table__, EmbeddedDocument.__table__],
            )
        except SQLAlchemyError as e:
            raise CacheReadError(
                "Cannot initialise embedding cache database", original_error=e
            ) from e
        logger.info(f"SQLModel embedding cache ready on {self.engine.url.render_as_string()}")

    def _exists_sync(self, document_id: str) -> bool:
        try:
            with Session(self.engine) as session:
                manifest = session.get(EmbeddedDocument, document_id)
                if manifest is None or manifest.chunk_count <= 0:
                    return False
                count = session.exec(
                    select(func.count(EmbeddingRow.id)).where(EmbeddingRow.document_id == document_id)
                ).one()
        except SQLAlchemyError as e:
            raise CacheReadError(
                "Failed to check embedding cache",
                details={"document_id": document_id},
                original_error=e,
            ) from e
        return count == manifest.chunk_count

    def _get_all_sync(self, document_id: str) -> list[ChunkEmbedding]:
        try:
            with Session(self.engine) as session:
                rows = session.exec(
                    select(EmbeddingRow)
                    .where(EmbeddingRow.document_id == document_id)
                    .order_by(EmbeddingRow.chunk_index)
                ).all()
                return [
                    ChunkEmbedding(index=row.chunk_index, chunk=row.chunk_text, vector=row.vector)
                    for row in rows
                ]
        except SQLAlchemyError as e:
            raise CacheReadError(
                "Failed to read cached embeddings",
                details={"document_id": document_id},
                original_error=e,
            ) from e

    def _put_batch_sync(self, document_id: str, records: list[EmbeddingRecord]) -> None:
        with Session(self.engine) as session:
            try:
                session.exec(delete(EmbeddingRow).where(EmbeddingRow.document_id == document_id))
                session.exec(delete(EmbeddedDocument).where(EmbeddedDocument.document_id == document_id))
                session.add_all(
                    EmbeddingRow(
                        document_id=r.document_id,
                        chunk_index=r.chunk_index,
                        chunk_text=r.text,
                        vector=r.vector,
                    )
                    for r in records
                )
                session.add(EmbeddedDocument(document_id=document_id, chunk_count=len(records)))
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise CacheWriteError(
                    "Failed to persist embedding batch",
                    details={"document_id": document_id, "records": len(records)},
                    original_error=e,
                ) from e

    def _delete_sync(self, document_id: str) -> None:
        with Session(self.engine) as session:
            try:
                session.exec(delete(EmbeddedDocument).where(EmbeddedDocument.document_id == document_id))
                session.exec(delete(EmbeddingRow).where(EmbeddingRow.document_id == document_id))
                session.commit()
            except SQLAlchemyError as e:
                session.rollback()
                raise CacheWriteError(
                    "Failed to delete cached embeddings",
                    details={"document_id": document_id},
                    original_error=e,
                ) from e

    async def exists(self, document_id: str) -> bool:
        return await asyncio.to_thread(self._exists_sync, document_id)

    async def get_all(self, document_id: str) -> list[ChunkEmbedding]:
        return await asyncio.to_thread(self._get_all_sync, document_id)

    async def put_batch(self, document_id: str, records: Sequence[EmbeddingRecord]) -> None:
        if not records:
            return
        ordered = validate_batch(document_id, records)
        await asyncio.to_thread(self._put_batch_sync, document_id, ordered)

    async def delete(self, document_id: str) -> None:
        await asyncio.to_thread(self._delete_sync, document_id)

    async def close(self) -> None:
        self.engine.dispose()
