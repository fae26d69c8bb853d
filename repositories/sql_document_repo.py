"""SQLAlchemy (asyncio) document store."""

from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from sqlalchemy import delete, select, text
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from core.database import Base, DocumentModel
from repositories.document_repo import SummaryPredicate
from schemas.document_schema import DocumentOut, DocumentSummary

logger = logging.getLogger(__name__)

_documents = DocumentModel.__table__
_UPSERT_DIALECTS = {"sqlite": sqlite.insert, "postgresql": postgresql.insert}


class SqlDocumentStore:
    """Document store backed by a relational table.

    Every write is a single statement, so same-title writers are serialized
    by the database's own locking and no Python lock is held across awaits.
    """

    def __init__(self, engine: AsyncEngine):
        dialect = engine.dialect.name
        if dialect not in _UPSERT_DIALECTS:
            raise RuntimeError(f"Unsupported database dialect for document store: {dialect}")
        self.engine = engine
        self._insert = _UPSERT_DIALECTS[dialect]
        self.async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

    async def initialize(self) -> None:
        """Create the documents table if it does not exist."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.info("Document table ready on %s", self.engine.url.render_as_string(hide_password=True))

    async def put(self, title: str, metadata: dict[str, Any]) -> int:
        stmt = self._insert(_documents).values(title=title, revision=0, metadata=metadata)
        stmt = stmt.on_conflict_do_update(
            index_elements=[_documents.c.title],
            set_={
                "revision": _documents.c.revision + 1,
                "metadata": stmt.excluded["metadata"],
            },
        ).returning(_documents.c.revision)

        async with self.async_session() as session:
            result = await session.execute(stmt)
            revision = result.scalar_one()
            await session.commit()
        logger.debug("Put document %r at revision %d", title, revision)
        return revision

    async def get(self, title: str) -> DocumentOut | None:
        async with self.async_session() as session:
            result = await session.execute(
                select(_documents.c.title, _documents.c.revision, _documents.c["metadata"]).where(
                    _documents.c.title == title
                )
            )
            row = result.one_or_none()
        if row is None:
            return None
        return DocumentOut(title=row[0], revision=row[1], metadata=row[2] or {})

    async def delete(self, title: str) -> dict[str, Any] | None:
        """Remove the row and return the metadata it held, or None if absent."""
        async with self.async_session() as session:
            result = await session.execute(
                delete(_documents).where(_documents.c.title == title).returning(_documents.c["metadata"])
            )
            row = result.one_or_none()
            await session.commit()
        if row is None:
            return None
        logger.debug("Deleted document %r", title)
        return row[0] or {}

    async def list(self, predicate: SummaryPredicate | None = None) -> AsyncIterator[DocumentSummary]:
        async with self.async_session() as session:
            result = await session.stream(select(_documents.c.title, _documents.c.revision))
            async for title, revision in result:
                summary = DocumentSummary(title=title, revision=revision)
                if predicate is None or predicate(summary):
                    yield summary

    async def ping(self) -> None:
        async with self.engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def close(self) -> None:
        """Close database connections."""
        await self.engine.dispose()
