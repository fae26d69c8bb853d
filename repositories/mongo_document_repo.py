from __future__ import annotations

import logging
from typing import Any, AsyncIterator

from pymongo import ReturnDocument

from repositories.document_repo import SummaryPredicate
from schemas.document_schema import DocumentOut, DocumentSummary

logger = logging.getLogger(__name__)


def _upsert_pipeline(title: str, metadata: dict[str, Any]) -> list[dict[str, Any]]:
    # $literal keeps "$"-prefixed strings in user metadata from being read as field paths
    return [
        {
            "$set": {
                "title": title,
                "metadata": {"$literal": metadata},
                "revision": {"$add": [{"$ifNull": ["$revision", -1]}, 1]},
            }
        }
    ]


class MongoDocumentStore:
    def __init__(self, collection: Any, *, client: Any | None = None) -> None:
        self._collection = collection
        self._client = client
        self._indexes_ready = False

    async def initialize(self) -> None:
        if self._indexes_ready:
            return
        await self._collection.create_index("title", name="idx_document_title_unique", unique=True)
        self._indexes_ready = True

    async def put(self, title: str, metadata: dict[str, Any]) -> int:
        await self.initialize()
        row = await self._collection.find_one_and_update(
            {"title": title},
            _upsert_pipeline(title, metadata),
            upsert=True,
            return_document=ReturnDocument.AFTER,
            projection={"revision": 1},
        )
        revision = int(row["revision"])
        logger.debug("Put document %r at revision %d", title, revision)
        return revision

    async def get(self, title: str) -> DocumentOut | None:
        await self.initialize()
        row = await self._collection.find_one({"title": title})
        if row is None:
            return None
        return DocumentOut(title=row["title"], revision=row["revision"], metadata=row.get("metadata") or {})

    async def delete(self, title: str) -> dict[str, Any] | None:
        await self.initialize()
        row = await self._collection.find_one_and_delete({"title": title})
        if row is None:
            return None
        logger.debug("Deleted document %r", title)
        return row.get("metadata") or {}

    async def list(self, predicate: SummaryPredicate | None = None) -> AsyncIterator[DocumentSummary]:
        await self.initialize()
        cursor = self._collection.find({}, projection={"_id": 0, "title": 1, "revision": 1})
        async for row in cursor:
            summary = DocumentSummary(title=row["title"], revision=row["revision"])
            if predicate is None or predicate(summary):
                yield summary

    async def ping(self) -> None:
        if self._client is not None:
            await self._client.admin.command("ping")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
