from __future__ import annotations

from typing import Any, AsyncIterator, Callable, Protocol

from schemas.document_schema import DocumentOut, DocumentSummary

SummaryPredicate = Callable[[DocumentSummary], bool]


class DocumentStore(Protocol):
    """Title-keyed revisioned documents.

    ``put`` is a single conflict-resolving upsert: revision 0 on insert,
    previous revision + 1 on update, serialized per title by the engine.
    """

    async def initialize(self) -> None:
        ...

    async def put(self, title: str, metadata: dict[str, Any]) -> int:
        ...

    async def get(self, title: str) -> DocumentOut | None:
        ...

    async def delete(self, title: str) -> dict[str, Any] | None:
        ...

    def list(self, predicate: SummaryPredicate | None = None) -> AsyncIterator[DocumentSummary]:
        ...

    async def ping(self) -> None:
        ...

    async def close(self) -> None:
        ...
