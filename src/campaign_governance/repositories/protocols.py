"""Protocol definition for the document store collaborator.

The governance engine depends only on these operations and has no
knowledge of the concrete storage technology. Both the in-memory store
and the SQL store satisfy it.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, Field


class Document(BaseModel):
    """A stored document and its identifier."""

    doc_id: str
    data: dict[str, Any] = Field(default_factory=dict)


@runtime_checkable
class DocumentStore(Protocol):
    """Protocol for key-document storage.

    Errors are reported through ``campaign_governance.repositories.errors``:
    ``DocumentNotFound`` for a missing id, ``PreconditionFailed`` when a
    conditional update's precondition does not hold at write time,
    ``DocumentExists`` (a PreconditionFailed) when ``create`` finds the id
    taken, and ``StorageUnavailable`` for I/O failures.
    """

    async def get(self, collection: str, doc_id: str) -> Document: ...

    async def conditional_update(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        precondition: dict[str, Any] | None = None,
    ) -> None: ...

    async def append(self, collection: str, fields: dict[str, Any]) -> str: ...

    async def create(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None: ...

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Document]: ...

    async def put(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None: ...
