"""In-memory document store."""

from __future__ import annotations

import asyncio
import copy
import uuid
from typing import Any

from campaign_governance.repositories.errors import (
    DocumentExists,
    DocumentNotFound,
    PreconditionFailed,
)
from campaign_governance.repositories.protocols import Document


def sort_documents(docs: list[Document], order_by: str) -> list[Document]:
    """Stable sort on a data field; a ``-`` prefix sorts descending.

    Documents missing the field always sort last.
    """
    descending = order_by.startswith("-")
    field = order_by.lstrip("-")
    present = [d for d in docs if d.data.get(field) is not None]
    missing = [d for d in docs if d.data.get(field) is None]
    # Strings sort apart from numbers so a mistyped value cannot break the sort
    return sorted(
        present,
        key=lambda d: (isinstance(d.data[field], str), d.data[field]),
        reverse=descending,
    ) + missing


class InMemoryDocumentStore:
    """In-memory store for documents, keyed by collection then id.

    Documents are deep-copied on the way in and out so callers can never
    mutate stored state without going through the store.
    """

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}
        self._lock = asyncio.Lock()

    async def get(self, collection: str, doc_id: str) -> Document:
        docs = self._collections.get(collection, {})
        if doc_id not in docs:
            raise DocumentNotFound(collection, doc_id)
        return Document(doc_id=doc_id, data=copy.deepcopy(docs[doc_id]))

    async def conditional_update(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        precondition: dict[str, Any] | None = None,
    ) -> None:
        async with self._lock:
            docs = self._collections.get(collection, {})
            if doc_id not in docs:
                raise DocumentNotFound(collection, doc_id)
            current = docs[doc_id]
            for key, expected in (precondition or {}).items():
                if current.get(key) != expected:
                    raise PreconditionFailed(
                        f"{collection}/{doc_id}: expected {key}={expected!r}, "
                        f"found {current.get(key)!r}"
                    )
            current.update(copy.deepcopy(fields))

    async def append(self, collection: str, fields: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        async with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(fields)
        return doc_id

    async def create(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        async with self._lock:
            docs = self._collections.setdefault(collection, {})
            if doc_id in docs:
                raise DocumentExists(collection, doc_id)
            docs[doc_id] = copy.deepcopy(fields)

    async def put(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        async with self._lock:
            self._collections.setdefault(collection, {})[doc_id] = copy.deepcopy(fields)

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        filters = filters or {}
        results = [
            Document(doc_id=doc_id, data=copy.deepcopy(data))
            for doc_id, data in self._collections.get(collection, {}).items()
            if all(data.get(k) == v for k, v in filters.items())
        ]
        if order_by:
            results = sort_documents(results, order_by)
        if limit is not None:
            results = results[:limit]
        return results

    def tamper(self, collection: str, doc_id: str, **fields: Any) -> None:
        """Overwrite stored fields directly, bypassing every check.

        Simulates out-of-band modification for integrity tests.
        """
        self._collections[collection][doc_id].update(fields)

    def remove(self, collection: str, doc_id: str) -> None:
        """Delete a document directly, bypassing the store contract."""
        del self._collections[collection][doc_id]
