"""SQL-backed document store (SQLAlchemy async).

All collections share the ``documents`` table. Conditional updates are an
optimistic compare-and-swap: the precondition is checked against the row
as read, and the write only applies if the row's ``version`` is still the
one that was read. A racing writer therefore observes ``PreconditionFailed``
instead of silently overwriting.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Iterable

from sqlalchemy import select, update
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from campaign_governance.db.engine import DatabaseManager
from campaign_governance.db.models import DocumentRow
from campaign_governance.repositories.errors import (
    DocumentExists,
    DocumentNotFound,
    PreconditionFailed,
    StorageUnavailable,
)
from campaign_governance.repositories.protocols import Document


class SqlDocumentStore:
    """Postgres/SQLite-backed document storage.

    Args:
        db: The DatabaseManager to open sessions on.
        numeric_fields: Data fields that ``order_by`` compares as integers;
            every other field is compared as a string.
    """

    def __init__(
        self,
        db: DatabaseManager,
        numeric_fields: Iterable[str] = ("sequence",),
    ) -> None:
        self._db = db
        self._numeric_fields = frozenset(numeric_fields)

    @asynccontextmanager
    async def _session(self) -> AsyncIterator[AsyncSession]:
        try:
            async with self._db.session() as session:
                yield session
        except (OperationalError, DBAPIError) as exc:
            raise StorageUnavailable(str(exc)) from exc

    async def _get_row(
        self, session: AsyncSession, collection: str, doc_id: str
    ) -> DocumentRow | None:
        result = await session.execute(
            select(DocumentRow).where(
                DocumentRow.collection == collection,
                DocumentRow.doc_id == doc_id,
            )
        )
        return result.scalar_one_or_none()

    async def get(self, collection: str, doc_id: str) -> Document:
        async with self._session() as session:
            row = await self._get_row(session, collection, doc_id)
            if row is None:
                raise DocumentNotFound(collection, doc_id)
            return Document(doc_id=row.doc_id, data=dict(row.data or {}))

    async def conditional_update(
        self,
        collection: str,
        doc_id: str,
        fields: dict[str, Any],
        precondition: dict[str, Any] | None = None,
    ) -> None:
        async with self._session() as session:
            row = await self._get_row(session, collection, doc_id)
            if row is None:
                raise DocumentNotFound(collection, doc_id)
            current = dict(row.data or {})
            for key, expected in (precondition or {}).items():
                if current.get(key) != expected:
                    raise PreconditionFailed(
                        f"{collection}/{doc_id}: expected {key}={expected!r}, "
                        f"found {current.get(key)!r}"
                    )

            result = await session.execute(
                update(DocumentRow)
                .where(
                    DocumentRow.seq == row.seq,
                    DocumentRow.version == row.version,
                )
                .values(
                    data={**current, **fields},
                    version=row.version + 1,
                    updated_at=datetime.now(timezone.utc),
                )
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0:
                await session.rollback()
                raise PreconditionFailed(
                    f"{collection}/{doc_id}: modified concurrently (version {row.version})"
                )
            await session.commit()

    async def append(self, collection: str, fields: dict[str, Any]) -> str:
        doc_id = uuid.uuid4().hex
        async with self._session() as session:
            session.add(DocumentRow(collection=collection, doc_id=doc_id, data=dict(fields)))
            await session.commit()
        return doc_id

    async def create(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        async with self._session() as session:
            session.add(DocumentRow(collection=collection, doc_id=doc_id, data=dict(fields)))
            try:
                await session.commit()
            except IntegrityError as exc:
                await session.rollback()
                raise DocumentExists(collection, doc_id) from exc

    async def put(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        async with self._session() as session:
            row = await self._get_row(session, collection, doc_id)
            if row is None:
                session.add(DocumentRow(collection=collection, doc_id=doc_id, data=dict(fields)))
            else:
                row.data = dict(fields)
                row.version = row.version + 1
                row.updated_at = datetime.now(timezone.utc)
            await session.commit()

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        limit: int | None = None,
    ) -> list[Document]:
        filters = filters or {}
        stmt = select(DocumentRow).where(DocumentRow.collection == collection)
        for key, value in filters.items():
            stmt = stmt.where(_json_equals(key, value))
        if order_by:
            stmt = stmt.order_by(self._order_clause(order_by))
        stmt = stmt.order_by(DocumentRow.seq)
        if limit is not None:
            stmt = stmt.limit(limit)

        async with self._session() as session:
            result = await session.execute(stmt)
            docs = [
                Document(doc_id=row.doc_id, data=dict(row.data or {}))
                for row in result.scalars().all()
            ]
        return docs

    def _order_clause(self, order_by: str) -> Any:
        """ORDER BY a data field; a ``-`` prefix sorts descending, missing values last."""
        field = order_by.lstrip("-")
        value = DocumentRow.data[field]
        expr = value.as_integer() if field in self._numeric_fields else value.as_string()
        expr = expr.desc() if order_by.startswith("-") else expr.asc()
        return expr.nulls_last()


def _json_equals(key: str, value: Any) -> Any:
    """Build an equality clause on a top-level JSON field."""
    field = DocumentRow.data[key]
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return field.as_boolean() == value
    if isinstance(value, int):
        return field.as_integer() == value
    if isinstance(value, float):
        return field.as_float() == value
    if isinstance(value, str):
        return field.as_string() == value
    raise ValueError(f"Unsupported filter value for '{key}': {value!r}")
