"""SQL-specific behaviour of SqlDocumentStore: versions and optimistic writes."""

from __future__ import annotations

import pytest
from sqlalchemy import select, update

from campaign_governance.db.engine import DatabaseManager
from campaign_governance.db.models import DocumentRow
from campaign_governance.repositories.errors import PreconditionFailed, StorageUnavailable
from campaign_governance.repositories.sql import SqlDocumentStore


async def _version(db: DatabaseManager, collection: str, doc_id: str) -> int:
    async with db.session() as session:
        result = await session.execute(
            select(DocumentRow.version).where(
                DocumentRow.collection == collection, DocumentRow.doc_id == doc_id
            )
        )
        return result.scalar_one()


class InterleavingStore(SqlDocumentStore):
    """Lets another writer commit between the read and the write of a CAS."""

    def __init__(self, db: DatabaseManager) -> None:
        super().__init__(db)
        self.interleave = False

    async def _get_row(self, session, collection, doc_id):
        row = await super()._get_row(session, collection, doc_id)
        if self.interleave and row is not None:
            self.interleave = False
            async with self._db.session() as other:
                await other.execute(
                    update(DocumentRow)
                    .where(DocumentRow.seq == row.seq)
                    .values(data={"status": "rejected"}, version=row.version + 1)
                )
                await other.commit()
        return row


@pytest.fixture
async def file_db(tmp_path):
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'governance.db'}")
    await manager.create_all()
    yield manager
    await manager.close()


async def test_put_and_update_bump_version(db):
    store = SqlDocumentStore(db)
    await store.put("reviews", "r1", {"status": "pending"})
    assert await _version(db, "reviews", "r1") == 1

    await store.conditional_update("reviews", "r1", {"status": "approved"})
    assert await _version(db, "reviews", "r1") == 2

    await store.put("reviews", "r1", {"status": "pending"})
    assert await _version(db, "reviews", "r1") == 3


async def test_failed_precondition_leaves_version(db):
    store = SqlDocumentStore(db)
    await store.put("reviews", "r1", {"status": "approved"})
    with pytest.raises(PreconditionFailed):
        await store.conditional_update(
            "reviews", "r1", {"status": "rejected"}, precondition={"status": "pending"}
        )
    assert await _version(db, "reviews", "r1") == 1


async def test_concurrent_writer_detected(file_db):
    store = InterleavingStore(file_db)
    await store.put("reviews", "r1", {"status": "pending"})

    store.interleave = True
    with pytest.raises(PreconditionFailed, match="modified concurrently"):
        await store.conditional_update(
            "reviews", "r1", {"status": "approved"}, precondition={"status": "pending"}
        )

    # The interleaved write stands; ours did not overwrite it
    assert (await store.get("reviews", "r1")).data == {"status": "rejected"}
    assert await _version(file_db, "reviews", "r1") == 2


async def test_unsupported_filter_value(db):
    store = SqlDocumentStore(db)
    with pytest.raises(ValueError, match="Unsupported filter value"):
        await store.query("reviews", filters={"tags": ["a"]})


async def test_database_errors_become_unavailable(tmp_path):
    # A database file inside a missing directory cannot be opened
    manager = DatabaseManager(f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'governance.db'}")
    store = SqlDocumentStore(manager)
    try:
        with pytest.raises(StorageUnavailable):
            await store.get("reviews", "r1")
    finally:
        await manager.close()
