"""Tests for DatabaseManager and the documents table."""

from __future__ import annotations

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from campaign_governance.db.engine import DatabaseManager
from campaign_governance.db.models import DocumentRow


async def test_engine_creation(db):
    """DatabaseManager should create an engine."""
    assert db.engine is not None


async def test_create_all_is_idempotent(db):
    await db.create_all()
    async with db.session() as session:
        result = await session.execute(select(DocumentRow))
        assert result.scalars().all() == []


async def test_row_round_trip(db):
    async with db.session() as session:
        session.add(DocumentRow(collection="campaigns", doc_id="c1", data={"status": "draft"}))
        await session.commit()

    async with db.session() as session:
        result = await session.execute(
            select(DocumentRow).where(DocumentRow.doc_id == "c1")
        )
        row = result.scalar_one()
        assert row.collection == "campaigns"
        assert row.data == {"status": "draft"}
        assert row.version == 1
        assert row.created_at is not None


async def test_doc_id_unique_per_collection(db):
    async with db.session() as session:
        session.add(DocumentRow(collection="campaigns", doc_id="c1", data={}))
        session.add(DocumentRow(collection="reviews", doc_id="c1", data={}))
        await session.commit()

    async with db.session() as session:
        session.add(DocumentRow(collection="campaigns", doc_id="c1", data={}))
        with pytest.raises(IntegrityError):
            await session.commit()


async def test_close():
    """DatabaseManager.close() should dispose the engine without error."""
    manager = DatabaseManager("sqlite+aiosqlite:///:memory:")
    await manager.create_all()
    await manager.close()
