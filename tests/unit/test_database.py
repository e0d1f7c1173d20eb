"""Tests for the service database helpers."""

from __future__ import annotations

import pytest
from sqlalchemy import Column, Integer, MetaData, Table, inspect, text

from fedgraph.core.config import FedgraphConfig
from fedgraph.service import database


SQLITE = FedgraphConfig(database_url="sqlite+aiosqlite://")


@pytest.fixture()
async def configured(tmp_path):
    engine = database.configure_database(
        FedgraphConfig(database_url=f"sqlite+aiosqlite:///{tmp_path / 'fedgraph.db'}")
    )
    yield engine
    await database.close_db()


# ---------------------------------------------------------------------------
# Engine lifecycle
# ---------------------------------------------------------------------------


class TestEngine:
    async def test_get_engine_configures_on_first_use(self):
        try:
            engine = database.get_engine(SQLITE)

            assert engine is database.get_engine()
            assert engine.url.drivername == "sqlite+aiosqlite"
        finally:
            await database.close_db()

        assert database._engine is None
        assert database._session_maker is None

    async def test_close_without_engine(self):
        await database.close_db()
        assert database._engine is None

    async def test_init_db_creates_given_metadata(self, configured):
        metadata = MetaData()
        Table("widgets", metadata, Column("id", Integer, primary_key=True))

        await database.init_db(metadata=metadata)

        async with configured.connect() as conn:
            tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
        assert "widgets" in tables


# ---------------------------------------------------------------------------
# Session dependency
# ---------------------------------------------------------------------------


class TestSession:
    async def test_yields_working_session(self, configured):
        session_gen = database.get_session()
        session = await session_gen.__anext__()

        assert (await session.execute(text("SELECT 1"))).scalar() == 1
        await session_gen.aclose()

    async def test_rolls_back_when_request_fails(self, configured):
        session_gen = database.get_session()
        session = await session_gen.__anext__()
        await session.execute(text("SELECT 1"))
        assert session.in_transaction()

        with pytest.raises(RuntimeError):
            await session_gen.athrow(RuntimeError("handler failed"))

        assert not session.in_transaction()
