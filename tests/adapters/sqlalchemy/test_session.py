from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import create_async_engine

from inboxkit.adapters.sqlalchemy.migrations import upgrade_head
from inboxkit.adapters.sqlalchemy.session import (
    StartupError,
    configured_engine,
    is_started,
    session_factory,
    shutdown,
    startup,
)

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.engine import Connection
    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture(autouse=True)
async def reset_session_state() -> AsyncIterator[None]:
    await shutdown()
    yield
    await shutdown()


def _table_names(connection: Connection) -> set[str]:
    return set(inspect(connection).get_table_names())


async def _tables(engine: AsyncEngine) -> set[str]:
    async with engine.connect() as connection:
        return await connection.run_sync(_table_names)


async def test_session_factory_requires_startup() -> None:
    assert not is_started()

    with pytest.raises(StartupError):
        session_factory()


async def test_startup_requires_force_for_reconfiguration(tmp_path: Path) -> None:
    engine_a = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'a.db'}")
    engine_b = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'b.db'}")

    await startup(engine=engine_a)

    with pytest.raises(StartupError):
        await startup(engine=engine_b)

    await startup(engine=engine_b, force=True)
    assert configured_engine() is engine_b
    assert session_factory() is session_factory()


async def test_startup_migrates_schema(tmp_path: Path) -> None:
    await startup(database_uri=f"sqlite+aiosqlite:///{tmp_path / 'inbox.db'}")

    engine = configured_engine()
    assert engine is not None
    tables = await _tables(engine)

    assert {"inbox_item", "follow_request", "alembic_version"} <= tables


async def test_upgrade_head_by_uri_is_repeatable(tmp_path: Path) -> None:
    uri = f"sqlite+aiosqlite:///{tmp_path / 'standalone.db'}"

    await upgrade_head(database_uri=uri)
    await upgrade_head(database_uri=uri)

    engine = create_async_engine(uri)
    try:
        assert {"inbox_item", "follow_request"} <= await _tables(engine)
    finally:
        await engine.dispose()
