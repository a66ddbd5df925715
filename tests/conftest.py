from __future__ import annotations

import os
from typing import TYPE_CHECKING

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from inboxkit.adapters.memory import (
    InMemoryFollowRequestStore,
    InMemoryInboxStore,
    InMemoryRelationshipService,
)
from inboxkit.adapters.sqlalchemy.migrations import upgrade_head
from inboxkit.domain.notifications import InboxNotificationService
from inboxkit.domain.policies import StaticGovernancePolicy
from tests.helpers.inbox import SequentialIds, StepClock

os.environ.setdefault("DATABASE_URI", "sqlite+aiosqlite:///:memory:")

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path

    from sqlalchemy.ext.asyncio import AsyncEngine


@pytest.fixture
def clock() -> StepClock:
    return StepClock()


@pytest.fixture
def ids() -> SequentialIds:
    return SequentialIds()


@pytest.fixture
def inbox_store(clock: StepClock) -> InMemoryInboxStore:
    return InMemoryInboxStore(clock=clock)


@pytest.fixture
def request_store() -> InMemoryFollowRequestStore:
    return InMemoryFollowRequestStore()


@pytest.fixture
def relationships(clock: StepClock) -> InMemoryRelationshipService:
    return InMemoryRelationshipService(id_factory=SequentialIds("edge"), clock=clock)


@pytest.fixture
def governance() -> StaticGovernancePolicy:
    return StaticGovernancePolicy()


@pytest.fixture
def service(
    inbox_store: InMemoryInboxStore,
    request_store: InMemoryFollowRequestStore,
    relationships: InMemoryRelationshipService,
    governance: StaticGovernancePolicy,
    ids: SequentialIds,
    clock: StepClock,
) -> InboxNotificationService:
    return InboxNotificationService(
        inbox_store=inbox_store,
        follow_request_store=request_store,
        relationships=relationships,
        governance=governance,
        id_factory=ids,
        clock=clock,
    )


@pytest.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'inboxkit.db'}")
    await upgrade_head(engine=engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def sqlite_sessions(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(sqlite_engine, expire_on_commit=False)
