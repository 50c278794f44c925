"""Pytest configuration and shared fixtures.

Most tests run against an in-memory fake store; the SQLAlchemy store and
preference tests get a throwaway SQLite file per test.
"""

import os
from collections.abc import AsyncGenerator
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

# Set testing mode BEFORE importing settings
os.environ["TESTING"] = "true"

from linguacrm.config import settings

settings.testing = True

from linguacrm.core.errors import RecordInsertError
from linguacrm.database import create_tables
from linguacrm.schemas.user import UserInfo
from linguacrm.services.attribution import AttributionProvider
from linguacrm.services.data_store import ProspectFilter
from linguacrm.services.preferences import CURRENT_USER_KEY, InMemoryPreferenceStore

FIXED_NOW = datetime(2024, 5, 1, 9, 30, tzinfo=UTC)

TEST_USER = UserInfo(id="user-1", username="maria")


class FrozenClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime = FIXED_NOW):
        self.current = now

    def now(self) -> datetime:
        return self.current

    def advance(self, delta: timedelta) -> None:
        self.current += delta


class FakeRecordStore:
    """In-memory stand-in for the CRM record stores."""

    def __init__(self):
        self.prospects: list[dict[str, Any]] = []
        self.completed_jobs: list[dict[str, Any]] = []
        self.students: list[dict[str, Any]] = []
        self.classes: list[dict[str, Any]] = []
        self.payments: list[dict[str, Any]] = []
        self.expenditures: list[dict[str, Any]] = []
        self.users: dict[str, UserInfo] = {TEST_USER.id: TEST_USER}
        self.fail_ids: set[str] = set()
        self.writes = 0

    async def search_prospects(self, prospect_filter: ProspectFilter):
        return list(self.prospects)

    async def get_completed_jobs(self):
        return list(self.completed_jobs)

    async def get_students(self):
        return list(self.students)

    async def get_classes(self):
        return list(self.classes)

    async def get_all_payments(self):
        return list(self.payments)

    async def get_all_expenditures(self):
        return list(self.expenditures)

    async def add_prospect_with_id(self, record_id: str, record: dict[str, Any]):
        if record_id in self.fail_ids:
            raise RecordInsertError(record_id, "disk full")
        if any(p["id"] == record_id for p in self.prospects + self.completed_jobs):
            raise RecordInsertError(record_id, "duplicate id")
        self.writes += 1
        stored = {**record, "id": record_id}
        if record.get("status") == "Converted":
            self.completed_jobs.append(stored)
        else:
            self.prospects.append(stored)

    async def get_user_by_id(self, user_id: str):
        return self.users.get(user_id)


def make_prospect(prospect_id: str, name: str, **fields: Any) -> dict[str, Any]:
    """Prospect record shaped like the browser client's."""
    return {
        "id": prospect_id,
        "prospectName": name,
        "contactMethod": "Phone",
        "serviceInterestedIn": "Language Training",
        "status": "Inquired",
        "dateOfContact": "2024-04-20",
        "notes": "",
        "createdBy": TEST_USER.id,
        "createdByUsername": TEST_USER.username,
        "createdAt": "2024-04-20T10:00:00.000Z",
        **fields,
    }


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock()


@pytest.fixture
def preferences() -> InMemoryPreferenceStore:
    return InMemoryPreferenceStore({CURRENT_USER_KEY: TEST_USER.id})


@pytest.fixture
def store() -> FakeRecordStore:
    return FakeRecordStore()


@pytest.fixture
def attribution(preferences, store, clock) -> AttributionProvider:
    return AttributionProvider(preferences, store, clock)


@pytest_asyncio.fixture
async def session_maker(
    tmp_path,
) -> AsyncGenerator[async_sessionmaker[AsyncSession], None]:
    """Session factory over a fresh SQLite database with all tables created."""
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        poolclass=NullPool,
    )
    await create_tables(engine)
    yield async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()
