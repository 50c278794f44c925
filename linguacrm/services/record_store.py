"""SQLAlchemy-backed record store.

Implements the ExportSource, ImportTarget and UserDirectory capabilities
over the JSON record tables. Every operation opens its own session so a
failed insert never poisons the session used by the next one.
"""

import uuid
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linguacrm.core.errors import RecordInsertError
from linguacrm.logging_config import get_logger
from linguacrm.models.records import (
    ClassRecord,
    ExpenditureRecord,
    PaymentRecord,
    ProspectRecord,
    ProspectStatus,
    RecordMixin,
    StudentRecord,
)
from linguacrm.models.user import User, UserRole
from linguacrm.schemas.user import UserInfo
from linguacrm.services.data_store import ALL_PROSPECTS, MATCH_ALL, ProspectFilter

logger = get_logger(__name__)

Record = dict[str, Any]

RECORD_MODELS: dict[str, type[RecordMixin]] = {
    "prospects": ProspectRecord,
    "students": StudentRecord,
    "classes": ClassRecord,
    "payments": PaymentRecord,
    "expenditures": ExpenditureRecord,
}

_SEARCHABLE_PROSPECT_FIELDS = ("prospectName", "email", "phone", "notes")


def _matches_search_term(record: Record, term: str) -> bool:
    if not term:
        return True
    term = term.lower()
    return any(
        term in str(record.get(field) or "").lower()
        for field in _SEARCHABLE_PROSPECT_FIELDS
    )


def _completion_date(record: Record) -> str:
    return (
        record.get("translationCompletionDate")
        or record.get("interpretationCompletionDate")
        or record.get("dateOfContact")
        or ""
    )


class SqlRecordStore:
    """Record store over an async SQLAlchemy session factory."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def _list(self, model: type[RecordMixin]) -> list[Record]:
        async with self._session_maker() as db:
            result = await db.execute(select(model).order_by(model.created_at))
            return [row.to_record() for row in result.scalars().all()]

    # ── Reads ──

    async def search_prospects(
        self, prospect_filter: ProspectFilter = ALL_PROSPECTS
    ) -> list[Record]:
        """Open (not converted) prospects matching the filter, newest contact first."""
        query = select(ProspectRecord).where(
            ProspectRecord.status != ProspectStatus.CONVERTED.value
        )
        if prospect_filter.contact_method != MATCH_ALL:
            query = query.where(
                ProspectRecord.contact_method == prospect_filter.contact_method
            )
        if prospect_filter.service_interested_in != MATCH_ALL:
            query = query.where(
                ProspectRecord.service_interested_in
                == prospect_filter.service_interested_in
            )

        async with self._session_maker() as db:
            result = await db.execute(query)
            records = [row.to_record() for row in result.scalars().all()]

        matches = [
            r for r in records if _matches_search_term(r, prospect_filter.search_term)
        ]
        matches.sort(key=lambda r: r.get("dateOfContact") or "", reverse=True)
        return matches

    async def get_completed_jobs(self) -> list[Record]:
        """Converted prospects, most recently completed first."""
        async with self._session_maker() as db:
            result = await db.execute(
                select(ProspectRecord).where(
                    ProspectRecord.status == ProspectStatus.CONVERTED.value
                )
            )
            records = [row.to_record() for row in result.scalars().all()]

        records.sort(key=_completion_date, reverse=True)
        return records

    async def get_students(self) -> list[Record]:
        return await self._list(StudentRecord)

    async def get_classes(self) -> list[Record]:
        return await self._list(ClassRecord)

    async def get_all_payments(self) -> list[Record]:
        return await self._list(PaymentRecord)

    async def get_all_expenditures(self) -> list[Record]:
        return await self._list(ExpenditureRecord)

    # ── Writes ──

    async def add_prospect_with_id(self, record_id: str, record: Record) -> None:
        """Insert a prospect keeping its original id and attribution fields.

        Raises:
            RecordInsertError: If the id is already taken or the write fails.
        """
        await self._insert(
            ProspectRecord(
                id=record_id,
                payload={**record, "id": record_id},
                status=record.get("status") or ProspectStatus.INQUIRED.value,
                contact_method=record.get("contactMethod"),
                service_interested_in=record.get("serviceInterestedIn"),
            )
        )

    async def add_record(self, kind: str, record: Record) -> Record:
        """Insert a record of the given kind, generating an id when absent.

        Returns:
            The stored record including its id.
        """
        if kind == "prospects":
            record_id = record.get("id") or str(uuid.uuid4())
            await self.add_prospect_with_id(record_id, record)
            return {**record, "id": record_id}

        try:
            model = RECORD_MODELS[kind]
        except KeyError:
            raise ValueError(f"Unknown record kind: {kind}") from None

        record_id = record.get("id") or str(uuid.uuid4())
        stored = {**record, "id": record_id}
        await self._insert(model(id=record_id, payload=stored))
        return stored

    async def _insert(self, row: RecordMixin) -> None:
        async with self._session_maker() as db:
            if await db.get(type(row), row.id) is not None:
                raise RecordInsertError(
                    row.id, f"{type(row).__tablename__} record {row.id} already exists"
                )
            db.add(row)
            try:
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                logger.warning(
                    "Record insert failed",
                    table=type(row).__tablename__,
                    record_id=row.id,
                    error=str(e),
                )
                raise RecordInsertError(row.id, str(e)) from e

    # ── Users ──

    async def get_user_by_id(self, user_id: str) -> UserInfo | None:
        async with self._session_maker() as db:
            user = await db.get(User, user_id)
            return UserInfo.model_validate(user) if user else None

    async def add_user(
        self,
        username: str,
        email: str,
        role: UserRole = UserRole.USER,
    ) -> UserInfo:
        """Create a user account and return its identity."""
        user = User(id=str(uuid.uuid4()), username=username, email=email, role=role)
        async with self._session_maker() as db:
            db.add(user)
            await db.commit()

        logger.info("Created user", user_id=user.id, role=role.value)
        return UserInfo(id=user.id, username=user.username)
