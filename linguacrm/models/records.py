"""CRM record tables.

Each business entity is kept as an opaque JSON document keyed by its
string identifier, the same shape the browser client stores. Only the
fields needed for filtering are promoted to columns.
"""

import enum
from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from linguacrm.models.base import Base, TimestampMixin


class RecordMixin(TimestampMixin):
    """Identifier plus JSON payload shared by every record table."""

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    def to_record(self) -> dict[str, Any]:
        """Return the stored document with its id guaranteed present."""
        record = dict(self.payload)
        record["id"] = self.id
        return record

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(id={self.id})>"


class ProspectStatus(str, enum.Enum):
    INQUIRED = "Inquired"
    CONVERTED = "Converted"


class ProspectRecord(Base, RecordMixin):
    """A lead in the prospect pipeline.

    Converted prospects are the completed jobs list; they stay in this
    table and are excluded from prospect searches.
    """

    __tablename__ = "prospects"

    status: Mapped[str] = mapped_column(
        String(20), default=ProspectStatus.INQUIRED.value, nullable=False, index=True
    )
    contact_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    service_interested_in: Mapped[str | None] = mapped_column(
        String(100), nullable=True
    )


class StudentRecord(Base, RecordMixin):
    __tablename__ = "students"


class ClassRecord(Base, RecordMixin):
    __tablename__ = "classes"


class PaymentRecord(Base, RecordMixin):
    __tablename__ = "payments"


class ExpenditureRecord(Base, RecordMixin):
    __tablename__ = "expenditures"
