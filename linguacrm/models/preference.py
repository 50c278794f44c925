"""Key/value preference rows (backup cadence, last backup, current user)."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from linguacrm.models.base import Base, TimestampMixin


class Preference(Base, TimestampMixin):
    __tablename__ = "preferences"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Preference(key={self.key})>"
