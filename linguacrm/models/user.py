"""User account model used for record attribution."""

import enum
import uuid

from sqlalchemy import Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from linguacrm.models.base import Base, TimestampMixin


class UserRole(str, enum.Enum):
    """User roles.

    - ADMIN: Manages users and settings
    - USER: Day-to-day CRM staff
    """

    ADMIN = "admin"
    USER = "user"


class User(Base, TimestampMixin):
    """User account model.

    Attributes:
        id: Unique user identifier (UUID string)
        username: Display name written into attribution fields
        email: User's email address (unique)
        role: User role (admin, user)
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(64),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
    )
    username: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    role: Mapped[UserRole] = mapped_column(
        Enum(
            UserRole,
            name="userrole",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=UserRole.USER,
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"
