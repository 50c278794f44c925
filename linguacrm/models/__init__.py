# Database Models
from linguacrm.models.base import Base, TimestampMixin
from linguacrm.models.preference import Preference
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

__all__ = [
    "Base",
    "ClassRecord",
    "ExpenditureRecord",
    "PaymentRecord",
    "Preference",
    "ProspectRecord",
    "ProspectStatus",
    "RecordMixin",
    "StudentRecord",
    "TimestampMixin",
    "User",
    "UserRole",
]
