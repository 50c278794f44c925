"""Storage diagnostics schemas."""

from pydantic import BaseModel


class StorageBreakdown(BaseModel):
    """Estimated bytes per record store."""

    prospects: int = 0
    students: int = 0
    classes: int = 0
    payments: int = 0
    expenditures: int = 0
    users: int = 0


class StorageInfo(BaseModel):
    """Aggregate usage against quota plus the per-store estimate."""

    used: int = 0
    quota: int = 0
    percentage: float = 0.0
    breakdown: StorageBreakdown = StorageBreakdown()
