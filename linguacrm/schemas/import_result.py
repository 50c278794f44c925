"""Import outcome schemas."""

from pydantic import BaseModel, Field


class ImportCounts(BaseModel):
    """Records written per entity kind."""

    prospects: int = 0
    students: int = 0
    classes: int = 0
    payments: int = 0
    expenditures: int = 0


class ImportResult(BaseModel):
    """Outcome of one import attempt.

    success is True only when the errors list is empty.
    """

    success: bool = False
    imported: ImportCounts = Field(default_factory=ImportCounts)
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)
