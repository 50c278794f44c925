"""Export document schemas.

The wire format uses camelCase keys so documents stay interchangeable
with backups written by the browser client. Unknown fields are kept on
parse so newer documents survive a round trip.

Parsing accepts every document that passes ``validate_import_data``:
metadata values are coerced to strings and collections may hold any JSON
value.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

EXPORT_FORMAT_VERSION = "1.0.0"

# Collections carried in ExportData, in document order
ENTITY_KINDS = ("prospects", "students", "classes", "payments", "expenditures")


class ExportMetadata(BaseModel):
    """Who exported the snapshot, when, and with which format version."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    export_date: str = Field(default="", alias="exportDate")
    exported_by: str = Field(default="", alias="exportedBy")
    exported_by_username: str = Field(default="", alias="exportedByUsername")
    version: str = EXPORT_FORMAT_VERSION
    app_name: str = Field(..., alias="appName")

    @field_validator(
        "export_date",
        "exported_by",
        "exported_by_username",
        "version",
        "app_name",
        mode="before",
    )
    @classmethod
    def coerce_to_str(cls, value: Any) -> str:
        """Null becomes empty; numbers and other JSON values their text."""
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)


class ExportData(BaseModel):
    """Entity collections; every field is always a list."""

    model_config = ConfigDict(extra="allow")

    prospects: list[Any] = Field(default_factory=list)
    students: list[Any] = Field(default_factory=list)
    classes: list[Any] = Field(default_factory=list)
    payments: list[Any] = Field(default_factory=list)
    expenditures: list[Any] = Field(default_factory=list)

    def record_counts(self) -> dict[str, int]:
        """Number of records per entity kind."""
        return {kind: len(getattr(self, kind)) for kind in ENTITY_KINDS}


class ExportDocument(BaseModel):
    """Versioned snapshot of every entity collection."""

    model_config = ConfigDict(extra="allow")

    metadata: ExportMetadata
    data: ExportData

    def to_wire(self) -> dict[str, Any]:
        """Plain dict with camelCase keys, ready for json.dumps."""
        return self.model_dump(mode="json", by_alias=True)
