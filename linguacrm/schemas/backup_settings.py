"""Automatic backup preference schemas."""

import enum

from pydantic import BaseModel, ConfigDict, Field


class BackupInterval(str, enum.Enum):
    """How often an automatic backup is due."""

    NEVER = "never"
    DAILY = "daily"
    WEEKLY = "weekly"


# Minimum elapsed days before the next automatic backup
INTERVAL_DAYS: dict[BackupInterval, int] = {
    BackupInterval.DAILY: 1,
    BackupInterval.WEEKLY: 7,
}


class BackupSettings(BaseModel):
    """Current automatic backup preferences."""

    model_config = ConfigDict(populate_by_name=True)

    enabled: bool = False
    interval: BackupInterval = BackupInterval.NEVER
    last_backup: str | None = Field(default=None, alias="lastBackup")


class BackupSettingsUpdate(BaseModel):
    """Partial update for backup preferences.

    All fields are optional -- only provided fields are written.
    The last backup timestamp is owned by the scheduler and cannot be set here.
    """

    enabled: bool | None = None
    interval: BackupInterval | None = None
