"""Process-wide preference store.

Preferences are plain string key/value pairs (backup cadence, last backup
timestamp, signed-in user). Callers read and write an in-memory view and
persist it with an explicit ``save()``; ``load()`` refreshes the view
from the backing store.
"""

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linguacrm.logging_config import get_logger
from linguacrm.models.preference import Preference

logger = get_logger(__name__)

# Persisted preference keys
BACKUP_ENABLED_KEY = "autoBackupEnabled"
BACKUP_SCHEDULE_KEY = "autoBackupSchedule"
LAST_BACKUP_KEY = "lastBackupDate"
CURRENT_USER_KEY = "currentUserId"


class PreferenceStore:
    """In-memory view of the preferences with change tracking.

    Subclasses persist the tracked changes in ``save()``.
    """

    def __init__(self, initial: dict[str, str] | None = None):
        self._values: dict[str, str] = dict(initial or {})
        self._dirty: set[str] = set()
        self._removed: set[str] = set()

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value
        self._dirty.add(key)
        self._removed.discard(key)

    def delete(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._removed.add(key)
        self._dirty.discard(key)

    def as_dict(self) -> dict[str, str]:
        return dict(self._values)

    @property
    def has_unsaved_changes(self) -> bool:
        return bool(self._dirty or self._removed)

    async def load(self) -> None:
        self._dirty.clear()
        self._removed.clear()

    async def save(self) -> None:
        self._dirty.clear()
        self._removed.clear()


class InMemoryPreferenceStore(PreferenceStore):
    """Preferences that live only as long as the object."""

    pass


class DatabasePreferenceStore(PreferenceStore):
    """Preferences persisted in the ``preferences`` table."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        super().__init__()
        self._session_maker = session_maker

    async def load(self) -> None:
        async with self._session_maker() as db:
            result = await db.execute(select(Preference))
            self._values = {row.key: row.value for row in result.scalars().all()}
        await super().load()

    async def save(self) -> None:
        if not self.has_unsaved_changes:
            return

        async with self._session_maker() as db:
            if self._removed:
                await db.execute(
                    delete(Preference).where(Preference.key.in_(self._removed))
                )
            for key in self._dirty:
                row = await db.get(Preference, key)
                if row is None:
                    db.add(Preference(key=key, value=self._values[key]))
                else:
                    row.value = self._values[key]
            await db.commit()

        logger.debug(
            "Saved preferences",
            updated=sorted(self._dirty),
            removed=sorted(self._removed),
        )
        await super().save()
