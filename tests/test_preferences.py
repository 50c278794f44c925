"""Tests for the preference stores."""

import pytest

from linguacrm.services.preferences import (
    BACKUP_ENABLED_KEY,
    BACKUP_SCHEDULE_KEY,
    LAST_BACKUP_KEY,
    DatabasePreferenceStore,
    InMemoryPreferenceStore,
)


class TestInMemoryPreferenceStore:
    """Tests for change tracking on the in-memory view."""

    def test_get_missing_key(self):
        assert InMemoryPreferenceStore().get(LAST_BACKUP_KEY) is None

    def test_set_marks_unsaved(self):
        prefs = InMemoryPreferenceStore()

        prefs.set(BACKUP_ENABLED_KEY, "true")

        assert prefs.get(BACKUP_ENABLED_KEY) == "true"
        assert prefs.has_unsaved_changes is True

    def test_delete_missing_key_is_not_a_change(self):
        prefs = InMemoryPreferenceStore()

        prefs.delete(LAST_BACKUP_KEY)

        assert prefs.has_unsaved_changes is False

    @pytest.mark.asyncio
    async def test_save_clears_tracking(self):
        prefs = InMemoryPreferenceStore({BACKUP_SCHEDULE_KEY: "daily"})
        prefs.set(BACKUP_ENABLED_KEY, "true")
        prefs.delete(BACKUP_SCHEDULE_KEY)

        await prefs.save()

        assert prefs.has_unsaved_changes is False
        assert prefs.as_dict() == {BACKUP_ENABLED_KEY: "true"}


class TestDatabasePreferenceStore:
    """Tests for persistence through the preferences table."""

    @pytest.mark.asyncio
    async def test_saved_values_survive_reload(self, session_maker):
        prefs = DatabasePreferenceStore(session_maker)
        prefs.set(BACKUP_ENABLED_KEY, "true")
        prefs.set(BACKUP_SCHEDULE_KEY, "weekly")
        await prefs.save()

        reloaded = DatabasePreferenceStore(session_maker)
        await reloaded.load()

        assert reloaded.as_dict() == {
            BACKUP_ENABLED_KEY: "true",
            BACKUP_SCHEDULE_KEY: "weekly",
        }
        assert reloaded.has_unsaved_changes is False

    @pytest.mark.asyncio
    async def test_update_and_delete(self, session_maker):
        prefs = DatabasePreferenceStore(session_maker)
        prefs.set(BACKUP_SCHEDULE_KEY, "weekly")
        prefs.set(LAST_BACKUP_KEY, "2024-04-30T09:30:00.000Z")
        await prefs.save()

        prefs.set(BACKUP_SCHEDULE_KEY, "daily")
        prefs.delete(LAST_BACKUP_KEY)
        await prefs.save()

        reloaded = DatabasePreferenceStore(session_maker)
        await reloaded.load()
        assert reloaded.as_dict() == {BACKUP_SCHEDULE_KEY: "daily"}

    @pytest.mark.asyncio
    async def test_unsaved_changes_are_not_persisted(self, session_maker):
        prefs = DatabasePreferenceStore(session_maker)
        prefs.set(BACKUP_ENABLED_KEY, "true")

        reloaded = DatabasePreferenceStore(session_maker)
        await reloaded.load()

        assert reloaded.get(BACKUP_ENABLED_KEY) is None

    @pytest.mark.asyncio
    async def test_load_discards_local_edits(self, session_maker):
        prefs = DatabasePreferenceStore(session_maker)
        prefs.set(BACKUP_ENABLED_KEY, "true")

        await prefs.load()

        assert prefs.get(BACKUP_ENABLED_KEY) is None
        assert prefs.has_unsaved_changes is False
