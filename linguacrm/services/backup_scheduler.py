"""Automatic backup scheduling.

Backup cadence and the last backup time live in the preference store.
An APScheduler interval job checks once per period whether a backup is
due and, if so, exports everything to a dated file in the backup
directory.
"""

from datetime import timedelta
from pathlib import Path

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from linguacrm.config import settings
from linguacrm.core.clock import Clock, isoformat_utc, parse_timestamp
from linguacrm.logging_config import correlation_scope, get_logger
from linguacrm.schemas.backup_settings import (
    INTERVAL_DAYS,
    BackupInterval,
    BackupSettings,
    BackupSettingsUpdate,
)
from linguacrm.services.attribution import AttributionProvider
from linguacrm.services.data_export import download_json, export_all_data
from linguacrm.services.data_store import ExportSource
from linguacrm.services.preferences import (
    BACKUP_ENABLED_KEY,
    BACKUP_SCHEDULE_KEY,
    LAST_BACKUP_KEY,
    PreferenceStore,
)

logger = get_logger(__name__)

AUTO_BACKUP_JOB_ID = "auto_backup"


def get_backup_settings(preferences: PreferenceStore) -> BackupSettings:
    """Read backup preferences, falling back to defaults for missing values."""
    try:
        interval = BackupInterval(preferences.get(BACKUP_SCHEDULE_KEY) or "never")
    except ValueError:
        interval = BackupInterval.NEVER

    return BackupSettings(
        enabled=preferences.get(BACKUP_ENABLED_KEY) == "true",
        interval=interval,
        last_backup=preferences.get(LAST_BACKUP_KEY),
    )


async def set_backup_settings(
    preferences: PreferenceStore,
    updates: BackupSettingsUpdate,
) -> BackupSettings:
    """Write the provided backup preferences and save them.

    Only fields provided in the update are written.
    """
    update_data = updates.model_dump(exclude_none=True)
    if "enabled" in update_data:
        enabled = "true" if update_data["enabled"] else "false"
        preferences.set(BACKUP_ENABLED_KEY, enabled)
    if "interval" in update_data:
        interval = BackupInterval(update_data["interval"])
        preferences.set(BACKUP_SCHEDULE_KEY, interval.value)
    await preferences.save()

    logger.info("Updated backup settings", fields=list(update_data.keys()))
    return get_backup_settings(preferences)


def get_last_backup_date(preferences: PreferenceStore) -> str | None:
    return preferences.get(LAST_BACKUP_KEY)


def should_backup_now(preferences: PreferenceStore, clock: Clock) -> bool:
    """Decide whether an automatic backup is due.

    Due when backups are enabled with a daily or weekly interval and either
    no backup has run yet or at least 1 (daily) / 7 (weekly) days have
    passed since the last one.
    """
    backup_settings = get_backup_settings(preferences)

    if not backup_settings.enabled or backup_settings.interval == BackupInterval.NEVER:
        return False

    if not backup_settings.last_backup:
        return True

    last_backup = parse_timestamp(backup_settings.last_backup)
    if last_backup is None:
        logger.warning(
            "Unparsable last backup timestamp, treating as never backed up",
            last_backup=backup_settings.last_backup,
        )
        return True

    elapsed_days = (clock.now() - last_backup) / timedelta(days=1)
    return elapsed_days >= INTERVAL_DAYS[backup_settings.interval]


async def perform_auto_backup(
    store: ExportSource,
    attribution: AttributionProvider,
    preferences: PreferenceStore,
    backup_dir: str | Path | None = None,
) -> bool:
    """Export everything to ``auto-backup-YYYY-MM-DD.json`` and record the time.

    Returns:
        True on success, False if any step failed (the error is logged).
    """
    with correlation_scope():
        try:
            document = await export_all_data(store, attribution)
            now = attribution.clock.now()
            path = download_json(
                document,
                filename=f"auto-backup-{now.date().isoformat()}.json",
                directory=backup_dir,
            )
            preferences.set(LAST_BACKUP_KEY, isoformat_utc(now))
            await preferences.save()
        except Exception as e:
            logger.error("Auto-backup failed", error=str(e))
            return False

        logger.info("Auto-backup completed", path=str(path))
        return True


class AutoBackupScheduler:
    """Owns the recurring backup check job.

    ``start()`` registers the interval job and ``stop()`` shuts the
    scheduler down, so the check can be cancelled at shutdown or in tests.
    """

    def __init__(
        self,
        store: ExportSource,
        attribution: AttributionProvider,
        preferences: PreferenceStore,
        *,
        clock: Clock | None = None,
        backup_dir: str | Path | None = None,
        interval_hours: int | None = None,
    ):
        self.store = store
        self.attribution = attribution
        self.preferences = preferences
        self.clock = clock or attribution.clock
        self.backup_dir = backup_dir
        self.interval_hours = interval_hours or settings.backup_check_interval_hours
        self._scheduler: AsyncIOScheduler | None = None

    @property
    def running(self) -> bool:
        return self._scheduler is not None

    async def check_and_backup(self) -> bool:
        """Run a backup if one is due.

        Returns:
            True when a backup was performed successfully.
        """
        if not should_backup_now(self.preferences, self.clock):
            logger.debug("Automatic backup not due")
            return False
        return await perform_auto_backup(
            self.store,
            self.attribution,
            self.preferences,
            backup_dir=self.backup_dir,
        )

    def start(self) -> AsyncIOScheduler:
        """Start the recurring check. Must be called inside a running event loop."""
        if self._scheduler is not None:
            logger.warning("Auto-backup scheduler already running")
            return self._scheduler

        scheduler = AsyncIOScheduler()
        scheduler.add_job(
            self.check_and_backup,
            trigger=IntervalTrigger(hours=self.interval_hours),
            id=AUTO_BACKUP_JOB_ID,
            name="Automatic Data Backup",
            replace_existing=True,
            max_instances=1,
        )
        scheduler.start()
        self._scheduler = scheduler

        logger.info(
            "Auto-backup scheduler started",
            interval_hours=self.interval_hours,
        )
        return scheduler

    def stop(self) -> None:
        """Stop the recurring check."""
        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None
            logger.info("Auto-backup scheduler stopped")


async def init_auto_backup(
    store: ExportSource,
    attribution: AttributionProvider,
    preferences: PreferenceStore,
    *,
    backup_dir: str | Path | None = None,
    interval_hours: int | None = None,
) -> AutoBackupScheduler:
    """Check for a due backup now, then start the recurring check.

    Returns:
        The running scheduler handle; call ``stop()`` on shutdown.
    """
    auto_backup = AutoBackupScheduler(
        store,
        attribution,
        preferences,
        backup_dir=backup_dir,
        interval_hours=interval_hours,
    )
    await auto_backup.check_and_backup()
    auto_backup.start()
    return auto_backup
