# Backup subsystem services
from linguacrm.services.attribution import AttributionProvider
from linguacrm.services.backup_scheduler import (
    AutoBackupScheduler,
    get_backup_settings,
    init_auto_backup,
    perform_auto_backup,
    set_backup_settings,
    should_backup_now,
)
from linguacrm.services.data_export import (
    download_json,
    export_all_data,
    upload_to_server,
)
from linguacrm.services.data_import import (
    download_from_server,
    import_data,
    validate_import_data,
)
from linguacrm.services.storage_info import format_bytes, get_storage_info

__all__ = [
    "AttributionProvider",
    "AutoBackupScheduler",
    "download_from_server",
    "download_json",
    "export_all_data",
    "format_bytes",
    "get_backup_settings",
    "get_storage_info",
    "import_data",
    "init_auto_backup",
    "perform_auto_backup",
    "set_backup_settings",
    "should_backup_now",
    "upload_to_server",
    "validate_import_data",
]
