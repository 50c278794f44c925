"""Exceptions raised by the backup subsystem."""


class BackupError(Exception):
    """Base exception for export, import and backup errors."""

    pass


class NotAuthenticatedError(BackupError):
    """No user identity could be resolved for attribution."""

    pass


class MalformedInputError(BackupError):
    """Import input could not be read or parsed as JSON."""

    pass


class InvalidFormatError(BackupError):
    """Import document does not have the export document shape."""

    pass


class RecordInsertError(BackupError):
    """A single record could not be written to the store."""

    def __init__(self, record_id: str, message: str):
        super().__init__(message)
        self.record_id = record_id


class TransportError(BackupError):
    """Network exchange with the remote backup server failed."""

    pass
