"""Data export service.

Snapshots every entity collection into one versioned document and writes
it to a local backup file or posts it to the remote backup server.
"""

import asyncio
import json
from pathlib import Path

import httpx

from linguacrm.config import settings
from linguacrm.core.clock import isoformat_utc
from linguacrm.logging_config import get_logger
from linguacrm.schemas.export import ExportData, ExportDocument, ExportMetadata
from linguacrm.services.attribution import AttributionProvider
from linguacrm.services.data_store import ALL_PROSPECTS, ExportSource

logger = get_logger(__name__)

BACKUP_ENDPOINT = "/api/backup"


async def export_all_data(
    store: ExportSource,
    attribution: AttributionProvider,
) -> ExportDocument:
    """Build an export document from every collection in the store.

    Completed jobs are appended to the prospect list. The store is only
    read, never modified.

    Args:
        store: Source of the entity collections.
        attribution: Resolves the exporting user and the current time.

    Returns:
        The export document.

    Raises:
        NotAuthenticatedError: If no user is signed in.
    """
    user = await attribution.current_user_info()

    logger.info("Data export initiated", user_id=user.id)

    prospects, students, classes, payments, expenditures = await asyncio.gather(
        store.search_prospects(ALL_PROSPECTS),
        store.get_students(),
        store.get_classes(),
        store.get_all_payments(),
        store.get_all_expenditures(),
    )
    completed_jobs = await store.get_completed_jobs()

    document = ExportDocument(
        metadata=ExportMetadata(
            export_date=isoformat_utc(attribution.clock.now()),
            exported_by=user.id,
            exported_by_username=user.username,
            version=settings.export_version,
            app_name=settings.app_name,
        ),
        data=ExportData(
            prospects=[*prospects, *completed_jobs],
            students=students,
            classes=classes,
            payments=payments,
            expenditures=expenditures,
        ),
    )

    logger.info(
        "Data export completed",
        user_id=user.id,
        record_counts=document.data.record_counts(),
    )

    return document


def serialize_document(document: ExportDocument) -> str:
    """Pretty-printed JSON text of the document."""
    return json.dumps(document.to_wire(), indent=2, ensure_ascii=False)


def default_backup_filename(
    document: ExportDocument, prefix: str = "crm-backup"
) -> str:
    """``<prefix>-YYYY-MM-DD.json`` using the document's export date."""
    return f"{prefix}-{document.metadata.export_date[:10]}.json"


def download_json(
    document: ExportDocument,
    filename: str | None = None,
    directory: str | Path | None = None,
) -> Path:
    """Write the document to a JSON file in the backup directory.

    Args:
        document: Document to write.
        filename: File name; defaults to ``crm-backup-<export date>.json``.
        directory: Target directory; defaults to the configured backup_dir.

    Returns:
        Path of the written file.
    """
    target_dir = Path(directory if directory is not None else settings.backup_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    path = target_dir / (filename or default_backup_filename(document))
    path.write_text(serialize_document(document), encoding="utf-8")

    logger.info("Backup file written", path=str(path))
    return path


async def upload_to_server(document: ExportDocument, server_url: str) -> bool:
    """POST the document to ``{server_url}/api/backup``.

    Returns ``True`` on a 2xx response. Transport errors and error
    responses are logged and reported as ``False``; nothing is retried.
    """
    url = f"{server_url.rstrip('/')}{BACKUP_ENDPOINT}"
    try:
        async with httpx.AsyncClient(
            timeout=settings.backup_http_timeout_seconds
        ) as client:
            resp = await client.post(
                url,
                content=serialize_document(document),
                headers={"Content-Type": "application/json"},
            )
    except Exception as exc:
        logger.warning("Failed to upload backup to server", url=url, error=str(exc))
        return False

    if not resp.is_success:
        logger.warning(
            "Backup server rejected upload",
            url=url,
            status_code=resp.status_code,
        )
        return False

    logger.info("Backup uploaded to server", url=url)
    return True
