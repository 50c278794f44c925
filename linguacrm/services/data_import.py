"""Data import service.

Validates an export document, skips prospects the store already holds,
and inserts the rest with their original ids and attribution. Failures
are collected into the ImportResult instead of being raised.
"""

import json
from pathlib import Path
from typing import IO, Any

import httpx
from pydantic import ValidationError

from linguacrm.config import settings
from linguacrm.core.errors import (
    InvalidFormatError,
    MalformedInputError,
    RecordInsertError,
    TransportError,
)
from linguacrm.logging_config import get_logger
from linguacrm.schemas.export import ENTITY_KINDS, ExportDocument
from linguacrm.schemas.import_result import ImportResult
from linguacrm.services.data_store import ALL_PROSPECTS, ImportTarget

logger = get_logger(__name__)

LATEST_BACKUP_ENDPOINT = "/api/backup/latest"

ImportSource = str | bytes | Path | IO[str] | IO[bytes]


def validate_import_data(data: Any) -> bool:
    """Check that ``data`` has the export document shape.

    Requires truthy ``metadata.version`` and ``metadata.appName`` and a
    list for every entity collection under ``data``.
    """
    if not data or not isinstance(data, dict):
        return False
    metadata = data.get("metadata")
    body = data.get("data")
    if not isinstance(metadata, dict) or not isinstance(body, dict):
        return False
    if not metadata.get("version") or not metadata.get("appName"):
        return False
    return all(isinstance(body.get(kind), list) for kind in ENTITY_KINDS)


def _read_text(file: ImportSource) -> str:
    """Return the text content of a path, raw content, or file object."""
    if isinstance(file, Path):
        return file.read_text(encoding="utf-8")
    if isinstance(file, bytes):
        return file.decode("utf-8")
    if isinstance(file, str):
        return file
    content = file.read()
    return content.decode("utf-8") if isinstance(content, bytes) else content


def parse_document(text: str) -> ExportDocument:
    """Parse and validate export document text.

    Raises:
        MalformedInputError: If the text is not JSON.
        InvalidFormatError: If the JSON is not an export document.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise MalformedInputError(str(e)) from e

    if not validate_import_data(data):
        raise InvalidFormatError("Invalid data format")

    try:
        return ExportDocument.model_validate(data)
    except ValidationError as e:
        raise InvalidFormatError("Invalid data format") from e


def _prospect_name(prospect: Any) -> str:
    if isinstance(prospect, dict):
        return str(prospect.get("prospectName", "<unnamed>"))
    return "<unnamed>"


async def merge_document(document: ExportDocument, store: ImportTarget) -> ImportResult:
    """Insert the document's prospects that the store does not already hold.

    Prospects are processed one at a time. A prospect whose id is already
    present (including one inserted earlier in the same run) is skipped;
    a failed insert is recorded and the batch continues. Other entity
    collections are not merged.
    """
    result = ImportResult()

    existing = await store.search_prospects(ALL_PROSPECTS)
    existing += await store.get_completed_jobs()
    known_ids = {p.get("id") for p in existing}

    for prospect in document.data.prospects:
        prospect_id = prospect.get("id") if isinstance(prospect, dict) else None
        try:
            if not isinstance(prospect_id, str) or not prospect_id:
                raise RecordInsertError("", "Prospect has no usable id")
            if prospect_id in known_ids:
                result.skipped += 1
                continue
            await store.add_prospect_with_id(prospect_id, prospect)
        except Exception as e:
            name = _prospect_name(prospect)
            logger.warning(
                "Prospect import failed",
                prospect_id=str(prospect_id),
                error=str(e),
            )
            result.errors.append(f"Failed to import prospect: {name}")
            continue
        known_ids.add(prospect_id)
        result.imported.prospects += 1

    result.success = not result.errors
    return result


async def _merge_reporting_failure(
    document: ExportDocument, store: ImportTarget
) -> ImportResult:
    """merge_document that reports a store failure instead of raising it."""
    try:
        return await merge_document(document, store)
    except Exception as e:
        logger.exception("Import failed", error=str(e))
        return ImportResult(errors=[f"Import failed: {e}"])


async def import_data(file: ImportSource, store: ImportTarget) -> ImportResult:
    """Import an export document into the store.

    Args:
        file: Path, raw JSON text/bytes, or an open file object.
        store: Store receiving the records.

    Returns:
        The ImportResult. Read, parse and format failures are reported in
        ``errors`` with ``success=False``; this function does not raise
        for bad input.
    """
    try:
        document = parse_document(_read_text(file))
    except InvalidFormatError:
        logger.warning("Import rejected: invalid data format")
        return ImportResult(errors=["Invalid data format"])
    except (MalformedInputError, OSError, UnicodeDecodeError) as e:
        logger.warning("Import failed", error=str(e))
        return ImportResult(errors=[f"Import failed: {e}"])

    logger.info(
        "Data import initiated",
        exported_by=document.metadata.exported_by,
        record_counts=document.data.record_counts(),
    )

    result = await _merge_reporting_failure(document, store)

    logger.info(
        "Data import completed",
        success=result.success,
        imported=result.imported.prospects,
        skipped=result.skipped,
        errors=len(result.errors),
    )
    return result


async def _fetch_latest(server_url: str) -> Any:
    url = f"{server_url.rstrip('/')}{LATEST_BACKUP_ENDPOINT}"
    try:
        async with httpx.AsyncClient(
            timeout=settings.backup_http_timeout_seconds
        ) as client:
            resp = await client.get(url)
            resp.raise_for_status()
            return resp.json()
    except (httpx.HTTPError, ValueError) as e:
        raise TransportError(f"{url}: {e}") from e


async def download_from_server(server_url: str) -> ExportDocument | None:
    """Fetch the latest backup from ``{server_url}/api/backup/latest``.

    Returns ``None`` when the server is unreachable, answers with an error
    status or a body that is not an export document.
    """
    try:
        data = await _fetch_latest(server_url)
    except TransportError as e:
        logger.warning("Failed to download backup from server", error=str(e))
        return None

    if not validate_import_data(data):
        logger.warning("Server backup has invalid format", server_url=server_url)
        return None

    try:
        return ExportDocument.model_validate(data)
    except ValidationError as e:
        logger.warning(
            "Server backup has invalid format",
            server_url=server_url,
            error=str(e),
        )
        return None


async def restore_from_server(
    server_url: str, store: ImportTarget
) -> ImportResult | None:
    """Download the latest server backup and merge it into the store.

    Returns ``None`` when no valid backup could be downloaded.
    """
    document = await download_from_server(server_url)
    if document is None:
        return None
    return await _merge_reporting_failure(document, store)
