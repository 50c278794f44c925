"""Storage usage diagnostics.

Reports how much disk the data file uses against the space available to
it, plus a rough per-store estimate derived from record counts.
"""

import os
import shutil
from pathlib import Path

from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from linguacrm.config import settings
from linguacrm.logging_config import get_logger
from linguacrm.models.user import User
from linguacrm.schemas.storage_info import StorageBreakdown, StorageInfo
from linguacrm.services.record_store import RECORD_MODELS

logger = get_logger(__name__)

# Rough per-record size estimates
RECORD_SIZE_BYTES = 1024
USER_RECORD_SIZE_BYTES = 512

_BYTE_UNITS = ("Bytes", "KB", "MB", "GB")


def _path_size(path: Path) -> int:
    if path.is_file():
        return path.stat().st_size
    total = 0
    for root, _dirs, files in os.walk(path):
        for name in files:
            try:
                total += (Path(root) / name).stat().st_size
            except OSError:
                continue
    return total


def estimate_disk_usage(data_path: str | Path | None) -> tuple[int, int]:
    """Return ``(used, quota)`` bytes for the data path.

    ``used`` is the size of the file or directory tree; ``quota`` is that
    plus the free space left on its filesystem. Both are 0 when the path
    does not exist or cannot be measured.
    """
    if not data_path:
        return 0, 0
    path = Path(data_path)
    try:
        if not path.exists():
            return 0, 0
        used = _path_size(path)
        free = shutil.disk_usage(path if path.is_dir() else path.parent).free
    except OSError as e:
        logger.warning("Storage estimate unavailable", path=str(path), error=str(e))
        return 0, 0
    return used, used + free


async def _count_rows(
    session_maker: async_sessionmaker[AsyncSession],
    model: type,
) -> int:
    """Row count for one table; 0 if the table is missing or unreadable."""
    try:
        async with session_maker() as db:
            result = await db.execute(select(func.count()).select_from(model))
            return result.scalar_one()
    except SQLAlchemyError as e:
        logger.debug(
            "Record count unavailable",
            table=model.__tablename__,
            error=str(e),
        )
        return 0


async def get_storage_info(
    session_maker: async_sessionmaker[AsyncSession],
    data_path: str | Path | None = None,
) -> StorageInfo:
    """Compute current storage usage.

    Args:
        session_maker: Session factory for the record database.
        data_path: File or directory holding the data; defaults to the
            configured data_path.

    Returns:
        StorageInfo with aggregate usage and per-store estimates.
    """
    used, quota = estimate_disk_usage(
        data_path if data_path is not None else settings.data_path
    )

    breakdown = StorageBreakdown()
    for kind, model in RECORD_MODELS.items():
        count = await _count_rows(session_maker, model)
        setattr(breakdown, kind, count * RECORD_SIZE_BYTES)
    breakdown.users = await _count_rows(session_maker, User) * USER_RECORD_SIZE_BYTES

    percentage = (used / quota) * 100 if quota > 0 else 0.0

    return StorageInfo(
        used=used,
        quota=quota,
        percentage=percentage,
        breakdown=breakdown,
    )


def format_bytes(num_bytes: int) -> str:
    """Human-readable size, e.g. ``1536 -> "1.5 KB"``."""
    if num_bytes == 0:
        return "0 Bytes"

    k = 1024
    i = 0
    while i < len(_BYTE_UNITS) - 1 and num_bytes >= k ** (i + 1):
        i += 1
    value = round(num_bytes / k**i, 2)
    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{text} {_BYTE_UNITS[i]}"
