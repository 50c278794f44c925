"""Capability interfaces the backup subsystem needs from the record stores.

Each consumer depends only on the operations it calls: the export engine
reads, the import engine reads prospect ids and inserts, attribution looks
up users.
"""

from dataclasses import dataclass
from typing import Any, Protocol

from linguacrm.schemas.user import UserInfo

Record = dict[str, Any]

MATCH_ALL = "all"


@dataclass(frozen=True)
class ProspectFilter:
    """Prospect search criteria; the defaults match every prospect."""

    contact_method: str = MATCH_ALL
    service_interested_in: str = MATCH_ALL
    search_term: str = ""


ALL_PROSPECTS = ProspectFilter()


class ExportSource(Protocol):
    async def search_prospects(
        self, prospect_filter: ProspectFilter
    ) -> list[Record]: ...

    async def get_completed_jobs(self) -> list[Record]: ...

    async def get_students(self) -> list[Record]: ...

    async def get_classes(self) -> list[Record]: ...

    async def get_all_payments(self) -> list[Record]: ...

    async def get_all_expenditures(self) -> list[Record]: ...


class ImportTarget(Protocol):
    async def search_prospects(
        self, prospect_filter: ProspectFilter
    ) -> list[Record]: ...

    # Converted prospects are not returned by search_prospects but still
    # count as existing ids on import
    async def get_completed_jobs(self) -> list[Record]: ...

    async def add_prospect_with_id(self, record_id: str, record: Record) -> None: ...


class UserDirectory(Protocol):
    async def get_user_by_id(self, user_id: str) -> UserInfo | None: ...
