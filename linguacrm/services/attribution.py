"""User attribution.

Resolves the signed-in user from the preference store and stamps records
with who created or last modified them.
"""

from typing import Any

from linguacrm.core.clock import Clock, SystemClock, isoformat_utc
from linguacrm.core.errors import NotAuthenticatedError
from linguacrm.logging_config import get_logger
from linguacrm.schemas.user import UserInfo
from linguacrm.services.data_store import UserDirectory
from linguacrm.services.preferences import CURRENT_USER_KEY, PreferenceStore

logger = get_logger(__name__)

Record = dict[str, Any]


class AttributionProvider:
    """Identity of the current user plus record stamping helpers."""

    def __init__(
        self,
        preferences: PreferenceStore,
        users: UserDirectory,
        clock: Clock | None = None,
    ):
        self.preferences = preferences
        self.users = users
        self.clock = clock or SystemClock()

    def current_user_id(self) -> str:
        """Return the signed-in user's id.

        Raises:
            NotAuthenticatedError: If nobody is signed in.
        """
        user_id = self.preferences.get(CURRENT_USER_KEY)
        if not user_id:
            raise NotAuthenticatedError("No authenticated user found")
        return user_id

    async def current_user_info(self) -> UserInfo:
        """Resolve the signed-in user's id and username.

        Raises:
            NotAuthenticatedError: If nobody is signed in or the user no
                longer exists.
        """
        user_id = self.current_user_id()
        user = await self.users.get_user_by_id(user_id)
        if user is None:
            logger.warning("Signed-in user not found", user_id=user_id)
            raise NotAuthenticatedError("User not found")
        return user

    async def sign_in(self, user_id: str) -> UserInfo:
        """Make ``user_id`` the current user after checking it exists."""
        user = await self.users.get_user_by_id(user_id)
        if user is None:
            raise NotAuthenticatedError("User not found")
        self.preferences.set(CURRENT_USER_KEY, user.id)
        await self.preferences.save()
        logger.info("User signed in", user_id=user.id)
        return user

    async def sign_out(self) -> None:
        self.preferences.delete(CURRENT_USER_KEY)
        await self.preferences.save()

    def add_user_attribution(self, record: Record) -> Record:
        """Copy of ``record`` stamped with creator and creation time.

        The username is left empty; the store fills it on save.
        """
        return {
            **record,
            "createdBy": self.current_user_id(),
            "createdByUsername": "",
            "createdAt": isoformat_utc(self.clock.now()),
        }

    def add_modification_attribution(self, record: Record) -> Record:
        """Copy of ``record`` stamped with last modifier and modification time."""
        return {
            **record,
            "modifiedBy": self.current_user_id(),
            "modifiedByUsername": "",
            "modifiedAt": isoformat_utc(self.clock.now()),
        }
