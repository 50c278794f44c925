"""Tests for user attribution."""

import pytest

from linguacrm.core.errors import NotAuthenticatedError
from linguacrm.services.preferences import CURRENT_USER_KEY
from tests.conftest import TEST_USER


class TestCurrentUser:
    """Tests for resolving the signed-in user."""

    def test_current_user_id(self, attribution):
        assert attribution.current_user_id() == TEST_USER.id

    def test_no_user_signed_in(self, attribution, preferences):
        preferences.delete(CURRENT_USER_KEY)

        with pytest.raises(NotAuthenticatedError, match="No authenticated user"):
            attribution.current_user_id()

    @pytest.mark.asyncio
    async def test_current_user_info(self, attribution):
        assert await attribution.current_user_info() == TEST_USER

    @pytest.mark.asyncio
    async def test_deleted_user(self, attribution, preferences):
        preferences.set(CURRENT_USER_KEY, "gone")

        with pytest.raises(NotAuthenticatedError, match="User not found"):
            await attribution.current_user_info()


class TestSignInOut:
    """Tests for sign_in / sign_out."""

    @pytest.mark.asyncio
    async def test_sign_in_persists_user(self, attribution, preferences):
        preferences.delete(CURRENT_USER_KEY)

        user = await attribution.sign_in(TEST_USER.id)

        assert user == TEST_USER
        assert preferences.get(CURRENT_USER_KEY) == TEST_USER.id
        assert preferences.has_unsaved_changes is False

    @pytest.mark.asyncio
    async def test_sign_in_unknown_user(self, attribution, preferences):
        with pytest.raises(NotAuthenticatedError):
            await attribution.sign_in("nobody")

        assert preferences.get(CURRENT_USER_KEY) == TEST_USER.id

    @pytest.mark.asyncio
    async def test_sign_out(self, attribution, preferences):
        await attribution.sign_out()

        assert preferences.get(CURRENT_USER_KEY) is None
        with pytest.raises(NotAuthenticatedError):
            attribution.current_user_id()


class TestRecordStamping:
    """Tests for add_user_attribution / add_modification_attribution."""

    def test_add_user_attribution(self, attribution):
        stamped = attribution.add_user_attribution({"prospectName": "Ana"})

        assert stamped == {
            "prospectName": "Ana",
            "createdBy": TEST_USER.id,
            "createdByUsername": "",
            "createdAt": "2024-05-01T09:30:00.000Z",
        }

    def test_add_modification_attribution_keeps_creator(self, attribution):
        record = attribution.add_user_attribution({"prospectName": "Ana"})

        stamped = attribution.add_modification_attribution(record)

        assert stamped["createdBy"] == TEST_USER.id
        assert stamped["modifiedBy"] == TEST_USER.id
        assert stamped["modifiedAt"] == "2024-05-01T09:30:00.000Z"
        assert "modifiedBy" not in record

    def test_stamping_requires_user(self, attribution, preferences):
        preferences.delete(CURRENT_USER_KEY)

        with pytest.raises(NotAuthenticatedError):
            attribution.add_user_attribution({})
