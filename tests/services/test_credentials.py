"""Tests for user records and password credentials."""

import uuid

import pytest
from sqlalchemy import func, select

from healthauth.core.errors import ErrorCode
from healthauth.core.exceptions import InvalidInput
from healthauth.core.security import get_password_hash
from healthauth.models.password_history import PasswordHistoryEntry
from healthauth.models.user import User


class TestCreateUser:
    @pytest.mark.asyncio
    async def test_email_is_normalised(self, credentials):
        user = await credentials.create_user("  Jane.Doe@Example.COM ", "Jane", "Doe")

        assert user.email == "jane.doe@example.com"
        assert user.is_verified is False
        assert user.has_password is False

    @pytest.mark.asyncio
    async def test_password_is_hashed_and_seeds_history(self, credentials, test_session, clock):
        user = await credentials.create_user("jane@example.com", password="Str0ng!Pass1234")

        assert user.password_hash != "Str0ng!Pass1234"
        assert user.password_hash.startswith("$2")
        assert user.password_changed_at == clock()
        count = await test_session.execute(
            select(func.count()).select_from(PasswordHistoryEntry).where(
                PasswordHistoryEntry.user_id == user.id
            )
        )
        assert count.scalar() == 1

    @pytest.mark.asyncio
    async def test_duplicate_email_rejected(self, credentials, test_user):
        with pytest.raises(InvalidInput) as exc_info:
            await credentials.create_user("USER@example.com")

        assert exc_info.value.code == ErrorCode.ALREADY_EXISTS

    @pytest.mark.asyncio
    async def test_malformed_email_rejected(self, credentials):
        for email in ["", "   ", "not-an-email", "missing@tld"]:
            with pytest.raises(InvalidInput):
                await credentials.create_user(email)


class TestLookups:
    @pytest.mark.asyncio
    async def test_get_user_by_email_ignores_case(self, credentials, test_user):
        user = await credentials.get_user_by_email("User@Example.com")

        assert user is not None
        assert user.id == test_user.id

    @pytest.mark.asyncio
    async def test_get_user_by_id(self, credentials, test_user):
        assert (await credentials.get_user_by_id(test_user.id)).email == test_user.email
        assert await credentials.get_user_by_id(uuid.uuid4()) is None

    @pytest.mark.asyncio
    async def test_unknown_email(self, credentials):
        assert await credentials.get_user_by_email("nobody@example.com") is None

    @pytest.mark.asyncio
    async def test_mark_verified(self, credentials):
        user = await credentials.create_user("new@example.com")

        await credentials.mark_verified(user.id)

        assert (await credentials.get_user_by_id(user.id)).is_verified is True


class TestVerifyPassword:
    @pytest.mark.asyncio
    async def test_correct_and_wrong_password(self, credentials, test_user):
        assert await credentials.verify_password(test_user.id, "Str0ng!Pass1234") is True
        assert await credentials.verify_password(test_user.id, "Str0ng!Pass1235") is False

    @pytest.mark.asyncio
    async def test_account_without_hash_never_passes(self, credentials, legacy_user):
        assert await credentials.verify_password(legacy_user.id, "") is False
        assert await credentials.verify_password(legacy_user.id, "Str0ng!Pass1234") is False

    @pytest.mark.asyncio
    async def test_unknown_user_never_passes(self, credentials):
        assert await credentials.verify_password(uuid.uuid4(), "Str0ng!Pass1234") is False

    @pytest.mark.asyncio
    async def test_corrupt_hash_never_passes(self, credentials, test_user, test_session):
        user = await test_session.get(User, test_user.id)
        user.password_hash = "not-a-bcrypt-hash"
        await test_session.commit()

        assert await credentials.verify_password(test_user.id, "not-a-bcrypt-hash") is False


class TestSetPassword:
    @pytest.mark.asyncio
    async def test_first_time_setup(self, credentials, history, legacy_user):
        assert await credentials.set_password(legacy_user.id, "Fresh!Setup9876") is True

        assert await credentials.verify_password(legacy_user.id, "Fresh!Setup9876") is True
        assert await history.was_recently_used(legacy_user.id, "Fresh!Setup9876") is True
        user = await credentials.get_user_by_id(legacy_user.id)
        assert user.password_changed_at is not None

    @pytest.mark.asyncio
    async def test_refuses_to_overwrite(self, credentials, test_user):
        assert await credentials.set_password(test_user.id, "Another!Pass9876") is False

        assert await credentials.verify_password(test_user.id, "Str0ng!Pass1234") is True
        assert await credentials.verify_password(test_user.id, "Another!Pass9876") is False

    @pytest.mark.asyncio
    async def test_second_setup_refused(self, credentials, legacy_user):
        assert await credentials.set_password(legacy_user.id, "Fresh!Setup9876") is True
        assert await credentials.set_password(legacy_user.id, "Other!Setup5432") is False


class TestPasswordHistory:
    @pytest.mark.asyncio
    async def test_last_five_remembered_sixth_is_new(self, history, legacy_user, clock):
        passwords = [f"History!Pass{n}x{n}" for n in range(1, 6)]
        for password in passwords:
            clock.advance(minutes=1)
            await history.record(legacy_user.id, get_password_hash(password))

        for password in passwords:
            assert await history.was_recently_used(legacy_user.id, password) is True
        assert await history.was_recently_used(legacy_user.id, "Never!Used6x6") is False

    @pytest.mark.asyncio
    async def test_prunes_to_five(self, history, legacy_user, clock, test_session):
        for n in range(7):
            clock.advance(minutes=1)
            await history.record(legacy_user.id, get_password_hash(f"Rotating!Pass{n}"))

        count = await test_session.execute(
            select(func.count()).select_from(PasswordHistoryEntry).where(
                PasswordHistoryEntry.user_id == legacy_user.id
            )
        )
        assert count.scalar() == 5
        assert await history.was_recently_used(legacy_user.id, "Rotating!Pass0") is False
        assert await history.was_recently_used(legacy_user.id, "Rotating!Pass1") is False
        assert await history.was_recently_used(legacy_user.id, "Rotating!Pass6") is True

    @pytest.mark.asyncio
    async def test_pruning_is_per_user(self, history, test_user, legacy_user, clock):
        for n in range(6):
            clock.advance(minutes=1)
            await history.record(legacy_user.id, get_password_hash(f"Rotating!Pass{n}"))

        assert await history.was_recently_used(test_user.id, "Str0ng!Pass1234") is True

    @pytest.mark.asyncio
    async def test_hash_candidate_rejected(self, history, test_user):
        with pytest.raises(InvalidInput):
            await history.was_recently_used(test_user.id, test_user.password_hash)

    @pytest.mark.asyncio
    async def test_same_second_entries_keep_insertion_order(self, history, legacy_user):
        # Clock never advances; ties on created_at fall back to id
        for n in range(6):
            await history.record(legacy_user.id, get_password_hash(f"Burst!Pass{n}"))

        assert await history.was_recently_used(legacy_user.id, "Burst!Pass0") is False
        assert await history.was_recently_used(legacy_user.id, "Burst!Pass5") is True
