"""Tests for database session configuration."""

import importlib
import os
from unittest.mock import patch

import pytest
from sqlalchemy import select, text

from healthauth.core.exceptions import StorageFailure
from healthauth.models.user import User


def test_pool_size_from_env():
    """Pool size should be configurable via DATABASE_POOL_SIZE."""
    with patch.dict(os.environ, {"DATABASE_POOL_SIZE": "30"}):
        from healthauth.db import session
        importlib.reload(session)

        assert session.pool_size == 30


def test_pool_size_default():
    """Pool size should default to 20."""
    with patch.dict(os.environ, {}, clear=False):
        os.environ.pop("DATABASE_POOL_SIZE", None)

        from healthauth.db import session
        importlib.reload(session)

        assert session.pool_size == 20


def test_max_overflow_from_env():
    """Max overflow should be configurable via DATABASE_MAX_OVERFLOW."""
    with patch.dict(os.environ, {"DATABASE_MAX_OVERFLOW": "50"}):
        from healthauth.db import session
        importlib.reload(session)

        assert session.max_overflow == 50


def test_max_overflow_default():
    """Max overflow should default to 40."""
    with patch.dict(os.environ, {}, clear=False):
        os.environ.pop("DATABASE_MAX_OVERFLOW", None)

        from healthauth.db import session
        importlib.reload(session)

        assert session.max_overflow == 40


class TestTransaction:
    @pytest.mark.asyncio
    async def test_commits_on_success(self, database, test_session):
        async with database.transaction() as db:
            db.add(User(email="commit@example.com"))

        result = await test_session.execute(select(User).where(User.email == "commit@example.com"))
        assert result.scalar_one_or_none() is not None

    @pytest.mark.asyncio
    async def test_rolls_back_on_error(self, database, test_session):
        with pytest.raises(ValueError):
            async with database.transaction() as db:
                db.add(User(email="rollback@example.com"))
                await db.flush()
                raise ValueError("boom")

        result = await test_session.execute(select(User).where(User.email == "rollback@example.com"))
        assert result.scalar_one_or_none() is None

    @pytest.mark.asyncio
    async def test_database_errors_become_storage_failure(self, database):
        with pytest.raises(StorageFailure) as exc_info:
            async with database.transaction() as db:
                await db.execute(text("SELECT * FROM no_such_table"))

        assert "no_such_table" in exc_info.value.reason

    @pytest.mark.asyncio
    async def test_joins_callers_session(self, database):
        async with database.transaction() as outer:
            async with database.transaction(outer) as inner:
                assert inner is outer


def test_from_settings_builds_pooled_postgres_engine():
    from healthauth.db.session import Database

    database = Database.from_settings()
    engine = database.session_maker.kw["bind"]

    assert engine.url.drivername == "postgresql+asyncpg"
    assert engine.pool.timeout() == 30
