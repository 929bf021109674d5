"""
Shared fixtures.

mongomock gives an in-memory MongoDB; AsyncCollection exposes its methods
as coroutines so repositories written against pymongo's async API run
unchanged. FrozenClock lets tests move time without sleeping.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import mongomock
import pytest

from config import OtpSettings
from repositories.otp_repository import COLLECTION_NAME, OtpRepository
from services.otp_service import OtpService


class AsyncCollection:
    """Awaitable facade over a mongomock collection."""

    def __init__(self, collection) -> None:
        self._collection = collection

    def __getattr__(self, name):
        attr = getattr(self._collection, name)
        if not callable(attr):
            return attr

        async def _call(*args, **kwargs):
            return attr(*args, **kwargs)

        return _call


class AsyncDatabase:
    def __init__(self, db) -> None:
        self._db = db

    def __getitem__(self, name: str) -> AsyncCollection:
        return AsyncCollection(self._db[name])


class FrozenClock:
    def __init__(self, start: datetime) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def mock_db():
    return mongomock.MongoClient().db


@pytest.fixture
def async_db(mock_db):
    return AsyncDatabase(mock_db)


@pytest.fixture
def clock():
    # Whole seconds: BSON dates keep millisecond precision only
    return FrozenClock(datetime.now(timezone.utc).replace(microsecond=0))


@pytest.fixture
def otp_settings():
    return OtpSettings(otp_expiry_seconds=600, otp_max_attempts=3)


@pytest.fixture
def otp_repo(async_db):
    return OtpRepository(async_db[COLLECTION_NAME])


@pytest.fixture
def otp_service(otp_repo, otp_settings, clock):
    return OtpService(otp_repo, otp_settings, clock=clock)


@pytest.fixture
def email_provider():
    provider = AsyncMock()
    provider.send_code.return_value = True
    provider.send_confirmation.return_value = True
    return provider