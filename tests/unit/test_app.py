"""Startup and shutdown of the application built by create_app()."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import structlog
from fastapi.testclient import TestClient

from app import create_app
from config import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    OtpSettings,
    RedisSettings,
)


def _settings() -> AppSettings:
    return AppSettings(
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        redis=RedisSettings(redis_uri=None),
        otp=OtpSettings(otp_purge_interval_seconds=0),
        logging=LoggingSettings(log_format="console"),
    )


@pytest.fixture(autouse=True)
def restore_structlog():
    config = structlog.get_config()
    yield
    structlog.configure(**config)


@pytest.fixture
def mongo_client(mocker):
    client = MagicMock()
    client.close = AsyncMock()
    mocker.patch("app.AsyncMongoClient", return_value=client)
    return client


@pytest.fixture
def http_client(mocker):
    client = MagicMock()
    client.aclose = AsyncMock()
    mocker.patch("app.HttpClient", return_value=client)
    return client


class TestLifespan:
    def test_clients_closed_on_shutdown(self, mocker, mongo_client, http_client):
        init = mocker.patch("app.init_services", AsyncMock())
        with TestClient(create_app(_settings())):
            init.assert_awaited_once()
            mongo_client.close.assert_not_awaited()
        mongo_client.close.assert_awaited_once()
        http_client.aclose.assert_awaited_once()

    def test_failed_startup_closes_clients(self, mocker, mongo_client, http_client):
        mocker.patch(
            "app.init_services",
            AsyncMock(side_effect=RuntimeError("index build failed")),
        )
        with pytest.raises(RuntimeError, match="index build failed"):
            with TestClient(create_app(_settings())):
                pass
        mongo_client.close.assert_awaited_once()
        http_client.aclose.assert_awaited_once()

    def test_failing_close_does_not_skip_the_rest(
        self, mocker, mongo_client, http_client
    ):
        mocker.patch("app.init_services", AsyncMock())
        http_client.aclose.side_effect = RuntimeError("connection reset")
        with pytest.raises(RuntimeError, match="connection reset"):
            with TestClient(create_app(_settings())):
                pass
        mongo_client.close.assert_awaited_once()
