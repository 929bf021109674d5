"""
Integration fixtures: the real routers and services over mongomock.

The app is assembled the same way create_app() does it, but its lifespan
wires the in-memory database and a mocked email provider instead of
opening network connections.
"""

from contextlib import asynccontextmanager
from typing import Optional

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app import init_services, register_routes
from config import AppSettings, DatabaseSettings, RateLimitSettings
from errors import register_error_handlers
from repositories.user_repository import COLLECTION_NAME as USERS
from shared.crypto import hash_password


def build_settings(env: str = "development", enabled: Optional[bool] = None):
    return AppSettings(
        env=env,
        db=DatabaseSettings(mongodb_uri="mongodb://localhost:27017/"),
        rate_limit=RateLimitSettings(rate_limit_enabled=enabled),
    )


@pytest.fixture
def make_client(async_db, email_provider):
    """Return a factory that yields a started TestClient for the given settings."""
    clients = []

    def _make(env: str = "development", enabled: Optional[bool] = None):
        settings = build_settings(env, enabled)

        @asynccontextmanager
        async def lifespan(app: FastAPI):
            await init_services(app, settings, async_db, email_provider)
            app.state.redis = None
            yield

        app = FastAPI(lifespan=lifespan)
        register_error_handlers(app)
        register_routes(app)

        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make

    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client):
    return make_client()


@pytest.fixture
def seed_user(mock_db):
    def _seed(email="alice@x.com", verified=False, first_name="Alice"):
        mock_db[USERS].insert_one(
            {
                "email": email,
                "user_name": email.split("@")[0],
                "first_name": first_name,
                "password_hash": hash_password("old-password"),
                "password_set": True,
                "email_verified": verified,
            }
        )
        return mock_db[USERS].find_one({"email": email})

    return _seed

