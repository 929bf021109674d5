"""
FastAPI application factory.
create_app() is the single entry point for building the app.
"""

from __future__ import annotations

import asyncio
from contextlib import AsyncExitStack, asynccontextmanager
from typing import AsyncIterator, Optional

import redis.asyncio as aioredis
import sentry_sdk
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from pymongo.asynchronous.mongo_client import AsyncMongoClient

from config import AppSettings
from errors import register_error_handlers
from infrastructure.email.protocol import EmailProvider
from infrastructure.email.zeptomail import ZeptoMailProvider
from infrastructure.http_client import HttpClient
from infrastructure.rate_limiter import RateLimiter
from repositories import otp_repository, user_repository
from repositories.otp_repository import OtpRepository
from repositories.user_repository import UserRepository
from routes.account_routes import router as account_router
from routes.health_routes import router as health_router
from routes.otp_routes import router as otp_router
from services.account_service import AccountService
from services.otp_service import OtpService
from shared.logging import get_logger, setup_logging
from workers.otp_sweeper import run_otp_sweeper

log = get_logger(__name__)


async def init_services(
    app: FastAPI,
    settings: AppSettings,
    db,
    email_provider: EmailProvider,
    *,
    ensure_indexes: bool = True,
) -> None:
    """Build repositories, services and the limiter and attach them to app.state."""
    otp_repo = OtpRepository(db[otp_repository.COLLECTION_NAME])
    user_repo = UserRepository(db[user_repository.COLLECTION_NAME])
    if ensure_indexes:
        await otp_repo.ensure_indexes()
        await user_repo.ensure_indexes()

    otp_service = OtpService(otp_repo, settings.otp)

    app.state.settings = settings
    app.state.db = db
    app.state.email_provider = email_provider
    app.state.otp_service = otp_service
    app.state.account_service = AccountService(user_repo, otp_service, email_provider)
    app.state.rate_limiter = RateLimiter.from_settings(settings)

    log.info(
        "services_initialized",
        rate_limiting=app.state.rate_limiter.enabled,
        otp_expiry_seconds=settings.otp.otp_expiry_seconds,
        otp_max_attempts=settings.otp.otp_max_attempts,
    )


def register_routes(app: FastAPI) -> None:
    app.include_router(health_router)
    app.include_router(otp_router)
    app.include_router(account_router)


def create_app(settings: Optional[AppSettings] = None) -> FastAPI:
    """Create and return a fully configured FastAPI application."""
    if settings is None:
        settings = AppSettings()

    setup_logging(settings.logging, settings.env)

    # Initialise Sentry before anything else so it captures startup errors
    if settings.sentry.sentry_dsn:
        sentry_sdk.init(
            dsn=settings.sentry.sentry_dsn,
            send_default_pii=settings.sentry.sentry_send_pii,
            traces_sample_rate=settings.sentry.sentry_traces_sample_rate,
            profiles_sample_rate=settings.sentry.sentry_profile_sample_rate,
            environment=settings.env,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Each client registers its close as soon as it is opened
        async with AsyncExitStack() as stack:
            # ── Startup ──────────────────────────────────────────────────────
            mongo_client: AsyncMongoClient = AsyncMongoClient(
                settings.db.mongodb_uri, tz_aware=True
            )
            stack.push_async_callback(mongo_client.close)

            http_client = HttpClient(timeout=settings.email.email_timeout_seconds)
            stack.push_async_callback(http_client.aclose)

            # Redis is optional; only the health check reports on it
            redis_client = None
            if settings.redis.redis_uri:
                redis_client = aioredis.from_url(
                    settings.redis.redis_uri,
                    encoding="utf-8",
                    decode_responses=True,
                )
                stack.push_async_callback(redis_client.aclose)
            app.state.redis = redis_client

            email_provider = ZeptoMailProvider(
                settings.email,
                http_client,
                app_name=settings.app_name,
                app_url=settings.app_url,
                expiry_minutes=settings.otp.otp_expiry_seconds // 60,
            )
            await init_services(
                app, settings, mongo_client[settings.db.db_name], email_provider
            )

            if settings.otp.otp_purge_interval_seconds > 0:
                stop_sweeper = asyncio.Event()
                sweeper = asyncio.create_task(
                    run_otp_sweeper(
                        app.state.otp_service,
                        settings.otp.otp_purge_interval_seconds,
                        stop_sweeper,
                    )
                )

                async def _stop_sweeper() -> None:
                    stop_sweeper.set()
                    await sweeper

                stack.push_async_callback(_stop_sweeper)

            yield

    app = FastAPI(
        title=settings.app_name,
        version="1.0.0",
        docs_url=settings.docs_url,
        redoc_url=None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_error_handlers(app)
    register_routes(app)

    return app
