"""FastAPI application factory for the fund tracker."""

from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path
from typing import TYPE_CHECKING, Any

from aiosqlite import connect as aiosqlite_connect
from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hulugan.auth import (
    AuthQueries,
    IdentityService,
    LoggingLinkSender,
    Validate,
    configure_auth_router,
)
from hulugan.store import GroupQueries, configure_group_router

from .config import configure_logging, load_config_from_env

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator

    from hulugan.auth import LinkSender

    from .config import AppConfig

LOGGER = logging.getLogger(__name__)


def configure_fastapi_app(
    config: AppConfig,
    link_sender: LinkSender | None = None,
) -> FastAPI:
    """Configure and return the FastAPI application.

    :param config: Application configuration
    :param link_sender: Delivery for magic links, defaults to logging them
    :return: Configured FastAPI application
    """
    link_sender = link_sender or LoggingLinkSender()

    if not Path(config.db_path).parent.exists():
        Path(config.db_path).parent.mkdir(parents=True, exist_ok=True)
        LOGGER.info(
            "Created directory for database at %s",
            Path(config.db_path).parent,
        )

    if not Path(config.db_path).exists():
        LOGGER.info("Database file does not exist at %s", config.db_path)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[Any, Any]:
        """Application lifespan manager.

        Opens the database, creates tables, grants configured admins their
        role and mounts the routers.
        """
        LOGGER.info("Hulugan fund API is starting")

        async with aiosqlite_connect(config.db_path) as db_connection:
            await db_connection.execute("PRAGMA foreign_keys = ON")

            auth_queries = AuthQueries(db_connection)
            await auth_queries.initialize_tables()
            group_queries = GroupQueries(db_connection)
            await group_queries.initialize_tables()

            identity = IdentityService(
                auth_queries,
                config.security_manager,
                link_sender,
                config.magic_link_redirect_url,
            )
            await identity.bootstrap_admins(config.admin_emails)

            validate = Validate(identity)

            auth_router = configure_auth_router(APIRouter(), identity, validate)
            group_router = configure_group_router(
                APIRouter(),
                group_queries,
                validate,
            )

            app.include_router(auth_router, prefix="/auth", tags=["auth"])
            app.include_router(group_router, prefix="/groups", tags=["groups"])

            yield

            LOGGER.info("Hulugan fund API is shutting down")

    app = FastAPI(
        title="Hulugan Fund API",
        version="0.0.1",
        lifespan=lifespan,
        root_path=config.root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def read_root() -> str:
        return "Hulugan Fund API"

    return app


def create_app(env_file: str | None = os.environ.get("ENV_FILE", ".env")) -> FastAPI:
    """Create and configure the FastAPI application.

    The default here is for uvicorn command line usage, in which case the user
    should set ENV_FILE environment variable if they want a different file.

    :param env_file: Optional path to the environment configuration file
    :return: Configured FastAPI application
    """
    config = load_config_from_env(env_file)
    configure_logging(config)
    return configure_fastapi_app(config)
