"""
Canteen backend - application entry point
HTTP API for meal reservations with a same-day exchange pool.

Modules:
- reservation lifecycle (place, change, cancel)
- exchange pool (release, claim, listing)
- daily kitchen export and monthly payroll report
- audit log of every lifecycle operation

Stack: FastAPI + DuckDB + JWT bearer tokens
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException

from .api import api_router
from .config.settings import settings
from .core.database import DatabaseManager, db_manager
from .core.error_handler import (
    application_error_handler,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError, StorageUnavailableError
from .services.deadline_policy import DeadlinePolicy
from .services.directory_service import MenuDirectory, UserDirectory
from .services.exchange_service import ExchangeService, exchange_service
from .services.order_service import OrderService, order_service
from .services.report_service import ReportService, report_service
from .services.reservation_store import ReservationStore

logging.basicConfig(level=getattr(logging, settings.log_level.upper()), format=settings.log_format)
logger = logging.getLogger("canteen")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle"""
    try:
        app.state.db.init_database()
        logger.info("Database initialized at %s", app.state.db.db_path)
    except StorageUnavailableError as e:
        # Keep serving; requests report 503 until storage comes back
        logger.error("Database initialization failed: %s", e.message)

    yield

    logger.info("Shutting down")


def _bind_services(app: FastAPI, db: Optional[DatabaseManager], policy: Optional[DeadlinePolicy]):
    if db is None and policy is None:
        app.state.db = db_manager
        app.state.policy = order_service.policy
        app.state.order_service = order_service
        app.state.exchange_service = exchange_service
        app.state.report_service = report_service
        app.state.menu_directory = order_service.menu
        return

    db = db or db_manager
    policy = policy or DeadlinePolicy()
    store = ReservationStore(db)
    menu = MenuDirectory(db)
    users = UserDirectory(db)

    app.state.db = db
    app.state.policy = policy
    app.state.order_service = OrderService(db, policy, store, menu, users)
    app.state.exchange_service = ExchangeService(db, store, menu)
    app.state.report_service = ReportService(db, policy, store, menu, users)
    app.state.menu_directory = menu


def create_app(db: Optional[DatabaseManager] = None,
               policy: Optional[DeadlinePolicy] = None) -> FastAPI:
    """Create the FastAPI application"""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Canteen meal reservation API",
        debug=settings.debug,
        lifespan=lifespan
    )
    _bind_services(app, db, policy)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    def health_check():
        try:
            app.state.db.execute_one("SELECT 1")
            return {
                "status": "healthy",
                "version": settings.api_version,
                "database": "connected"
            }
        except StorageUnavailableError as e:
            return {
                "status": "unhealthy",
                "version": settings.api_version,
                "database": f"error: {e.message}"
            }

    @app.get("/")
    def root():
        return {
            "name": settings.api_title,
            "version": settings.api_version,
            "description": "Canteen meal reservation API"
        }

    return app


app = create_app()
