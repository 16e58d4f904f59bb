"""FastAPI application entrypoints for the users and files services. Only wiring and middleware.

  uvicorn filevault.main:users_app --port 4001
  uvicorn filevault.main:files_app --port 4002
"""

import logging
import time

from dotenv import load_dotenv

load_dotenv()

from fastapi import APIRouter, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from filevault.api import files, health, users
from filevault.core.access import FILES_RULES, USERS_RULES, AccessControlGate, AccessRule
from filevault.core.config import Settings, get_settings
from filevault.core.errors import register_error_handlers
from filevault.services.storage import FileStorage

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def configure_logging(settings: Settings) -> None:
    # asctime is UTC.
    logging.Formatter.converter = time.gmtime
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format=LOG_FORMAT,
        datefmt=LOG_DATE_FORMAT,
    )


def _build_app(
    *,
    title: str,
    service_name: str,
    router: APIRouter,
    rules: tuple[AccessRule, ...],
    public_endpoints: list[str],
    settings: Settings,
) -> FastAPI:
    app = FastAPI(
        title=title,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.settings = settings
    app.state.service_name = service_name
    app.state.storage = FileStorage(settings.UPLOAD_DIR)

    register_error_handlers(app)

    # Added first so CORS wraps the gate and preflight responses carry CORS headers.
    app.middleware("http")(AccessControlGate(rules, public_endpoints, settings))
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.APP_ENV == "dev" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, tags=["health"])
    app.include_router(router)
    return app


def create_users_app(settings: Settings | None = None) -> FastAPI:
    """Users service: login, registration and admin account management."""
    settings = settings or get_settings()
    return _build_app(
        title="FileVault Users",
        service_name="users",
        router=users.router,
        rules=USERS_RULES,
        public_endpoints=settings.USERS_PUBLIC_ENDPOINTS,
        settings=settings,
    )


def create_files_app(settings: Settings | None = None) -> FastAPI:
    """Files service: per-user upload, listing, download and delete."""
    settings = settings or get_settings()
    return _build_app(
        title="FileVault Files",
        service_name="files",
        router=files.router,
        rules=FILES_RULES,
        public_endpoints=settings.FILES_PUBLIC_ENDPOINTS,
        settings=settings,
    )


configure_logging(get_settings())

users_app = create_users_app()
files_app = create_files_app()
