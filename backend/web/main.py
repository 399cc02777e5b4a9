"EduManage API"
from __future__ import annotations

from contextlib import asynccontextmanager
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from backend.identity_access.identity import HeaderIdentityResolver, IdentityResolver
from backend.payments.gateway import PaymentGateway
from backend.storage.documents import DocumentStore

from .config import AppConfig, ensure_secure_config_on_startup, load_config
from .errors import install_error_handlers
from .routes.assignments import assignments_router
from .routes.classes import classes_router
from .routes.enrollments import enrollments_router
from .routes.feedback import feedback_router
from .routes.operations import operations_router
from .routes.payments import payments_router
from .routes.teacher_requests import teacher_requests_router
from .routes.users import users_router
from .wiring import build_services

logger = logging.getLogger("edumanage.web")


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via EDUMANAGE_ENABLE_DOTENV (default true
      outside pytest).
    """
    if "pytest" in sys.modules or os.getenv("PYTEST_CURRENT_TEST"):
        return False
    flag = (os.getenv("EDUMANAGE_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


def create_app(
    config: Optional[AppConfig] = None,
    *,
    store: Optional[DocumentStore] = None,
    gateway: Optional[PaymentGateway] = None,
    identity_resolver: Optional[IdentityResolver] = None,
) -> FastAPI:
    """Build the FastAPI application.

    The store is constructed here but only opened in the lifespan; a store
    that cannot be opened aborts startup. Tests pass an in-memory store and
    a fake gateway.
    """
    cfg = config or load_config()
    ensure_secure_config_on_startup(cfg)
    services = build_services(cfg, store=store, gateway=gateway)
    resolver = identity_resolver or HeaderIdentityResolver()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        services.store.open()
        logger.info("edumanage started env=%s store=%s", cfg.env, type(services.store).__name__)
        try:
            yield
        finally:
            services.store.close()
            logger.info("edumanage stopped")

    app = FastAPI(title="EduManage", description="Education platform API", version="0.1.0", lifespan=lifespan)
    app.state.config = cfg
    app.state.services = services

    @app.middleware("http")
    async def identity_middleware(request: Request, call_next):
        request.state.identity = resolver.resolve(request.headers)
        return await call_next(request)

    if cfg.cors_allow_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(cfg.cors_allow_origins),
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
            allow_headers=["content-type", "x-user-email", "x-user-role"],
        )

    install_error_handlers(app)
    app.include_router(operations_router)
    app.include_router(users_router)
    app.include_router(classes_router)
    app.include_router(enrollments_router)
    app.include_router(teacher_requests_router)
    app.include_router(assignments_router)
    app.include_router(feedback_router)
    app.include_router(payments_router)
    return app


if _should_load_dotenv():
    load_dotenv()

app = create_app()
