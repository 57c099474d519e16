"""
asset_tracker.api.app

FastAPI app factory for the asset tracker backend.

Responsibilities:
- Build the FastAPI application and register routers/middleware/error handlers.
- Initialize and dispose shared infrastructure (DB engine, stores, Firebase handle).
- Wire the auth core once per process and stash it on app.state.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from asset_tracker import __version__
from asset_tracker.api.errors import install_error_handlers
from asset_tracker.api.routers.dev_auth import router as dev_auth_router
from asset_tracker.api.routers.health import router as health_router
from asset_tracker.api.routers.users import router as users_router
from asset_tracker.auth.audit import AuditSink
from asset_tracker.auth.firebase import FirebaseIdentityClient, RemoteIdentityClient
from asset_tracker.auth.pipeline import Authenticator
from asset_tracker.auth.protocols import AuditStore, PrincipalStore
from asset_tracker.db.init_db import init_db
from asset_tracker.db.session import create_engine, create_sessionmaker
from asset_tracker.db.stores import SqlAuditStore, SqlPrincipalStore
from asset_tracker.observability.logging import configure_logging, get_logger
from asset_tracker.observability.middleware import RequestContextMiddleware
from asset_tracker.settings import Settings

log = get_logger(__name__)


def create_app(
    *,
    settings: Settings,
    remote_client: RemoteIdentityClient | None = None,
    principal_store: PrincipalStore | None = None,
    audit_store: AuditStore | None = None,
) -> FastAPI:
    """
    Build the app. The optional collaborators replace the SQL stores and the Firebase
    client (tests and alternative deployments); by default they are created on startup.
    """

    configure_logging(service_name=settings.service_name, level=settings.log_level)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await _startup(app)
        try:
            yield
        finally:
            await _shutdown(app)

    async def _startup(app: FastAPI) -> None:
        log.info("startup", env=settings.env, demo_mode=settings.demo_mode)
        engine = create_engine(settings)
        app.state.engine = engine
        app.state.sessionmaker = create_sessionmaker(engine)
        if settings.env in ("dev", "test"):
            await init_db(engine)

        principals = principal_store or SqlPrincipalStore(app.state.sessionmaker)
        audits = audit_store or SqlAuditStore(app.state.sessionmaker)

        remote = remote_client
        if remote is None and settings.firebase_configured:
            # SDK initialization is deferred to the first remote-identity token.
            remote = FirebaseIdentityClient(settings)
        if remote is None:
            log.warning("auth.scheme_unavailable", scheme="remote-identity")
        if not settings.local_jwt_available:
            log.warning("auth.scheme_unavailable", scheme="local-jwt")

        app.state.principal_store = principals
        app.state.authenticator = Authenticator(
            settings=settings,
            principals=principals,
            remote_client=remote,
            audit=AuditSink(audits),
        )

    async def _shutdown(app: FastAPI) -> None:
        authenticator = getattr(app.state, "authenticator", None)
        if authenticator is not None:
            # Let in-flight audit writes land before the pool goes away.
            await authenticator.audit.drain()
        engine = getattr(app.state, "engine", None)
        if engine is not None:
            await engine.dispose()
        log.info("shutdown")

    app = FastAPI(
        title="Asset Tracker API",
        version=__version__,
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.settings = settings

    app.add_middleware(RequestContextMiddleware)
    install_error_handlers(app, settings=settings)
    app.include_router(health_router, tags=["health"])
    app.include_router(dev_auth_router)
    app.include_router(users_router)
    return app


# --- Module Notes -----------------------------------------------------------
# App composition stays here; auth decisions live in `asset_tracker.auth`.
