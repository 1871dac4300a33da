"""
FastAPI application entrypoint.
"""

import logging
from contextlib import asynccontextmanager

import aioboto3
from fastapi import FastAPI

from apps.api.auth.service import IdentityProxy
from apps.api.config import Settings, get_settings
from apps.api.db import build_engine, resolve_database_url
from apps.api.middleware import CORSHeadersMiddleware, ErrorBoundaryMiddleware
from apps.api.registry.store import ModelStore, build_model_store
from apps.api.routers import auth, experiments, health, models, options
from apps.api.tracking.client import TrackingClient
from packages.shared.exceptions import register_exception_handlers
from packages.shared.storage import FileStorageBackend, get_storage_backend

logger = logging.getLogger(__name__)


def configure_logging(settings: Settings) -> None:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(
    settings: Settings | None = None,
    *,
    store: ModelStore | None = None,
    storage: FileStorageBackend | None = None,
    identity: IdentityProxy | None = None,
    tracking: TrackingClient | None = None,
    session: aioboto3.Session | None = None,
) -> FastAPI:
    """
    Build the application.

    Backends not passed in are built from ``settings``. The model store
    needs the database URL, which may live in Secrets Manager, so it is
    built at startup rather than here.
    """
    settings = settings or get_settings()
    configure_logging(settings)
    session = session or aioboto3.Session()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        engine = None
        if app.state.store is None:
            if settings.model_store == "sql":
                engine = build_engine(await resolve_database_url(settings, session))
            app.state.store = build_model_store(settings, engine)
        logger.info(
            f"{settings.app_name} {settings.app_version} started "
            f"({settings.environment}, {app.state.store.backend_name} store, "
            f"{app.state.storage.backend_name} storage)"
        )
        yield
        if app.state.tracking is not None:
            await app.state.tracking.close()
        if engine is not None:
            engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.store = store
    app.state.storage = storage or get_storage_backend(settings, session)
    app.state.identity = identity or IdentityProxy(
        client_id=settings.cognito_client_id,
        region=settings.aws_region,
        session=session,
    )
    app.state.tracking = None
    if settings.enable_mlflow_integration:
        app.state.tracking = tracking or TrackingClient(
            settings.mlflow_tracking_uri, timeout=settings.mlflow_timeout
        )

    register_exception_handlers(app)
    # Last added runs first: CORS wraps the error boundary so 500s get headers too
    app.add_middleware(ErrorBoundaryMiddleware)
    app.add_middleware(CORSHeadersMiddleware, allow_origin=settings.cors_origin)

    # Include routers
    app.include_router(health.router)
    app.include_router(options.router)
    app.include_router(auth.router)
    app.include_router(models.router)
    if settings.enable_mlflow_integration:
        app.include_router(experiments.router)

    return app


app = create_app()
