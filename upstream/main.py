"""Application factory and top-level wiring for the UpStream API.

Configuration, logging, database setup, routers and error handling all meet
here. Importing the package itself stays side-effect free; the app is built by
:func:`create_app`.
"""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import models as _models  # noqa: F401  (registers tables with Base.metadata)
from .core.config import settings
from .core.errors import (
    UpStreamError,
    http_exception_handler,
    upstream_exception_handler,
    validation_exception_handler,
)
from .core.logging import configure_logging
from .db.migrate import run_migrations
from .db.session import Base, engine
from .middlewares import RequestIdMiddleware
from .routers import api_auth, api_milestones


def create_app(*, init_db: bool = True) -> FastAPI:
    configure_logging(settings.LOG_LEVEL, service=settings.APP_NAME)

    if init_db:
        # Fresh databases get the full schema; existing ones are upgraded in place.
        Base.metadata.create_all(bind=engine)
        if settings.DB_URL.startswith("sqlite"):
            run_migrations(engine)

    app = FastAPI(title=settings.APP_NAME)
    app.add_middleware(RequestIdMiddleware)
    if settings.ALLOWED_ORIGINS:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.ALLOWED_ORIGINS,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    app.include_router(api_auth.router)
    app.include_router(api_milestones.router)

    app.add_exception_handler(UpStreamError, upstream_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    @app.get("/health")
    async def health() -> dict[str, bool]:
        return {"ok": True}

    Instrumentator().instrument(app).expose(app, include_in_schema=False)
    return app


__all__ = ["create_app"]
