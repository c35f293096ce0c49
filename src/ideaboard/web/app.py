"""FastAPI app factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from ..board.errors import AuthorizationError, ConflictError, TransportError, ValidationError
from .config import WebConfig

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """App lifespan: open the database for the app's lifetime."""
    config: WebConfig = app.state.config

    from .db.database import close_db, init_db

    await init_db(config.db_path)
    logger.info("Database ready at %s", config.db_path)

    yield

    await close_db()


def create_app(config: WebConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    config = config or WebConfig.load()

    from .auth import init_auth

    init_auth(config)

    app = FastAPI(
        title="ideaboard",
        description="Idea and task board with ordered, filterable columns",
        version="0.1.0",
        lifespan=lifespan,
        debug=config.debug,
    )
    app.state.config = config

    # CORS
    origins = config.cors_origins or [
        "http://localhost",
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Register routers
    from .cards.router import router as cards_router
    from .events.router import router as events_router

    app.include_router(cards_router)
    app.include_router(events_router)

    # Error handlers
    @app.exception_handler(ValidationError)
    async def validation_error_handler(request: Request, exc: ValidationError):
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(AuthorizationError)
    async def authorization_error_handler(request: Request, exc: AuthorizationError):
        return JSONResponse(
            status_code=403, content={"detail": str(exc), "card_ids": exc.card_ids}
        )

    @app.exception_handler(ConflictError)
    async def conflict_error_handler(request: Request, exc: ConflictError):
        return JSONResponse(
            status_code=409, content={"detail": str(exc), "card_ids": exc.card_ids}
        )

    @app.exception_handler(TransportError)
    async def transport_error_handler(request: Request, exc: TransportError):
        return JSONResponse(status_code=503, content={"detail": exc.message})

    @app.get("/api/health")
    async def health():
        return {"status": "ok"}

    return app
