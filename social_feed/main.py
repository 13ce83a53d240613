"""
Social Feed API — entry point.

Startup sequence:
  1. Configure OTel tracing (→ Jaeger via OTLP)
  2. Open the DB connection pool (TiDB) unless one was injected
  3. Create tables if not present
  4. Expose Prometheus /metrics endpoint

Shutdown disposes the connection pool the lifespan opened.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app

from social_feed.config import settings
from social_feed.database import Database
from social_feed.errors import SocialFeedError, StoreFailure
from social_feed.routers import comments, feed, likes, posts, users
from social_feed.telemetry import instrument_app, setup_tracing

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
)
logger = logging.getLogger(__name__)

# Set up tracing before the app is created so all imports are instrumented
setup_tracing()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Open the store handle at startup and close it at shutdown."""
    logger.info("Starting Social Feed API (env=%s)", settings.environment)

    owns_db = getattr(app.state, "db", None) is None
    if owns_db:
        app.state.db = Database.from_settings(settings)
    if settings.create_tables_on_startup:
        await app.state.db.create_all()

    logger.info("Database connected. API ready.")
    yield

    logger.info("Shutting down...")
    if owns_db:
        await app.state.db.dispose()
        app.state.db = None


async def handle_social_feed_error(request: Request, exc: SocialFeedError) -> JSONResponse:
    if isinstance(exc, StoreFailure):
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.__cause__)
    else:
        logger.info("%s %s rejected: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.code, "detail": exc.message},
    )


def create_app(database: Optional[Database] = None) -> FastAPI:
    app = FastAPI(
        title="Social Feed API",
        description=(
            "Posts, likes, comments and follows, with a follow-graph feed "
            "and tiered free-text search."
        ),
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.db = database

    # ── Routers ────────────────────────────────────────────────────────────
    app.include_router(users.router, prefix="/users", tags=["Users"])
    app.include_router(posts.router, prefix="/posts", tags=["Posts"])
    app.include_router(feed.router, prefix="/feed", tags=["Feed"])
    app.include_router(likes.router, prefix="/likes", tags=["Likes"])
    app.include_router(comments.router, prefix="/comments", tags=["Comments"])

    app.add_exception_handler(SocialFeedError, handle_social_feed_error)

    # ── Prometheus metrics endpoint ────────────────────────────────────────
    # Scraped by Prometheus
    app.mount("/metrics", make_asgi_app())

    # ── OTel FastAPI instrumentation ──────────────────────────────────────
    instrument_app(app)

    @app.get("/health", tags=["Health"])
    async def health():
        return {"status": "ok", "service": settings.service_name}

    return app


app = create_app()
