"""FastAPI application entry point."""
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from api.routers import analytics, auth, bookmarks, health, likes, notifications, posts
from core.config import get_settings, setup_logging
from services.exceptions import AppError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:  # noqa: ARG001
    """Configure logging on startup."""
    setup_logging()
    logger.info("Inkwell API starting")
    yield


settings = get_settings()

app = FastAPI(
    title="Inkwell API",
    description="A publishing platform: readers browse, like and bookmark posts; "
    "publishers manage posts and view analytics.",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:  # noqa: ARG001
    """Render service errors as {"detail", "code"} with the error's status."""
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
        headers=exc.headers,
    )


app.include_router(health.router)
app.include_router(auth.router)
app.include_router(posts.router)
app.include_router(likes.router)
app.include_router(bookmarks.router)
app.include_router(notifications.router)
app.include_router(analytics.router)
