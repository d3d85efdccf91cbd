"""FastAPI application entry point."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from survival.config import settings
from survival.core.errors import (
    InvalidChoice,
    NotFound,
    PartialCleanupFailure,
    StoreUnavailable,
    StoryValidationError,
)
from survival.core.logging import get_logger, setup_logging
from survival.db.database import async_session_factory, engine, Base
from survival.db.redis import close_redis
from survival.stores.remote import close_remote_clients

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging(settings.LOG_LEVEL)
    # Startup: create tables (dev only; use Alembic in production)
    import survival.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    if settings.LOAD_STORIES_ON_STARTUP:
        from survival.services.story_loader import story_loader

        async with async_session_factory() as session:
            await story_loader.load_all(session)
            await session.commit()
    yield
    # Shutdown: close connections
    await engine.dispose()
    await close_redis()
    await close_remote_clients()


app = FastAPI(
    title="Edge of Survival API",
    description="Decision progression backend for branching survival stories",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # TODO: restrict to the web client's origin in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Error mapping ---

@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(InvalidChoice)
async def invalid_choice_handler(request: Request, exc: InvalidChoice):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(StoreUnavailable)
async def store_unavailable_handler(request: Request, exc: StoreUnavailable):
    return JSONResponse(
        status_code=503, content={"detail": str(exc), "retryable": True}
    )


@app.exception_handler(PartialCleanupFailure)
async def partial_cleanup_handler(request: Request, exc: PartialCleanupFailure):
    return JSONResponse(
        status_code=500,
        content={"detail": str(exc), "failed_ids": exc.failed_ids, "deleted": exc.deleted},
    )


@app.exception_handler(StoryValidationError)
async def story_validation_handler(request: Request, exc: StoryValidationError):
    logger.error("story data invalid: %s", exc)
    return JSONResponse(status_code=500, content={"detail": str(exc)})


# --- Routes ---
from survival.api.routes import progress, stories, leaderboard  # noqa: E402

app.include_router(progress.router, prefix="/api/progress", tags=["progress"])
app.include_router(stories.router, prefix="/api/stories", tags=["stories"])
app.include_router(leaderboard.router, prefix="/api/leaderboard", tags=["leaderboard"])


@app.get("/health")
async def health_check():
    return {"status": "ok"}
