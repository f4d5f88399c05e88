import logging
from contextlib import asynccontextmanager

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.config import settings
from app.db import async_session, engine
from app.objectives.errors import StorageError
from app.objectives.interactions import router as interactions_router
from app.objectives.notifier import DiscordNotifier
from app.objectives.reminders import HOUR_MS, ReminderScheduler
from app.objectives.router import router as objectives_router
from app.objectives.store import init_schema

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_schema(engine)

    client = httpx.AsyncClient(timeout=settings.notifier_timeout_seconds)
    scheduler: ReminderScheduler | None = None
    app.state.notifier = None
    if settings.bot_token:
        app.state.notifier = DiscordNotifier(client, settings.bot_token, settings.discord_api_base)
        if settings.reminders_enabled:
            scheduler = ReminderScheduler(
                async_session,
                app.state.notifier,
                interval=settings.reminder_interval_seconds,
                stale_after_ms=settings.reminder_stale_hours * HOUR_MS,
            )
            scheduler.start()
    else:
        logger.warning("BOT_TOKEN not set; reminder DMs disabled")

    yield

    if scheduler is not None:
        await scheduler.stop()
    await client.aclose()
    await engine.dispose()


app = FastAPI(title="Objective Tracker", version="0.1.0", lifespan=lifespan)
app.include_router(interactions_router)
app.include_router(objectives_router)


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError) -> JSONResponse:
    logger.error("storage failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=500, content={"detail": "Storage unavailable"})


@app.get("/")
async def root() -> dict:
    return {
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "interactions": "/interactions",
        "objectives": {
            "list": "/objectives/{user_id}",
            "create": "/objectives/{user_id}",
            "delete": "/objectives/{user_id}/{name}",
            "submit": "/objectives/{user_id}/{name}/submissions",
            "sweep": "/reminders/sweep",
        },
    }


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}
