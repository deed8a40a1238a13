"""Dashboard BAPP - contract sign-off progress API"""
import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from sqlalchemy.exc import DBAPIError, IntegrityError

from bapp import config as app_config
from bapp.database import init_db
from bapp.routers import (
    auth,
    dashboard,
    master_data,
    contracts,
    progress,
    periods,
    imports,
    notifications,
    reports,
)
from bapp.services.deadline_check import run_deadline_check
from bapp.services.error_translator import translate_error

logging.basicConfig(
    level=getattr(logging, app_config.settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)
_scheduler: AsyncIOScheduler | None = None


async def _daily_deadline_job():
    try:
        await run_deadline_check()
    except Exception:
        logger.exception("daily deadline check failed")


def _parse_check_time(value: str) -> tuple[int, int]:
    """HH:MM -> (hour, minute); malformed values fall back to 07:00."""
    try:
        parts = value.strip().split(":")
        return int(parts[0]), int(parts[1]) if len(parts) > 1 else 0
    except (ValueError, IndexError):
        return 7, 0


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    global _scheduler
    _scheduler = AsyncIOScheduler()
    hour, minute = _parse_check_time(app_config.settings.deadline_check_time)
    _scheduler.add_job(
        _daily_deadline_job,
        "cron",
        hour=hour,
        minute=minute,
        id="bapp_deadline_check",
        replace_existing=True,
    )
    _scheduler.start()
    yield
    if _scheduler:
        _scheduler.shutdown(wait=False)


app = FastAPI(
    title=app_config.settings.app_name,
    description="Progress tanda tangan & upload BAPP per kontrak",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=app_config.settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth.router)
app.include_router(dashboard.router)
app.include_router(master_data.router)
app.include_router(contracts.router)
app.include_router(progress.router)
app.include_router(periods.router)
app.include_router(imports.router)
app.include_router(notifications.router)
app.include_router(reports.router)


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    translated = translate_error(exc)
    logger.warning("integrity error on %s %s: %s", request.method, request.url.path, translated.original_message)
    return JSONResponse(
        status_code=409,
        content={"detail": translated.message, "code": translated.code, "original_message": translated.original_message},
    )


@app.exception_handler(DBAPIError)
async def database_error_handler(request: Request, exc: DBAPIError):
    translated = translate_error(exc)
    logger.error("database error on %s %s: %s", request.method, request.url.path, translated.original_message)
    return JSONResponse(
        status_code=500,
        content={"detail": translated.message, "code": translated.code, "original_message": translated.original_message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request, exc):
    if isinstance(exc, HTTPException):
        raise exc
    logger.exception("unhandled error on %s %s", request.method, request.url.path)
    translated = translate_error(exc)
    return JSONResponse(
        status_code=500,
        content={"detail": translated.message, "code": translated.code, "original_message": translated.original_message},
    )


@app.get("/")
def home():
    return {"message": f"{app_config.settings.app_name} berjalan"}
