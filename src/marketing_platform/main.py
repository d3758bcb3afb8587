"""
FastAPI application entry point.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import asyncio
import hashlib

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sqlalchemy import text

from marketing_platform import __version__
from marketing_platform.config import get_settings
from marketing_platform.jobs.handlers import build_job_handlers
from marketing_platform.jobs.invoker import build_workflow_invoker
from marketing_platform.jobs.queue import InProcessJobQueue
from marketing_platform.phone_numbers.router import router as phone_numbers_router
from marketing_platform.shared.database import get_database_manager
from marketing_platform.shared.exceptions import (
    JobQueueFullError,
    NotFoundError,
    ValidationError,
)
from marketing_platform.shared.logging import get_logger, setup_logging
from marketing_platform.suppression.router import router as suppression_router
from marketing_platform.webhooks.router import router as webhooks_router
from marketing_platform.workflows.router import router as events_router
from marketing_platform.workflows.triggers import EventTriggerService

logger = get_logger(__name__)


def _advisory_lock_id(key: str) -> int:
    """Derive a stable signed bigint lock id from an arbitrary string key."""
    digest = hashlib.blake2b(key.encode("utf-8"), digest_size=8).digest()
    # 63-bit positive space fits a signed bigint
    return int.from_bytes(digest, "big", signed=False) & 0x7FFF_FFFF_FFFF_FFFF


async def _inactivity_supervisor(app: FastAPI) -> None:
    """Run the inactivity sweep only on the process holding the DB leader lock.

    Safe under ``uvicorn --workers N`` and multiple replicas: standbys poll the
    lock and take over when the leader's connection goes away.
    """
    settings = get_settings()
    db = get_database_manager()

    lock_id = _advisory_lock_id(settings.inactivity_lock_key)
    retry_sleep = 5

    logger.info(
        "Inactivity supervisor starting",
        extra={
            "interval_seconds": settings.inactivity_sweep_interval_seconds,
            "lock_id": lock_id,
        },
    )

    while True:
        try:
            # Dedicated connection holding the advisory lock
            async with db.engine.connect() as conn:
                res = await conn.execute(
                    text("SELECT pg_try_advisory_lock(:lock_id)"),
                    {"lock_id": lock_id},
                )
                acquired = bool(res.scalar())

                if not acquired:
                    logger.info(
                        "Inactivity leader lock busy; standby",
                        extra={"lock_id": lock_id, "sleep_seconds": retry_sleep},
                    )
                    await asyncio.sleep(retry_sleep)
                    continue

                logger.info("Inactivity leader lock acquired", extra={"lock_id": lock_id})

                while True:
                    try:
                        async with db.session() as session:
                            service = EventTriggerService(
                                session=session,
                                job_queue=app.state.job_queue,
                                settings=settings,
                            )
                            await service.check_inactivity_triggers()
                    except asyncio.CancelledError:
                        raise
                    except Exception:
                        logger.exception("Inactivity sweep failed")

                    await asyncio.sleep(settings.inactivity_sweep_interval_seconds)

        except asyncio.CancelledError:
            logger.info("Inactivity supervisor cancelled; stopping")
            raise
        except Exception:
            logger.exception(
                "Inactivity supervisor error; retrying",
                extra={"sleep_seconds": retry_sleep},
            )
            await asyncio.sleep(retry_sleep)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    setup_logging()
    settings = get_settings()
    db = get_database_manager()

    logger.info("Application starting", extra={"env": settings.app_env})

    invoker = build_workflow_invoker(settings)
    job_queue = InProcessJobQueue(
        maxsize=settings.job_queue_maxsize,
        workers=settings.job_workers,
    )
    for name, handler in build_job_handlers(job_queue, invoker, db).items():
        job_queue.register(name, handler)
    await job_queue.start()
    app.state.job_queue = job_queue

    sweep_task: asyncio.Task[None] | None = None
    if settings.inactivity_sweep_enabled:
        sweep_task = asyncio.create_task(_inactivity_supervisor(app))
        app.state.sweep_task = sweep_task
        logger.info("Inactivity sweep enabled; background task created")

    yield

    logger.info("Shutting down application")

    if sweep_task is not None:
        sweep_task.cancel()
        try:
            await sweep_task
        except asyncio.CancelledError:
            pass
        logger.info("Inactivity sweep task stopped")

    await job_queue.stop()
    close_invoker = getattr(invoker, "close", None)
    if close_invoker is not None:
        await close_invoker()

    await db.close()
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Marketing Platform API",
        description="Multi-tenant event and workflow triggering",
        version=__version__,
        lifespan=lifespan,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
    )

    @app.exception_handler(NotFoundError)
    async def _not_found(_: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ValidationError)
    async def _validation(_: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(status_code=400, content={"detail": str(exc)})

    @app.exception_handler(JobQueueFullError)
    async def _queue_full(_: Request, exc: JobQueueFullError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": {"code": exc.code, "message": exc.message}},
        )

    # Request validation (FastAPI/Pydantic) -> consistent 422 payload
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request,
        exc: RequestValidationError,
    ) -> JSONResponse:
        errors = []
        for error in exc.errors():
            field = ".".join(str(loc) for loc in error["loc"])
            errors.append(
                {
                    "field": field,
                    "message": error["msg"],
                    "type": error["type"],
                }
            )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": {
                    "code": "VALIDATION_ERROR",
                    "message": "Request validation failed",
                    "errors": errors,
                }
            },
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(webhooks_router)
    app.include_router(events_router)
    app.include_router(suppression_router)
    app.include_router(phone_numbers_router)

    @app.get("/health")
    async def health_check() -> dict[str, str]:
        return {"status": "healthy"}

    return app


app = create_app()
