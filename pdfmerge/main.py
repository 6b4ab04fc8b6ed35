from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager, suppress
from datetime import timedelta
from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from pdfmerge.api import routers
from pdfmerge.core.config import Settings, get_settings
from pdfmerge.core.errors import MergeServiceError
from pdfmerge.core.logging import configure_logging
from pdfmerge.services.pdf_service import PDFService
from pdfmerge.services.publisher import BasePublisher, DrivePublisher, LocalPublisher
from pdfmerge.services.sweeper import RetentionSweeper
from pdfmerge.storage.drive import DriveClient
from pdfmerge.storage.local import LocalStorage


def _build_publisher(
    settings: Settings,
    storage: LocalStorage,
    pdf_service: PDFService,
    drive_client: Optional[DriveClient],
) -> BasePublisher:
    if settings.uses_drive:
        return DrivePublisher(
            drive_client,
            settings.drive_parent_folder_id,
            pdf_service,
            render_previews=settings.render_previews,
        )
    return LocalPublisher(storage, pdf_service, render_previews=settings.render_previews)


def create_app(settings: Optional[Settings] = None, drive_client: Optional[DriveClient] = None) -> FastAPI:
    settings = settings or get_settings()
    settings.configure_paths()
    logger = configure_logging(settings)

    if settings.uses_drive:
        missing = settings.missing_drive_settings()
        if missing:
            raise RuntimeError(f"Drive storage is enabled but not configured: {', '.join(missing)}")
        # One client for the whole process, shared by the publisher and the sweeper.
        drive_client = drive_client or DriveClient.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        sweep_task = None
        if settings.uses_drive:
            sweeper = RetentionSweeper(
                drive_client,
                settings.drive_parent_folder_id,
                max_age=timedelta(minutes=settings.retention_minutes),
            )
            app.state.sweeper = sweeper
            sweep_task = asyncio.create_task(sweeper.run(timedelta(minutes=settings.sweep_interval_minutes)))
            logger.info("Retention sweeper scheduled every %s minutes", settings.sweep_interval_minutes)
        try:
            yield
        finally:
            if sweep_task is not None:
                sweep_task.cancel()
                with suppress(asyncio.CancelledError):
                    await sweep_task

    app = FastAPI(title=settings.app_name, version=settings.app_version, lifespan=lifespan)

    storage = LocalStorage(settings.merged_dir)
    pdf_service = PDFService()
    app.state.settings = settings
    app.state.storage = storage
    app.state.pdf_service = pdf_service
    app.state.publisher = _build_publisher(settings, storage, pdf_service, drive_client)

    # === CORS ===
    allow_credentials = "*" not in settings.allow_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )

    # === Error responses ===
    @app.exception_handler(MergeServiceError)
    async def merge_error_handler(request: Request, exc: MergeServiceError) -> JSONResponse:
        logger.warning("%s on %s: %s", exc.kind, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)}, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"message": "Invalid upload request.", "kind": "InvalidRequest"},
        )

    # === Routers ===
    for router in routers:
        app.include_router(router)

    # === Static downloads ===
    app.mount("/merged", StaticFiles(directory=str(settings.merged_dir)), name="merged")

    # === Basic endpoints ===
    @app.get("/")
    async def root() -> dict:
        return {"message": f"Welcome to {settings.app_name}"}

    @app.get("/health")
    async def health_check() -> dict:
        logger.debug("Health check invoked")
        return {"status": "ok", "storage": settings.storage_backend}

    return app

