import logging
import os
from contextlib import asynccontextmanager

from fastapi import BackgroundTasks, FastAPI, File, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles

from docstron import __version__
from docstron.config import Settings
from docstron.conversion import ConversionService, LocalArtifactStore, SubprocessConverter
from docstron.conversion.service import NO_FILE_MESSAGE
from docstron.errors import ConversionError, DocstronError, ValidationError

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

logger = logging.getLogger(__name__)


def build_service(settings: Settings) -> ConversionService:
    store = LocalArtifactStore(settings.uploads_dir, retention_sec=settings.retention_sec)
    converter = SubprocessConverter(
        settings.converter_python,
        settings.converter_script,
        timeout_sec=settings.conversion_timeout_sec,
    )
    return ConversionService(
        store,
        converter,
        max_upload_bytes=settings.max_upload_bytes,
        max_concurrent=settings.max_concurrent_conversions,
        max_pending=settings.max_pending_conversions,
        retention_sec=settings.retention_sec,
        sweep_interval_sec=settings.sweep_interval_sec,
        public_base_url=settings.public_base_url,
    )


def _error_body(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the HTTP front-end around a freshly configured ConversionService."""
    settings = settings or Settings.from_env()
    logging.basicConfig(level=settings.log_level, format=LOG_FORMAT)
    service = build_service(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.start()
        logger.info(
            "Docstron started: uploads=%s retention=%ss max_concurrent=%d",
            settings.uploads_dir,
            settings.retention_sec,
            settings.max_concurrent_conversions,
        )
        yield
        await service.stop()
        logger.info("Docstron stopped")

    app = FastAPI(
        title="Docstron",
        version=__version__,
        description="Converts uploaded PDF documents to DOCX and DOCX documents to PDF.",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(DocstronError)
    async def _domain_error(request: Request, exc: DocstronError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        else:
            logger.info("%s %s rejected: %s", request.method, request.url.path, exc)
        return _error_body(exc.status_code, exc.public_message)

    @app.exception_handler(RequestValidationError)
    async def _request_error(request: Request, exc: RequestValidationError) -> JSONResponse:
        logger.info("%s %s malformed request: %s", request.method, request.url.path, exc.errors())
        return _error_body(ValidationError.status_code, NO_FILE_MESSAGE)

    @app.exception_handler(Exception)
    async def _unexpected_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("%s %s crashed", request.method, request.url.path)
        return _error_body(500, ConversionError.public_message)

    @app.get("/", response_class=PlainTextResponse)
    def home() -> str:
        return "Docstron backend is live!"

    @app.get("/health")
    def health() -> dict[str, object]:
        """Basic health check endpoint."""
        return {"status": "ok", "active_conversions": service.inflight}

    @app.post("/api/convert")
    async def convert(
        request: Request,
        background_tasks: BackgroundTasks,
        file: UploadFile | None = File(None),
    ) -> dict[str, str]:
        """Convert one uploaded document and return where to download the result.

        Accepts multipart/form-data with a single part named "file". The
        uploaded input is removed before this returns; the converted output
        stays available under /uploads/ until its retention expires, or until
        the response has been sent when retention is disabled.
        """
        if file is None:
            raise ValidationError(NO_FILE_MESSAGE)

        result = await service.process(
            file.filename,
            file.content_type,
            file.read,
            base_url=str(request.base_url),
        )
        if service.retention_sec == 0:
            background_tasks.add_task(service.release, result)
        return {"downloadUrl": result.download_url}

    # The directory is created on startup by the artifact store.
    app.mount(
        "/uploads",
        StaticFiles(directory=settings.uploads_dir, check_dir=False),
        name="uploads",
    )
    return app


app = create_app()


def run() -> None:
    """Run a development ASGI server using uvicorn.

    Exposes the app at host:port (default 0.0.0.0:8080). Set PORT env var to override.
    """
    import uvicorn

    host = os.getenv("HOST", "0.0.0.0")
    port = int(os.getenv("PORT", "8080"))
    # Enable reload in dev unless explicitly disabled
    reload = os.getenv("RELOAD", "true").lower() in {"1", "true", "yes", "on"}

    uvicorn.run("docstron.webapi:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    run()
