import asyncio
import contextlib
import logging
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, Iterator

from ..errors import CapacityError, ConversionError, ValidationError
from ..formats import MIME_TYPES, direction_for
from .interfaces import ArtifactStore, ConversionResult, ConverterGateway, UploadedFile

logger = logging.getLogger(__name__)

NO_FILE_MESSAGE = "No file uploaded."
UPLOAD_CHUNK = 1024 * 1024

# Content types some clients send regardless of the actual document type.
GENERIC_MIME = {"", "application/octet-stream", "binary/octet-stream"}

ChunkReader = Callable[[int], Awaitable[bytes]]


class ConversionService:
    """Drives one upload through validation, conversion and cleanup.

    The service is framework-agnostic: the HTTP layer hands it a filename, a
    declared content type and an async chunk reader, and gets back a
    ConversionResult or one of the errors in ``docstron.errors``.
    """

    def __init__(
        self,
        store: ArtifactStore,
        converter: ConverterGateway,
        *,
        max_upload_bytes: int,
        max_concurrent: int = 4,
        max_pending: int = 16,
        retention_sec: int = 300,
        sweep_interval_sec: int = 30,
        public_base_url: str = "",
    ) -> None:
        self._store = store
        self._converter = converter
        self._max_upload_bytes = max_upload_bytes
        self._semaphore = asyncio.Semaphore(max_concurrent)
        self._capacity = max_concurrent + max_pending
        self._inflight = 0
        self._retention = retention_sec
        self._sweep_interval = sweep_interval_sec
        self._public_base_url = public_base_url.rstrip("/")
        self._sweeper: asyncio.Task | None = None

    @property
    def inflight(self) -> int:
        return self._inflight

    @property
    def retention_sec(self) -> int:
        return self._retention

    async def start(self) -> None:
        self._store.ensure()
        if self._sweep_interval > 0:
            self._sweeper = asyncio.create_task(self._sweeper_loop())

    async def stop(self) -> None:
        if self._sweeper is not None:
            self._sweeper.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._sweeper
            self._sweeper = None

    async def receive_upload(
        self, filename: str | None, content_type: str | None, reader: ChunkReader
    ) -> UploadedFile:
        """Validate the declared file and stream it to a fresh upload path."""
        if not filename:
            raise ValidationError(NO_FILE_MESSAGE)
        direction = direction_for(filename)
        expected_mime = MIME_TYPES[direction.source_suffix]
        ct = (content_type or "").split(";")[0].strip().lower()
        if ct not in GENERIC_MIME and ct != expected_mime:
            raise ValidationError("Please upload a PDF or DOCX file.")

        path = self._store.new_upload_path(direction.source_suffix)
        size_bytes = 0
        limit_mb = self._max_upload_bytes // (1024 * 1024)
        try:
            with path.open("wb") as f_out:
                while True:
                    chunk = await reader(UPLOAD_CHUNK)
                    if not chunk:
                        break
                    size_bytes += len(chunk)
                    if size_bytes > self._max_upload_bytes:
                        raise ValidationError(f"File size exceeds the {limit_mb}MB limit.")
                    f_out.write(chunk)
        except Exception:
            await self._store.discard(path)
            raise

        return UploadedFile(
            filename=filename,
            size_bytes=size_bytes,
            content_type=ct if ct not in GENERIC_MIME else expected_mime,
            path=path,
        )

    @contextlib.asynccontextmanager
    async def scoped_upload(
        self, filename: str | None, content_type: str | None, reader: ChunkReader
    ) -> AsyncIterator[UploadedFile]:
        upload = await self.receive_upload(filename, content_type, reader)
        try:
            yield upload
        finally:
            await self._store.discard(upload.path)

    async def convert(self, input_path: Path) -> Path:
        """Convert `input_path` next to itself and return the output path."""
        input_path = Path(input_path)
        direction = direction_for(input_path.name)
        output_path = input_path.with_suffix(direction.target_suffix)

        try:
            async with self._semaphore:
                job = await self._converter.run(input_path, output_path)
        except ConversionError:
            await self._store.discard(output_path)
            raise

        if job.returncode != 0:
            await self._store.discard(output_path)
            detail = job.stderr or f"exit status {job.returncode}"
            raise ConversionError(f"Conversion failed: {detail}")
        if not job.succeeded:
            raise ConversionError("Converted file not found after execution.")
        return output_path

    async def process(
        self,
        filename: str | None,
        content_type: str | None,
        reader: ChunkReader,
        *,
        base_url: str,
    ) -> ConversionResult:
        with self._admission():
            async with self.scoped_upload(filename, content_type, reader) as upload:
                logger.info(
                    "Converting %s (%d bytes, %s)", upload.filename, upload.size_bytes, upload.content_type
                )
                output_path = await self.convert(upload.path)
                if self._retention > 0:
                    self._store.retain(output_path)
        return ConversionResult(output_path=output_path, download_url=self.download_url(output_path, base_url))

    async def release(self, result: ConversionResult) -> None:
        await self._store.discard(result.output_path)

    def download_url(self, output_path: Path, base_url: str) -> str:
        base = self._public_base_url or base_url.rstrip("/")
        return f"{base}/uploads/{Path(output_path).name}"

    @contextlib.contextmanager
    def _admission(self) -> Iterator[None]:
        if self._inflight >= self._capacity:
            raise CapacityError(f"{self._inflight} conversions already in flight")
        self._inflight += 1
        try:
            yield
        finally:
            self._inflight -= 1

    async def _sweeper_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                await self._store.sweep()
            except Exception:
                logger.exception("Artifact sweep failed")
