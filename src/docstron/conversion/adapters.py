import asyncio
import contextlib
import logging
import os
import shutil
import signal
import time
import uuid
from pathlib import Path

from ..errors import ConversionError
from .interfaces import ArtifactStore, ConversionJob, ConverterGateway

logger = logging.getLogger(__name__)

# Unregistered files younger than this are never treated as leftovers.
MIN_STRAY_AGE_SEC = 60


def owner_of(path: Path) -> str:
    """Upload id a file or work directory belongs to: the name up to the first dot."""
    return path.name.split(".", 1)[0]


class LocalArtifactStore(ArtifactStore):
    """Uploads and converted artifacts living in one flat directory.

    Every upload gets a uuid4 name, so concurrent requests never share a path.
    Converted outputs are kept for ``retention_sec`` and removed by ``sweep``.
    """

    def __init__(self, uploads_dir: str | Path, *, retention_sec: int) -> None:
        self._base = Path(uploads_dir).resolve()
        self._retention = retention_sec
        self._stray_age = max(retention_sec, MIN_STRAY_AGE_SEC)
        self._expiry: dict[Path, float] = {}
        self._active: set[str] = set()

    @property
    def directory(self) -> Path:
        return self._base

    def ensure(self) -> None:
        self._base.mkdir(parents=True, exist_ok=True)

    def new_upload_path(self, suffix: str) -> Path:
        name = uuid.uuid4().hex
        self._active.add(name)
        return self._base / f"{name}{suffix}"

    async def discard(self, path: Path) -> None:
        path = Path(path).resolve()
        self._expiry.pop(path, None)
        self._active.discard(owner_of(path))
        await asyncio.to_thread(self._remove, path)

    def retain(self, path: Path) -> None:
        self._expiry[Path(path).resolve()] = time.time() + self._retention

    def expires_at(self, path: Path) -> float | None:
        return self._expiry.get(Path(path).resolve())

    async def sweep(self) -> int:
        now = time.time()
        expired = [p for p, deadline in self._expiry.items() if deadline <= now]
        for p in expired:
            await self.discard(p)
        strays = await asyncio.to_thread(self._find_strays, now)
        for p in strays:
            await self.discard(p)
        removed = len(expired) + len(strays)
        if removed:
            logger.info("Swept %d expired artifact(s) from %s", removed, self._base)
        return removed

    def _find_strays(self, now: float) -> list[Path]:
        if not self._base.is_dir():
            return []
        strays = []
        for p in self._base.iterdir():
            if owner_of(p) in self._active or p in self._expiry:
                continue
            try:
                age = now - p.stat().st_mtime
            except FileNotFoundError:
                continue
            if age > self._stray_age:
                strays.append(p)
        return strays

    @staticmethod
    def _remove(path: Path) -> None:
        try:
            if path.is_dir():
                shutil.rmtree(path)
            else:
                path.unlink(missing_ok=True)
            logger.debug("Removed %s", path)
        except OSError as e:
            logger.warning("Could not remove %s: %s", path, e)


class SubprocessConverter(ConverterGateway):
    """Runs ``<python> <script> <input> <output>`` as a child process."""

    def __init__(self, python: str, script: str | Path, *, timeout_sec: int = 0) -> None:
        self._python = python
        self._script = Path(script)
        self._timeout = timeout_sec

    def command(self, input_path: Path, output_path: Path) -> list[str]:
        return [self._python, str(self._script), str(input_path), str(output_path)]

    async def run(self, input_path: Path, output_path: Path) -> ConversionJob:
        cmd = self.command(input_path, output_path)
        logger.info("Running converter: %s", " ".join(cmd))
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                # Own process group, so a timeout also reaches LibreOffice.
                start_new_session=True,
            )
        except OSError as e:
            raise ConversionError(f"Failed to start converter: {e}") from e

        try:
            if self._timeout > 0:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self._timeout)
            else:
                stdout, stderr = await proc.communicate()
        except asyncio.TimeoutError:
            self._kill(proc)
            await proc.wait()
            raise ConversionError(f"Converter timed out after {self._timeout}s")

        out_text = stdout.decode("utf-8", errors="replace").strip()
        if out_text:
            logger.debug("Converter output: %s", out_text)
        return ConversionJob(
            input_path=input_path,
            output_path=output_path,
            returncode=proc.returncode,
            stderr=stderr.decode("utf-8", errors="replace").strip(),
        )

    @staticmethod
    def _kill(proc: asyncio.subprocess.Process) -> None:
        # The child may exit right at the deadline.
        with contextlib.suppress(ProcessLookupError):
            if hasattr(os, "killpg"):
                os.killpg(proc.pid, signal.SIGKILL)
            else:
                proc.kill()
