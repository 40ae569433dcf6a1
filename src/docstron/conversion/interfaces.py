from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


class ConverterGateway(Protocol):
    async def run(self, input_path: Path, output_path: Path) -> "ConversionJob":
        """Run the external conversion tool and wait for it to exit.

        Implementations raise ConversionError when the tool cannot be started
        or does not finish in time; a non-zero exit is reported through the
        returned job so the caller decides what counts as success.
        """


class ArtifactStore(Protocol):
    def ensure(self) -> None:
        ...

    def new_upload_path(self, suffix: str) -> Path:
        ...

    async def discard(self, path: Path) -> None:
        ...

    def retain(self, path: Path) -> None:
        ...

    async def sweep(self) -> int:
        ...


@dataclass(frozen=True)
class UploadedFile:
    filename: str
    size_bytes: int
    content_type: str
    path: Path


@dataclass(frozen=True)
class ConversionJob:
    input_path: Path
    output_path: Path
    returncode: int | None
    stderr: str = ""

    @property
    def succeeded(self) -> bool:
        # Exit status alone is not trusted; the artifact has to be on disk too.
        return self.returncode == 0 and self.output_path.exists()


@dataclass(frozen=True)
class ConversionResult:
    output_path: Path
    download_url: str
