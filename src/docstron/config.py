import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_SCRIPT = Path(__file__).resolve().parent / "tools" / "convert_document.py"


def _env_int(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


@dataclass(frozen=True)
class Settings:
    """Service configuration, resolved once from the environment."""

    data_dir: Path = Path("./data").resolve()
    max_upload_mb: int = 10
    public_base_url: str = ""
    converter_python: str = sys.executable
    converter_script: Path = DEFAULT_SCRIPT
    max_concurrent_conversions: int = 4
    max_pending_conversions: int = 16
    conversion_timeout_sec: int = 600
    retention_sec: int = 300
    sweep_interval_sec: int = 30
    cors_origins: tuple[str, ...] = field(default=("*",))
    log_level: str = "INFO"

    @property
    def uploads_dir(self) -> Path:
        return self.data_dir / "uploads"

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024

    @classmethod
    def from_env(cls) -> "Settings":
        origins = os.getenv("CORS_ORIGINS", "*")
        return cls(
            data_dir=Path(os.getenv("DATA_DIR", "./data")).resolve(),
            max_upload_mb=_env_int("MAX_UPLOAD_MB", 10),
            public_base_url=os.getenv("PUBLIC_BASE_URL", "").rstrip("/"),
            converter_python=os.getenv("CONVERTER_PYTHON", sys.executable),
            converter_script=Path(os.getenv("CONVERTER_SCRIPT", str(DEFAULT_SCRIPT))).resolve(),
            max_concurrent_conversions=_env_int("MAX_CONCURRENT_CONVERSIONS", 4),
            max_pending_conversions=_env_int("MAX_PENDING_CONVERSIONS", 16),
            conversion_timeout_sec=_env_int("CONVERSION_TIMEOUT_SEC", 600),
            retention_sec=_env_int("RETENTION_SEC", 300),
            sweep_interval_sec=_env_int("SWEEP_INTERVAL_SEC", 30),
            cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
