from pathlib import Path

from docstron.config import DEFAULT_SCRIPT, Settings


def test_defaults(monkeypatch):
    for name in ("DATA_DIR", "MAX_UPLOAD_MB", "RETENTION_SEC", "CORS_ORIGINS", "CONVERTER_SCRIPT"):
        monkeypatch.delenv(name, raising=False)
    s = Settings.from_env()
    assert s.max_upload_bytes == 10 * 1024 * 1024
    assert s.retention_sec == 300
    assert s.cors_origins == ("*",)
    assert s.converter_script == DEFAULT_SCRIPT
    assert DEFAULT_SCRIPT.exists()


def test_from_env(monkeypatch, tmp_path):
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("MAX_UPLOAD_MB", "3")
    monkeypatch.setenv("PUBLIC_BASE_URL", "https://docs.example.com/")
    monkeypatch.setenv("MAX_CONCURRENT_CONVERSIONS", "2")
    monkeypatch.setenv("RETENTION_SEC", "0")
    monkeypatch.setenv("CORS_ORIGINS", "http://localhost:8501, https://app.example.com")
    monkeypatch.setenv("LOG_LEVEL", "debug")
    s = Settings.from_env()
    assert s.uploads_dir == Path(tmp_path).resolve() / "uploads"
    assert s.max_upload_bytes == 3 * 1024 * 1024
    assert s.public_base_url == "https://docs.example.com"
    assert s.max_concurrent_conversions == 2
    assert s.retention_sec == 0
    assert s.cors_origins == ("http://localhost:8501", "https://app.example.com")
    assert s.log_level == "DEBUG"
