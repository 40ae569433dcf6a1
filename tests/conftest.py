import dataclasses
import io
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from docstron.config import Settings
from docstron.webapi import create_app

# Stands in for the real converter: copies input to output, or fails on demand.
FAKE_CONVERTER = """\
import shutil
import sys

src, dst = sys.argv[1], sys.argv[2]
with open(src, "rb") as f:
    data = f.read()
if b"MALFORMED" in data:
    print("cannot parse document", file=sys.stderr)
    sys.exit(1)
if b"NO-OUTPUT" in data:
    sys.exit(0)
shutil.copyfile(src, dst)
print("converted", src, "->", dst)
"""

PDF_BYTES = b"%PDF-1.4\n1 0 obj << /Type /Catalog >> endobj\n%%EOF\n"
DOCX_BYTES = b"PK\x03\x04 fake docx payload"
PDF_MIME = "application/pdf"
DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def reader_for(data: bytes):
    buf = io.BytesIO(data)

    async def read(n: int) -> bytes:
        return buf.read(n)

    return read


@pytest.fixture
def converter_script(tmp_path: Path) -> Path:
    script = tmp_path / "fake_converter.py"
    script.write_text(FAKE_CONVERTER, encoding="utf-8")
    return script


@pytest.fixture
def settings(tmp_path: Path, converter_script: Path) -> Settings:
    return Settings(
        data_dir=tmp_path / "data",
        converter_python=sys.executable,
        converter_script=converter_script,
        conversion_timeout_sec=30,
        retention_sec=300,
        sweep_interval_sec=0,
        log_level="DEBUG",
    )


@pytest.fixture
def make_client(settings: Settings):
    clients = []

    def _make(**overrides) -> TestClient:
        app = create_app(dataclasses.replace(settings, **overrides))
        client = TestClient(app)
        client.__enter__()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.__exit__(None, None, None)


@pytest.fixture
def client(make_client) -> TestClient:
    return make_client()


@pytest.fixture
def uploads_dir(settings: Settings) -> Path:
    return settings.uploads_dir
