"""
Upload client for the conversion API.

Holds the state of one browser session: the selected candidate file, upload
progress, the resulting download URL and any user-facing error. The Streamlit
page renders this object; nothing here depends on Streamlit.
"""

import io
import logging
import os
from dataclasses import dataclass
from typing import Callable

import requests
from urllib3 import encode_multipart_formdata

from docstron.formats import MAX_FILE_SIZE, MIME_TYPES, derive_download_name, suffix_of

logger = logging.getLogger(__name__)

API_BASE = os.getenv("DOCSTRON_API_BASE", os.getenv("API_BASE", "http://localhost:8080")).rstrip("/")
UPLOAD_TIMEOUT_SEC = int(os.getenv("DOCSTRON_UPLOAD_TIMEOUT", "300"))

INVALID_TYPE_MESSAGE = "Please upload a PDF or DOCX file."
TOO_LARGE_MESSAGE = "File size exceeds the 10MB limit."
CONVERT_FAILED_MESSAGE = "Error converting file."


class ClientState:
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    CONVERTING = "converting"
    CONVERTED = "converted"
    ERROR = "error"


class TransportError(Exception):
    """Network failure or non-2xx answer while talking to the API."""


@dataclass(frozen=True)
class CandidateFile:
    name: str
    data: bytes
    content_type: str

    @property
    def size(self) -> int:
        return len(self.data)


class ProgressReader(io.BytesIO):
    """Request body that reports how many bytes the transport has pulled."""

    def __init__(self, payload: bytes, on_read: Callable[[int, int], None]) -> None:
        super().__init__(payload)
        self._total = len(payload)
        self._on_read = on_read

    def read(self, size: int | None = -1) -> bytes:
        chunk = super().read(size)
        if chunk:
            self._on_read(self.tell(), self._total)
        return chunk


class UploadClient:
    def __init__(self, api_base: str = API_BASE, *, timeout: int = UPLOAD_TIMEOUT_SEC) -> None:
        self.api_base = api_base.rstrip("/")
        self.timeout = timeout
        self.reset()

    def reset(self) -> None:
        self.state = ClientState.IDLE
        self.candidate: CandidateFile | None = None
        self.progress = 0
        self.download_url: str | None = None
        self.error: str | None = None

    @property
    def endpoint(self) -> str:
        return f"{self.api_base}/api/convert"

    @property
    def download_name(self) -> str:
        return derive_download_name(self.candidate.name if self.candidate else None)

    @property
    def can_submit(self) -> bool:
        return self.candidate is not None and self.state in (ClientState.FILE_SELECTED, ClientState.ERROR)

    def select(self, name: str, data: bytes, content_type: str | None = None) -> bool:
        """Accept a dropped or picked file as the new candidate.

        Returns False, with ``error`` set and the candidate cleared, when the
        file is not a .pdf/.docx or is larger than 10MB.
        """
        suffix = suffix_of(name)
        if not suffix:
            self._reject(INVALID_TYPE_MESSAGE)
            return False
        if len(data) > MAX_FILE_SIZE:
            self._reject(TOO_LARGE_MESSAGE)
            return False

        self.candidate = CandidateFile(name=name, data=data, content_type=content_type or MIME_TYPES[suffix])
        self.state = ClientState.FILE_SELECTED
        self.progress = 0
        self.download_url = None
        self.error = None
        return True

    def submit(self, on_progress: Callable[[int], None] | None = None) -> str | None:
        """Upload the candidate and return the download URL, or None on failure."""
        if not self.can_submit:
            return None

        self.state = ClientState.CONVERTING
        self.progress = 0
        self.download_url = None
        self.error = None
        try:
            url = self._post(on_progress)
        except TransportError as e:
            logger.warning("Conversion request failed: %s", e)
            self.state = ClientState.ERROR
            self.error = CONVERT_FAILED_MESSAGE
            return None

        self.download_url = url
        self.state = ClientState.CONVERTED
        return url

    def fetch_result(self) -> bytes:
        if not self.download_url:
            raise TransportError("no converted file")
        try:
            resp = requests.get(self.download_url, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"Download failed: {e}") from e
        if resp.status_code != 200:
            raise TransportError(f"Download error: {resp.status_code}")
        return resp.content

    def _post(self, on_progress: Callable[[int], None] | None) -> str:
        assert self.candidate is not None
        c = self.candidate
        body, content_type = encode_multipart_formdata({"file": (c.name, c.data, c.content_type)})

        def report(sent: int, total: int) -> None:
            pct = min(100, round(sent * 100 / total)) if total else 100
            if pct != self.progress:
                self.progress = pct
                if on_progress is not None:
                    on_progress(pct)

        try:
            resp = requests.post(
                self.endpoint,
                data=ProgressReader(body, report),
                headers={"Content-Type": content_type},
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise TransportError(f"Failed to connect to API: {e}") from e
        if not 200 <= resp.status_code < 300:
            raise TransportError(f"Upload failed: {resp.status_code} {resp.text}")
        try:
            data = resp.json()
        except ValueError as e:
            raise TransportError("Response is not JSON") from e
        url = data.get("downloadUrl") if isinstance(data, dict) else None
        if not url:
            raise TransportError("Response lacks downloadUrl")
        return str(url)

    def _reject(self, message: str) -> None:
        self.candidate = None
        self.state = ClientState.IDLE
        self.progress = 0
        self.download_url = None
        self.error = message
