"""
Upload policy shared by the browser client and the conversion service.

Both sides agree on which suffixes are accepted, the size ceiling, and how
a filename maps to its converted counterpart.
"""

from enum import Enum

from .errors import ValidationError

MAX_FILE_SIZE = 10 * 1024 * 1024  # 10MB

PDF = ".pdf"
DOCX = ".docx"
ALLOWED_SUFFIXES = (PDF, DOCX)

MIME_TYPES = {
    PDF: "application/pdf",
    DOCX: "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
}

DEFAULT_DOWNLOAD_NAME = "converted"


class Direction(str, Enum):
    PDF_TO_DOCX = "pdf->docx"
    DOCX_TO_PDF = "docx->pdf"

    @property
    def source_suffix(self) -> str:
        return PDF if self is Direction.PDF_TO_DOCX else DOCX

    @property
    def target_suffix(self) -> str:
        return DOCX if self is Direction.PDF_TO_DOCX else PDF


def suffix_of(name: str) -> str:
    """Return the allowed suffix `name` ends with (lowercased), or ""."""
    lowered = (name or "").lower()
    for suffix in ALLOWED_SUFFIXES:
        # The leading dot is part of the match, so "xxxpdf" does not qualify.
        if lowered.endswith(suffix) and len(lowered) > len(suffix):
            return suffix
    return ""


def has_allowed_suffix(name: str) -> bool:
    return bool(suffix_of(name))


def direction_for(name: str) -> Direction:
    suffix = suffix_of(name)
    if suffix == PDF:
        return Direction.PDF_TO_DOCX
    if suffix == DOCX:
        return Direction.DOCX_TO_PDF
    raise ValidationError("Please upload a PDF or DOCX file.")


def swap_suffix(name: str) -> str:
    """Replace the trailing .pdf/.docx of `name` with the opposite suffix."""
    direction = direction_for(name)
    stem = name[: -len(direction.source_suffix)]
    return stem + direction.target_suffix


def derive_download_name(name: str | None) -> str:
    if not name:
        return DEFAULT_DOWNLOAD_NAME
    if not has_allowed_suffix(name):
        return name
    return swap_suffix(name)
