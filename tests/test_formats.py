import pytest

from docstron.errors import ValidationError
from docstron.formats import (
    Direction,
    derive_download_name,
    direction_for,
    has_allowed_suffix,
    swap_suffix,
)


@pytest.mark.parametrize("name", ["report.pdf", "REPORT.PDF", "a.b.docx", "Letter.DocX"])
def test_allowed_names(name):
    assert has_allowed_suffix(name)


@pytest.mark.parametrize("name", ["xxxpdf", "reportdocx", "report.doc", "report.pdf.txt", ".pdf", "", "pdf"])
def test_rejected_names(name):
    assert not has_allowed_suffix(name)


def test_direction_is_explicit():
    assert direction_for("a.pdf") is Direction.PDF_TO_DOCX
    assert direction_for("a.DOCX") is Direction.DOCX_TO_PDF
    assert Direction.PDF_TO_DOCX.target_suffix == ".docx"
    assert Direction.DOCX_TO_PDF.target_suffix == ".pdf"


def test_direction_for_unknown_suffix():
    with pytest.raises(ValidationError):
        direction_for("slides.pptx")


def test_swap_suffix_only_touches_the_end():
    assert swap_suffix("my.pdf.notes.pdf") == "my.pdf.notes.docx"
    assert swap_suffix("Report.PDF") == "Report.docx"


@pytest.mark.parametrize(
    "name, expected",
    [
        ("report.pdf", "report.docx"),
        ("report.docx", "report.pdf"),
        (None, "converted"),
        ("", "converted"),
    ],
)
def test_derive_download_name(name, expected):
    assert derive_download_name(name) == expected
