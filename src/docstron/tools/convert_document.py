#!/usr/bin/env python3
"""
Standalone PDF <-> DOCX converter run by the service as a child process.

Usage: python convert_document.py <input> <output>

.pdf -> .docx uses pdf2docx; .docx -> .pdf uses headless LibreOffice.
Exit status 0 means the output file was written.
"""

import os
import subprocess
import sys
import tempfile

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2

LIBREOFFICE_BIN = os.getenv("LIBREOFFICE_BIN", "soffice")


def convert_pdf_to_docx(input_path, output_path):
    from pdf2docx import Converter

    cv = Converter(input_path)
    try:
        cv.convert(output_path, start=0, end=None)
    finally:
        cv.close()


def convert_docx_to_pdf(input_path, output_path):
    """Use LibreOffice to convert Word -> PDF, then move the result into place."""
    out_dir = os.path.dirname(os.path.abspath(output_path))
    owner = os.path.basename(output_path).split(".", 1)[0]
    # LibreOffice names its output after the input; render into a private
    # directory so concurrent runs cannot clash. The "<owner>." prefix lets the
    # service sweep it if this process is killed before cleaning up.
    with tempfile.TemporaryDirectory(prefix=f"{owner}.", dir=out_dir) as work_dir:
        cmd = [
            LIBREOFFICE_BIN,
            "--headless",
            "--convert-to", "pdf",
            "--outdir", work_dir,
            input_path,
        ]
        subprocess.run(cmd, check=True, capture_output=True)
        produced = os.path.join(work_dir, os.path.splitext(os.path.basename(input_path))[0] + ".pdf")
        if not os.path.exists(produced):
            raise FileNotFoundError(f"LibreOffice did not produce {produced}")
        os.replace(produced, output_path)


def convert(input_path, output_path):
    src = input_path.lower()
    dst = output_path.lower()
    if src.endswith(".pdf") and dst.endswith(".docx"):
        convert_pdf_to_docx(input_path, output_path)
    elif src.endswith(".docx") and dst.endswith(".pdf"):
        convert_docx_to_pdf(input_path, output_path)
    else:
        raise ValueError(f"Unsupported conversion: {input_path} -> {output_path}")


def main(argv=None):
    args = sys.argv[1:] if argv is None else argv
    if len(args) != 2:
        print("Usage: python convert_document.py <input> <output>", file=sys.stderr)
        return EXIT_USAGE

    input_path, output_path = args
    if not os.path.exists(input_path):
        print(f"ERROR: input file not found: {input_path}", file=sys.stderr)
        return EXIT_FAILED

    try:
        convert(input_path, output_path)
    except subprocess.CalledProcessError as e:
        stderr = (e.stderr or b"").decode("utf-8", errors="replace").strip()
        print(f"ERROR: LibreOffice exited with {e.returncode}: {stderr}", file=sys.stderr)
        return EXIT_FAILED
    except Exception as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return EXIT_FAILED

    if not os.path.exists(output_path):
        print(f"ERROR: converter did not produce {output_path}", file=sys.stderr)
        return EXIT_FAILED

    print(f"SUCCESS: Converted {input_path} to {output_path}")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
