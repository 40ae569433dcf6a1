"""
Docstron package.

A FastAPI service that converts uploaded PDF documents to DOCX (and DOCX to
PDF) through an external converter, plus a Streamlit upload client.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
