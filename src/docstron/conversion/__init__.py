"""
Domain layer for document conversion.
Provides the gateways and the service that take an uploaded PDF or DOCX
through validation, the external converter and cleanup, so the HTTP front-end
stays a thin adapter.
"""

from .interfaces import ArtifactStore, ConversionJob, ConversionResult, ConverterGateway, UploadedFile
from .adapters import LocalArtifactStore, SubprocessConverter
from .service import ConversionService
