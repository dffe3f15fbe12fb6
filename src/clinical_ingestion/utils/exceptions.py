# ============================================================================
# src/clinical_ingestion/utils/exceptions.py
# ============================================================================
"""
Custom exceptions for the clinical ingestion engine.

Only UnsupportedMediaTypeError is meant to reach callers. Everything under
DocumentProcessingError is recoverable and absorbed by the fallback chain.
"""

from typing import Optional


class ClinicalIngestionError(Exception):
    """Base exception for all clinical ingestion errors."""
    pass


class UnsupportedMediaTypeError(ClinicalIngestionError):
    """Declared media type is not accepted. Never retried."""
    def __init__(self, media_type: str):
        super().__init__(f"Unsupported media type: {media_type!r}")
        self.media_type = media_type


class DocumentProcessingError(ClinicalIngestionError):
    """Error during document processing."""
    pass


class TextExtractionError(DocumentProcessingError):
    """Error extracting text from a document."""
    pass


class PDFExtractionError(TextExtractionError):
    """Error extracting the text layer from a PDF."""
    pass


class OCRError(TextExtractionError):
    """OCR engine failed to recognize a page."""
    pass


class OCRTimeoutError(OCRError):
    """OCR call exceeded its time budget."""
    def __init__(self, timeout: float):
        super().__init__(f"OCR timed out after {timeout:.1f}s")
        self.timeout = timeout


class ExtractionError(ClinicalIngestionError):
    """A strategy extractor failed on its input."""
    def __init__(self, message: str, strategy: str = "unknown"):
        super().__init__(message)
        self.strategy = strategy


class ValidationError(ClinicalIngestionError):
    """Error during data validation."""
    pass


class PlausibilityError(ValidationError):
    """Value fails plausibility check."""
    def __init__(self, message: str, suggestion: Optional[float] = None):
        super().__init__(message)
        self.suggestion = suggestion


class ReferenceRangeError(ValidationError):
    """Invalid reference range."""
    def __init__(self, ref_min: float, ref_max: float):
        super().__init__(f"Invalid reference range [{ref_min}, {ref_max}]: min must be below max")
        self.ref_min = ref_min
        self.ref_max = ref_max


class BenchmarkError(ClinicalIngestionError):
    """Error while benchmarking a lab value."""
    pass


class ConfigurationError(ClinicalIngestionError):
    """Invalid configuration."""
    pass


class RuleTableError(ConfigurationError):
    """Parameter rule table is missing or malformed."""
    pass
