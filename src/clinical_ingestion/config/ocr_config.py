# ============================================================================
# src/clinical_ingestion/config/ocr_config.py
# ============================================================================
"""
OCR Settings
- Engine selection and language
- Worker pool size (also bounds batch concurrency)
- Per-call timeout
- PDF rasterization
"""

from pydantic import Field
from pydantic_settings import BaseSettings

class OCRSettings(BaseSettings):
    OCR_ENGINE: str = Field(
        default="tesseract",
        description="OCR backend. Only 'tesseract' ships with the engine"
    )
    OCR_LANGUAGE: str = Field(
        default="eng",
        description="Tesseract language code(s), e.g. 'eng' or 'eng+hin'"
    )
    OCR_WORKERS: int = Field(
        default=2,
        ge=1, le=32,
        description="Number of concurrent OCR workers; batch processing is bounded by this"
    )
    OCR_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Hard time budget for a single recognition call"
    )
    OCR_MIN_WORD_CONFIDENCE: float = Field(
        default=0.30,
        ge=0.0, le=1.0,
        description="Tesseract words below this confidence are dropped"
    )
    PDF_RENDER_SCALE: float = Field(
        default=2.0,
        gt=0,
        description="pypdfium2 render scale (2.0 ~ 144 DPI) for OCR of scanned PDFs"
    )
    PDF_MAX_OCR_PAGES: int = Field(
        default=10,
        ge=1,
        description="Maximum number of PDF pages sent through OCR"
    )

ocr_settings = OCRSettings()
