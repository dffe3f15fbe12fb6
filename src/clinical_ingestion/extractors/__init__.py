# ============================================================================
# src/clinical_ingestion/extractors/__init__.py
# ============================================================================
"""
Text acquisition: PDF text layers, OCR and the intelligent fallback.
"""

from .ocr_extractor import OCREngine, TesseractEngine, OCRWorkerPool, render_pdf_pages
from .fallback_text import generate_fallback_text
from .text_extractor import TextAcquisitionChain
