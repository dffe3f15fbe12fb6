# ============================================================================
# src/clinical_ingestion/extractors/text_extractor.py
# ============================================================================
"""
Text Acquisition Chain

Turns a RawDocument into non-empty AcquiredText. Route by media type:

1. text/plain, text/csv, application/json: direct decode
2. PDF: text layer cascade
   - pypdfium2: fast, handles most PDFs
   - PyPDF2: pure Python, tolerant of odd encodings
   - pdfplumber: slowest, best at layout-heavy pages
   A layer with fewer than MIN_PDF_TEXT_CHARS cleaned characters is treated
   as a scan and the rendered pages go through OCR.
3. Images: OCR
4. Office documents: strict decode, OCR when the bytes are not text
5. Intelligent fallback: filename-derived placeholder, cannot fail

Every step that fails is logged and recorded as a warning; the chain moves
on. acquire() never raises for a supported media type.
"""

import io
import logging
from typing import Callable, List, Optional, Tuple

import PyPDF2
import pdfplumber
import pypdfium2
from PIL import Image

from ..config import threshold_settings, ThresholdSettings
from ..constants.media_types import (
    IMAGE_MEDIA_TYPES,
    OFFICE_MEDIA_TYPES,
    PDF_MEDIA_TYPES,
    TEXT_MEDIA_TYPES,
    is_supported,
)
from ..core.context.document import AcquiredText, RawDocument
from ..core.context.enums import AcquisitionMethod
from ..utils.exceptions import (
    OCRError,
    PDFExtractionError,
    TextExtractionError,
    UnsupportedMediaTypeError,
)
from ..utils.logging import log_performance
from ..utils.text_normalizer import normalize_medical_text, printable_ratio
from .fallback_text import generate_fallback_text
from .ocr_extractor import OCRWorkerPool, render_pdf_pages

logger = logging.getLogger(__name__)

# Base quality by acquisition method
METHOD_QUALITY = {
    AcquisitionMethod.NATIVE: 0.90,
    AcquisitionMethod.PDF_LAYER: 0.85,
    AcquisitionMethod.OCR: 0.65,
}

FALLBACK_QUALITY = 0.10


def _extract_with_pypdfium2(content: bytes) -> str:
    """Extract text using pypdfium2."""
    pdf = pypdfium2.PdfDocument(content)
    try:
        texts = []
        for page_num in range(len(pdf)):
            textpage = pdf[page_num].get_textpage()
            texts.append(textpage.get_text_range() or "")
        return "\n\n".join(texts)
    finally:
        pdf.close()


def _extract_with_pypdf2(content: bytes) -> str:
    """Extract text using PyPDF2."""
    reader = PyPDF2.PdfReader(io.BytesIO(content))

    if reader.is_encrypted:
        try:
            reader.decrypt("")
        except Exception as e:
            raise PDFExtractionError("PDF is encrypted and requires a password") from e

    return "\n\n".join(page.extract_text() or "" for page in reader.pages)


def _extract_with_pdfplumber(content: bytes) -> str:
    """Extract text with layout preservation using pdfplumber."""
    with pdfplumber.open(io.BytesIO(content)) as pdf:
        return "\n\n".join(page.extract_text(layout=True) or "" for page in pdf.pages)


PDF_LAYER_EXTRACTORS: List[Tuple[str, Callable[[bytes], str]]] = [
    ("pypdfium2", _extract_with_pypdfium2),
    ("pypdf2", _extract_with_pypdf2),
    ("pdfplumber", _extract_with_pdfplumber),
]


def estimate_quality(text: str, method: AcquisitionMethod) -> float:
    """
    Heuristic text quality in [0, 1].

    Starts from the method's base quality and adjusts for length and for
    the structure lab reports usually have (digits, "label: value" pairs,
    several lines).
    """
    if method == AcquisitionMethod.INTELLIGENT_FALLBACK:
        return FALLBACK_QUALITY

    score = METHOD_QUALITY.get(method, 0.5)
    length = len(text)

    if length < 50:
        score -= 0.25
    elif length < 200:
        score -= 0.10
    elif length > 1000:
        score += 0.05

    if any(ch.isdigit() for ch in text):
        score += 0.03
    if text.count(":") >= 3:
        score += 0.03
    if text.count("\n") >= 5:
        score += 0.02

    return max(0.05, min(1.0, score))


class TextAcquisitionChain:
    """
    Ordered text acquisition with guaranteed non-empty output.

    The OCR pool is injected; the chain itself holds no per-document state
    and can serve concurrent documents.
    """

    def __init__(
        self,
        ocr_pool: OCRWorkerPool,
        thresholds: Optional[ThresholdSettings] = None,
    ):
        self.ocr_pool = ocr_pool
        self.thresholds = thresholds or threshold_settings
        self.logger = logging.getLogger(__name__)

    @log_performance(logger, "Text acquisition")
    async def acquire(self, document: RawDocument) -> AcquiredText:
        """
        Acquire text for a document.

        Raises:
            UnsupportedMediaTypeError: media type is not accepted
        """
        media_type = document.normalized_media_type
        if not is_supported(media_type):
            raise UnsupportedMediaTypeError(document.media_type)

        warnings: List[str] = []
        text: Optional[str] = None
        method: Optional[AcquisitionMethod] = None

        try:
            if media_type in TEXT_MEDIA_TYPES:
                text, method = self._decode_text(document.content), AcquisitionMethod.NATIVE
            elif media_type in PDF_MEDIA_TYPES:
                text, method = await self._acquire_pdf(document.content, warnings)
            elif media_type in IMAGE_MEDIA_TYPES:
                text, method = await self._acquire_image(document.content), AcquisitionMethod.OCR
            elif media_type in OFFICE_MEDIA_TYPES:
                text, method = await self._acquire_office(document.content, warnings)
        except TextExtractionError as e:
            self.logger.warning(f"Text acquisition failed for {document.filename}: {e}")
            warnings.append(str(e))
            text = None

        if text:
            text = normalize_medical_text(text)

        if not text:
            self.logger.warning(f"Using intelligent fallback for {document.filename}")
            warnings.append("No readable text recovered; using intelligent fallback")
            text = generate_fallback_text(document.filename)
            method = AcquisitionMethod.INTELLIGENT_FALLBACK

        return AcquiredText(
            text=text,
            quality_score=estimate_quality(text, method),
            method=method,
            warnings=tuple(warnings),
        )

    def _decode_text(self, content: bytes) -> str:
        """Decode plain text, trying utf-8 first then latin-1."""
        if not content:
            raise TextExtractionError("Document is empty")
        try:
            return content.decode("utf-8-sig")
        except UnicodeDecodeError:
            return content.decode("latin-1")

    async def _acquire_pdf(
        self, content: bytes, warnings: List[str]
    ) -> Tuple[str, AcquisitionMethod]:
        if not content:
            raise PDFExtractionError("PDF is empty")

        for name, extractor in PDF_LAYER_EXTRACTORS:
            try:
                text = normalize_medical_text(extractor(content))
            except Exception as e:
                self.logger.warning(f"{name} failed: {e}")
                warnings.append(f"{name} failed: {e}")
                continue

            if len(text) >= self.thresholds.MIN_PDF_TEXT_CHARS:
                self.logger.debug(f"{name} extracted {len(text)} chars")
                return text, AcquisitionMethod.PDF_LAYER

            self.logger.debug(f"{name} text layer too short ({len(text)} chars)")

        warnings.append("PDF has no usable text layer; running OCR")

        try:
            images = render_pdf_pages(content)
        except Exception as e:
            raise PDFExtractionError(f"Could not render PDF pages: {e}") from e

        text = await self._run_ocr(images)
        return text, AcquisitionMethod.OCR

    async def _acquire_image(self, content: bytes) -> str:
        if not content:
            raise OCRError("Image is empty")
        try:
            image = Image.open(io.BytesIO(content))
            image.load()
        except Exception as e:
            raise OCRError(f"Could not open image: {e}") from e

        return await self._run_ocr([image])

    async def _acquire_office(
        self, content: bytes, warnings: List[str]
    ) -> Tuple[str, AcquisitionMethod]:
        if not content:
            raise TextExtractionError("Document is empty")

        try:
            decoded = content.decode("utf-8")
        except UnicodeDecodeError:
            decoded = ""

        cleaned = normalize_medical_text(decoded)
        if (
            len(cleaned) >= self.thresholds.MIN_PDF_TEXT_CHARS
            and printable_ratio(decoded) >= self.thresholds.MIN_OFFICE_PRINTABLE_RATIO
        ):
            return cleaned, AcquisitionMethod.NATIVE

        warnings.append("Office document is not plain text; running OCR")
        return await self._acquire_image(content), AcquisitionMethod.OCR

    async def _run_ocr(self, images: List[Image.Image]) -> str:
        """OCR rendered pages; near-empty output counts as a failure."""
        text = normalize_medical_text(await self.ocr_pool.recognize_images(images))
        if len(text) < self.thresholds.MIN_OCR_TEXT_CHARS:
            raise OCRError(f"OCR produced near-empty output ({len(text)} chars)")
        return text
