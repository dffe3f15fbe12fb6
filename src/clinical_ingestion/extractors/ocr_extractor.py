# ============================================================================
# src/clinical_ingestion/extractors/ocr_extractor.py
# ============================================================================
"""
OCR Extraction

Components:
- OCREngine: protocol every recognizer implements (recognize(image) -> str)
- TesseractEngine: pytesseract backend with word-confidence filtering
- OCRWorkerPool: fixed set of engines handed out one at a time
- render_pdf_pages: rasterize PDF pages with pypdfium2 for OCR

OCR engines are not thread-safe and are expensive to spin up, so the pool
owns them. A worker is borrowed through an async context manager and is
always returned. A worker whose recognition thread outlives a timeout or
a cancellation rejoins the pool only once that thread finishes.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, List, Optional, Protocol, Sequence, Tuple

import numpy as np
import pypdfium2
import pytesseract
from PIL import Image, ImageEnhance, ImageFilter

from ..config import ocr_settings
from ..utils.exceptions import OCRError, OCRTimeoutError

logger = logging.getLogger(__name__)

# Grayscale spread below which a page is treated as washed out and binarized
LOW_CONTRAST_STD = 40.0


class OCREngine(Protocol):
    """Anything that turns an image into text."""

    def recognize(self, image: Image.Image) -> str:
        ...


def prepare_image(image: Image.Image) -> Image.Image:
    """
    Enhance image quality before recognition.

    Applies grayscale conversion, contrast enhancement and sharpening.
    Washed-out scans are additionally binarized around their mean.
    """
    if image.mode not in ("RGB", "L"):
        image = image.convert("RGB")

    gray = image.convert("L") if image.mode == "RGB" else image

    enhanced = ImageEnhance.Contrast(gray).enhance(1.5)
    enhanced = enhanced.filter(ImageFilter.SHARPEN)

    pixels = np.asarray(enhanced, dtype=np.float32)
    if pixels.size and float(pixels.std()) < LOW_CONTRAST_STD:
        threshold = float(pixels.mean())
        binary = np.where(pixels > threshold, 255, 0).astype(np.uint8)
        enhanced = Image.fromarray(binary).filter(ImageFilter.MedianFilter(size=3))

    return enhanced


class TesseractEngine:
    """
    Tesseract via pytesseract.

    Words below min_confidence are dropped; the remaining words are
    regrouped into their original lines so table rows survive OCR.
    """

    def __init__(
        self,
        language: Optional[str] = None,
        timeout: Optional[float] = None,
        min_confidence: Optional[float] = None,
    ):
        self.language = language or ocr_settings.OCR_LANGUAGE
        self.timeout = timeout if timeout is not None else ocr_settings.OCR_TIMEOUT_SECONDS
        self.min_confidence = (
            min_confidence if min_confidence is not None else ocr_settings.OCR_MIN_WORD_CONFIDENCE
        )

    def recognize(self, image: Image.Image) -> str:
        try:
            data = pytesseract.image_to_data(
                prepare_image(image),
                lang=self.language,
                timeout=self.timeout,
                output_type=pytesseract.Output.DICT,
            )
        except RuntimeError as e:
            # pytesseract signals its own timeout with a RuntimeError
            if "timeout" in str(e).lower():
                raise OCRTimeoutError(self.timeout) from e
            raise OCRError(f"Tesseract failed: {e}") from e

        lines: Dict[Tuple[int, int, int], List[str]] = {}
        for i, conf in enumerate(data["conf"]):
            word = str(data["text"][i]).strip()
            if not word:
                continue
            try:
                confidence = float(conf) / 100.0
            except (TypeError, ValueError):
                continue
            if confidence < self.min_confidence:
                continue

            line_key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(line_key, []).append(word)

        return "\n".join(" ".join(words) for _, words in sorted(lines.items()))


def build_engine(name: Optional[str] = None) -> OCREngine:
    """Construct the configured OCR backend."""
    name = (name or ocr_settings.OCR_ENGINE).lower()
    if name == "tesseract":
        return TesseractEngine()
    raise OCRError(f"Unknown OCR engine: {name}")


def render_pdf_pages(
    content: bytes,
    scale: Optional[float] = None,
    max_pages: Optional[int] = None,
) -> List[Image.Image]:
    """
    Convert PDF pages to PIL Images using pypdfium2.

    Args:
        content: Raw PDF bytes
        scale: Render scale (1.0 = 72 DPI)
        max_pages: Only the first max_pages pages are rendered

    Returns:
        List of PIL Images in page order
    """
    scale = scale or ocr_settings.PDF_RENDER_SCALE
    max_pages = max_pages or ocr_settings.PDF_MAX_OCR_PAGES

    images = []
    pdf = pypdfium2.PdfDocument(content)
    try:
        for page_num in range(min(len(pdf), max_pages)):
            page = pdf[page_num]
            bitmap = page.render(scale=scale)
            images.append(bitmap.to_pil())
    finally:
        pdf.close()

    return images


class OCRWorkerPool:
    """
    Bounded pool of OCR engines.

    Usage:
        pool = OCRWorkerPool(size=2)
        text = await pool.recognize(image)

        async with pool.acquire() as engine:
            ...
    """

    def __init__(
        self,
        engines: Optional[Sequence[OCREngine]] = None,
        size: Optional[int] = None,
        timeout: Optional[float] = None,
    ):
        if engines is None:
            size = size or ocr_settings.OCR_WORKERS
            engines = [build_engine() for _ in range(size)]
        if not engines:
            raise OCRError("OCR worker pool needs at least one engine")

        self._engines = list(engines)
        self.timeout = timeout if timeout is not None else ocr_settings.OCR_TIMEOUT_SECONDS

        # Queues bind to the loop that first waits on them
        self._queue: Optional[asyncio.Queue] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._busy: Dict[int, asyncio.Future] = {}

    @property
    def size(self) -> int:
        return len(self._engines)

    @property
    def available(self) -> int:
        """Workers currently idle."""
        if self._queue is None:
            return self.size
        return self._queue.qsize()

    def _get_queue(self) -> asyncio.Queue:
        loop = asyncio.get_running_loop()
        if self._queue is None or self._loop is not loop:
            self._queue = asyncio.Queue()
            for engine in self._engines:
                self._queue.put_nowait(engine)
            self._loop = loop
            self._busy = {}
        return self._queue

    @asynccontextmanager
    async def acquire(self) -> AsyncIterator[OCREngine]:
        """Borrow a worker; it goes back to the pool on every exit path."""
        queue = self._get_queue()
        engine = await queue.get()
        try:
            yield engine
        finally:
            self._release(queue, engine)

    def _release(self, queue: asyncio.Queue, engine: OCREngine) -> None:
        call = self._busy.pop(id(engine), None)
        if call is None or call.done():
            queue.put_nowait(engine)
            return

        # A recognition thread cannot be interrupted; the worker rejoins when it ends
        logger.warning("OCR worker still busy; held out of the pool until its call finishes")

        def rejoin(finished: asyncio.Future) -> None:
            if not finished.cancelled() and finished.exception() is not None:
                logger.debug(f"Abandoned OCR call failed: {finished.exception()}")
            queue.put_nowait(engine)

        call.add_done_callback(rejoin)

    async def recognize(self, image: Image.Image) -> str:
        """
        Recognize one image on a pooled worker under the time budget.

        A worker whose call timed out is held back until its thread returns,
        so abandoned calls never stack up on one engine.

        Raises:
            OCRTimeoutError: recognition exceeded the timeout
            OCRError: the engine failed
        """
        async with self.acquire() as engine:
            call = asyncio.ensure_future(asyncio.to_thread(engine.recognize, image))
            self._busy[id(engine)] = call
            try:
                return await asyncio.wait_for(asyncio.shield(call), timeout=self.timeout)
            except asyncio.TimeoutError:
                logger.warning(f"OCR call exceeded {self.timeout:.1f}s")
                raise OCRTimeoutError(self.timeout)
            except OCRError:
                raise
            except Exception as e:
                raise OCRError(f"OCR engine failed: {e}") from e

    async def recognize_images(self, images: Sequence[Image.Image]) -> str:
        """Recognize pages one after another and join them with blank lines."""
        texts = []
        for page_num, image in enumerate(images):
            text = await self.recognize(image)
            logger.debug(f"OCR page {page_num}: {len(text)} chars")
            texts.append(text)
        return "\n\n".join(t for t in texts if t.strip())
