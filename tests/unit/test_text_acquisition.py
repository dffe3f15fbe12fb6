# ============================================================================
# FILE: tests/unit/test_text_acquisition.py
# ============================================================================
"""
Unit tests for the text acquisition chain and the OCR worker pool
"""

import asyncio

import pytest
from PIL import Image

from src.clinical_ingestion.core.context import RawDocument
from src.clinical_ingestion.core.context.enums import AcquisitionMethod
from src.clinical_ingestion.extractors import TextAcquisitionChain, generate_fallback_text
from src.clinical_ingestion.extractors.fallback_text import PLACEHOLDER_HEADER
from src.clinical_ingestion.extractors.ocr_extractor import OCRWorkerPool, render_pdf_pages
from src.clinical_ingestion.utils.exceptions import (
    OCRError,
    OCRTimeoutError,
    UnsupportedMediaTypeError,
)

from tests.conftest import FailingOCREngine, FakeOCREngine, make_pdf, make_png


@pytest.fixture
def chain(ocr_pool):
    return TextAcquisitionChain(ocr_pool)


@pytest.mark.asyncio
async def test_plain_text_is_decoded_and_cleaned(chain):
    document = RawDocument(content=b"Glucose :  95 mg / dl", media_type="text/plain")

    acquired = await chain.acquire(document)

    assert acquired.text == "Glucose: 95 mg/dL"
    assert acquired.method == AcquisitionMethod.NATIVE
    assert not acquired.is_fallback


@pytest.mark.asyncio
async def test_latin1_text_is_decoded(chain):
    document = RawDocument(content="Hémoglobine: 13 g/dL".encode("latin-1"), media_type="text/plain")

    acquired = await chain.acquire(document)

    assert "13 g/dL" in acquired.text


@pytest.mark.asyncio
async def test_unsupported_media_type_is_rejected(chain):
    document = RawDocument(content=b"PK\x03\x04", media_type="application/zip")

    with pytest.raises(UnsupportedMediaTypeError):
        await chain.acquire(document)


@pytest.mark.asyncio
async def test_zero_byte_pdf_uses_fallback(chain):
    document = RawDocument(content=b"", media_type="application/pdf", filename="apollo_sugar_report.pdf")

    acquired = await chain.acquire(document)

    assert acquired.is_fallback
    assert acquired.text.startswith(PLACEHOLDER_HEADER)
    assert "Apollo Diagnostics" in acquired.text
    assert acquired.warnings


@pytest.mark.asyncio
async def test_unreadable_image_uses_fallback(chain):
    document = RawDocument(content=b"not an image", media_type="image/png", filename="scan.png")

    acquired = await chain.acquire(document)

    assert acquired.is_fallback
    assert any("Could not open image" in w for w in acquired.warnings)


@pytest.mark.asyncio
async def test_image_goes_through_ocr(chain, ocr_pool):
    document = RawDocument(content=make_png(), media_type="image/png", filename="report.png")

    acquired = await chain.acquire(document)

    assert acquired.method == AcquisitionMethod.OCR
    assert "Glucose Fasting: 180 mg/dL" in acquired.text
    assert ocr_pool.available == ocr_pool.size


@pytest.mark.asyncio
async def test_near_empty_ocr_output_uses_fallback():
    chain = TextAcquisitionChain(OCRWorkerPool(engines=[FakeOCREngine("ok")]))
    document = RawDocument(content=make_png(), media_type="image/png")

    acquired = await chain.acquire(document)

    assert acquired.is_fallback


@pytest.mark.asyncio
async def test_ocr_timeout_falls_back_and_releases_worker():
    pool = OCRWorkerPool(engines=[FakeOCREngine("Glucose: 95 mg/dL", delay=0.5)], timeout=0.05)
    chain = TextAcquisitionChain(pool)
    document = RawDocument(content=make_png(), media_type="image/png")

    acquired = await chain.acquire(document)

    assert acquired.is_fallback
    assert pool.available == 0

    await asyncio.sleep(0.6)
    assert pool.available == pool.size


@pytest.mark.asyncio
async def test_pool_raises_timeout():
    pool = OCRWorkerPool(engines=[FakeOCREngine("text", delay=0.5)], timeout=0.05)

    with pytest.raises(OCRTimeoutError):
        await pool.recognize(Image.new("RGB", (10, 10)))

    # the abandoned call still owns the worker
    assert pool.available == 0
    await asyncio.sleep(0.6)
    assert pool.available == 1


@pytest.mark.asyncio
async def test_pool_wraps_engine_failures():
    pool = OCRWorkerPool(engines=[FailingOCREngine()])

    with pytest.raises(OCRError):
        await pool.recognize(Image.new("RGB", (10, 10)))

    assert pool.available == 1


def test_pool_needs_an_engine():
    with pytest.raises(OCRError):
        OCRWorkerPool(engines=[])


@pytest.mark.asyncio
async def test_pdf_text_layer(chain, ocr_pool):
    content = make_pdf(["Glucose Fasting: 95 mg/dL (70-110)", "Hemoglobin: 13.5 g/dL"])
    document = RawDocument(content=content, media_type="application/pdf", filename="lab.pdf")

    acquired = await chain.acquire(document)

    assert acquired.method == AcquisitionMethod.PDF_LAYER
    assert "Glucose Fasting" in acquired.text
    assert ocr_pool._engines[0].calls == 0


@pytest.mark.asyncio
async def test_blank_pdf_goes_to_ocr(chain):
    document = RawDocument(content=make_pdf([""]), media_type="application/pdf", filename="scan.pdf")

    acquired = await chain.acquire(document)

    assert acquired.method == AcquisitionMethod.OCR
    assert "HbA1c" in acquired.text


def test_render_pdf_pages():
    images = render_pdf_pages(make_pdf(["page one"]), scale=0.5)

    assert len(images) == 1
    assert isinstance(images[0], Image.Image)


@pytest.mark.asyncio
async def test_office_text_is_decoded(chain):
    content = b"Lipid profile\nTotal Cholesterol: 210 mg/dL\nTriglycerides: 150 mg/dL"
    document = RawDocument(content=content, media_type="application/rtf", filename="lipid.rtf")

    acquired = await chain.acquire(document)

    assert acquired.method == AcquisitionMethod.NATIVE
    assert "Total Cholesterol: 210" in acquired.text


def test_fallback_text_has_no_digits():
    text = generate_fallback_text("thyrocare_lipid_2024_03_12.pdf")

    assert not any(ch.isdigit() for ch in text)
    assert "Thyrocare" in text
    assert "Lipid profile" in text


def test_fallback_text_without_keywords():
    text = generate_fallback_text("")

    assert "unnamed document" in text
    assert "general health checkup" in text
