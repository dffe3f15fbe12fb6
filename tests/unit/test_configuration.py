# ============================================================================
# FILE: tests/unit/test_configuration.py
# ============================================================================
"""
Unit tests for settings and logging utilities
"""

import json
import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from src.clinical_ingestion.config import (
    BenchmarkSettings,
    OCRSettings,
    ThresholdSettings,
    base_settings,
    benchmark_settings,
    ocr_settings,
    threshold_settings,
)
from src.clinical_ingestion.utils.logging import JsonFormatter, LogContext, log_performance


# ============================================================================
# Settings
# ============================================================================

def test_threshold_defaults():
    assert threshold_settings.COMPUTED_CONFIDENCE_FLOOR == 0.60
    assert threshold_settings.COMPUTED_CONFIDENCE_CEILING == 0.95
    assert threshold_settings.GATE_CONFIDENCE_THRESHOLD == 0.70
    assert threshold_settings.CROSS_VERIFY_THRESHOLD == 0.98
    assert threshold_settings.FALLBACK_CONFIDENCE == 0.25


def test_ocr_and_benchmark_defaults():
    assert ocr_settings.OCR_ENGINE == "tesseract"
    assert ocr_settings.OCR_WORKERS >= 1
    assert benchmark_settings.DEFAULT_REGION == "india"
    assert benchmark_settings.DEFAULT_PERCENTILE == 50


def test_knowledge_files_exist():
    assert base_settings.parameter_rules_path.exists()
    assert (base_settings.KNOWLEDGE_DIR / "regional_standards.json").exists()
    assert (base_settings.KNOWLEDGE_DIR / "population_benchmarks.json").exists()


def test_confidence_band_validator():
    with pytest.raises(PydanticValidationError):
        ThresholdSettings(COMPUTED_CONFIDENCE_FLOOR=0.9, COMPUTED_CONFIDENCE_CEILING=0.8)


def test_out_of_range_values_are_rejected():
    with pytest.raises(PydanticValidationError):
        ThresholdSettings(GATE_CONFIDENCE_THRESHOLD=1.5)

    with pytest.raises(PydanticValidationError):
        OCRSettings(OCR_WORKERS=0)


def test_environment_override(monkeypatch):
    monkeypatch.setenv("OCR_WORKERS", "4")
    monkeypatch.setenv("DEFAULT_REGION", "kerala")

    assert OCRSettings().OCR_WORKERS == 4
    assert BenchmarkSettings().DEFAULT_REGION == "kerala"


# ============================================================================
# Logging
# ============================================================================

def test_log_context_fields_reach_records(caplog):
    logger = logging.getLogger("tests.log_context")

    with caplog.at_level(logging.INFO, logger="tests.log_context"):
        with LogContext(logger, document="lab.pdf", media_type="application/pdf"):
            logger.info("inside")
        logger.info("outside")

    inside, outside = caplog.records
    assert inside.document == "lab.pdf"
    assert inside.media_type == "application/pdf"
    assert not hasattr(outside, "document")


def test_json_formatter_includes_context():
    logger = logging.getLogger("tests.json")

    with LogContext(logger, document="scan.png"):
        record = logger.makeRecord("tests.json", logging.INFO, __file__, 1, "hello", (), None)

    payload = json.loads(JsonFormatter().format(record))

    assert payload["message"] == "hello"
    assert payload["level"] == "INFO"
    assert payload["document"] == "scan.png"


def test_log_performance_sync(caplog):
    logger = logging.getLogger("tests.perf")

    @log_performance(logger, "Adding")
    def add(a, b):
        return a + b

    with caplog.at_level(logging.INFO, logger="tests.perf"):
        assert add(1, 2) == 3

    assert "Adding completed" in caplog.text


@pytest.mark.asyncio
async def test_log_performance_async_reraises(caplog):
    logger = logging.getLogger("tests.perf")

    @log_performance(logger, "Failing")
    async def fail():
        raise RuntimeError("boom")

    with caplog.at_level(logging.INFO, logger="tests.perf"):
        with pytest.raises(RuntimeError):
            await fail()

    assert "Failing failed" in caplog.text
