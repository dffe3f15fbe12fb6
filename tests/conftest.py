# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import io
import time

import pytest
from PIL import Image

from src.clinical_ingestion.benchmarking.engine import BenchmarkingEngine
from src.clinical_ingestion.benchmarking.population import PopulationReferenceStore
from src.clinical_ingestion.benchmarking.standards_store import ReferenceStandardsStore
from src.clinical_ingestion.classifiers.document_classifier import DocumentClassifier
from src.clinical_ingestion.config import base_settings
from src.clinical_ingestion.core.pipeline import ClinicalIngestionPipeline
from src.clinical_ingestion.core.services import PipelineServices
from src.clinical_ingestion.extractors.ocr_extractor import OCRWorkerPool
from src.clinical_ingestion.normalization.entity_normalizer import MedicalEntityNormalizer
from src.clinical_ingestion.normalization.rules import load_parameter_rules


class FakeOCREngine:
    """OCR engine returning canned text, optionally after a delay."""

    def __init__(self, text: str = "", delay: float = 0.0):
        self.text = text
        self.delay = delay
        self.calls = 0

    def recognize(self, image):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        return self.text


class FailingOCREngine:
    def recognize(self, image):
        raise RuntimeError("engine crashed")


def make_png(size=(40, 20), color="white") -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


def make_pdf(lines) -> bytes:
    from reportlab.lib.pagesizes import A4
    from reportlab.pdfgen import canvas

    buffer = io.BytesIO()
    pdf = canvas.Canvas(buffer, pagesize=A4)
    y = 800
    for line in lines:
        pdf.drawString(72, y, line)
        y -= 18
    pdf.save()
    return buffer.getvalue()


@pytest.fixture(scope="session")
def rules():
    return load_parameter_rules(base_settings.parameter_rules_path)


@pytest.fixture(scope="session")
def normalizer(rules):
    return MedicalEntityNormalizer(rules)


@pytest.fixture
def classifier():
    return DocumentClassifier()


@pytest.fixture
def standards_store(rules):
    return ReferenceStandardsStore.from_file(rules=rules)


@pytest.fixture
def population_store():
    return PopulationReferenceStore.from_file()


@pytest.fixture
def benchmarking_engine(standards_store, population_store, rules):
    return BenchmarkingEngine(standards_store, population_store, rules=rules)


@pytest.fixture
def fake_ocr_text():
    return "Glucose Fasting: 180 mg/dL (Normal: 70-110)\nHbA1c: 7.2 %"


@pytest.fixture
def ocr_pool(fake_ocr_text):
    return OCRWorkerPool(engines=[FakeOCREngine(fake_ocr_text), FakeOCREngine(fake_ocr_text)])


@pytest.fixture
def services(ocr_pool):
    return PipelineServices.build_default(ocr_pool=ocr_pool)


@pytest.fixture
def pipeline(services):
    return ClinicalIngestionPipeline(services)


@pytest.fixture
def sample_lab_text():
    """Sample structured lab report"""
    return (
        "City Care Diagnostics\n"
        "Dr. Anil Mehta\n"
        "Report Date: 12/03/2024\n"
        "\n"
        "Investigations:\n"
        "Glucose Fasting: 95 mg/dL (Normal: 70-110)\n"
        "Total Cholesterol: 240 mg/dL\n"
        "Hemoglobin: 13.5 g/dL\n"
        "\n"
        "Diagnosis:\n"
        "Hypercholesterolemia\n"
        "\n"
        "Recommendations:\n"
        "- Low fat diet\n"
        "- Repeat lipid profile in 3 months\n"
    )


@pytest.fixture
def sample_table_text():
    """Sample pipe-delimited lab table"""
    return (
        "Test | Result | Unit | Reference\n"
        "Glucose | 95 | mg/dL | 70-110\n"
        "Hemoglobin | 13.5 | g/dL | 12-16\n"
        "Ferritin | 150 | ng/mL | 30-400\n"
    )


@pytest.fixture
def sample_narrative_text():
    """Sample clinical narrative"""
    return (
        "HISTORY: Patient is a 52 year old male who presents with fatigue.\n"
        "He complains of headache and dizziness.\n"
        "Known case of hypertension. No history of asthma. Denies chest pain.\n"
        "Blood pressure improved since last visit.\n"
        "Currently on tablet Amlodipine daily.\n"
        "IMPRESSION: essential hypertension\n"
    )


@pytest.fixture
def sample_handwritten_text():
    """Sample OCR output of a handwritten prescription"""
    return (
        "Doctor's note (handwritten)\n"
        "C/O fever, body ache\n"
        "BP: 140/90\n"
        "Pulse 88 bpm\n"
        "Tab Paracetamol 500 mg TDS\n"
        "Diagnosis: viral fever\n"
    )
