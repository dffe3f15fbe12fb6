# ============================================================================
# FILE: tests/unit/test_pipeline.py
# ============================================================================
"""
End-to-end tests for the clinical ingestion pipeline
"""

import dataclasses

import pytest

from src.clinical_ingestion.core.context import PatientContext, RawDocument
from src.clinical_ingestion.core.context.enums import AcquisitionMethod, LabStatus, Layout, StrategyKind
from src.clinical_ingestion.core.pipeline import (
    FALLBACK_PARSING_METHOD,
    NORMALIZER_ONLY_METHOD,
    ClinicalIngestionPipeline,
)
from src.clinical_ingestion.strategies import (
    ExtractorRegistry,
    HandwrittenExtractor,
    NarrativeExtractor,
    TabularExtractor,
)
from src.clinical_ingestion.utils.exceptions import BenchmarkError, UnsupportedMediaTypeError
from src.clinical_ingestion.utils.text_normalizer import normalize_medical_text
from src.clinical_ingestion.validators.confidence_gate import DEGRADED_MESSAGE

from tests.conftest import make_png


def _text_document(text, filename="report.txt", patient=None):
    return RawDocument(content=text.encode("utf-8"), media_type="text/plain", filename=filename, patient=patient)


class BoomExtractor:
    kind = StrategyKind.STRUCTURED

    def extract(self, text):
        raise RuntimeError("extractor exploded")


class BrokenAcquisition:
    async def acquire(self, document):
        raise RuntimeError("disk on fire")


class BrokenBenchmarking:
    def benchmark(self, lab_values, age=None, gender=None):
        raise BenchmarkError("population table unreadable")


class BrokenCrossVerifier:
    def verify(self, data, confidence, original_text):
        raise RuntimeError("verifier crashed")


@pytest.mark.asyncio
async def test_structured_report_end_to_end(pipeline, sample_lab_text):
    document = _text_document(sample_lab_text, patient=PatientContext(age=45, gender="male"))

    result = await pipeline.process(document)

    assert result.parsing_method == "structured"
    assert result.fallback_method is False
    assert result.confidence == pytest.approx(0.95)
    assert len(result.extracted_data.lab_values) == 3
    assert result.source_metadata.acquisition_method == AcquisitionMethod.NATIVE
    assert result.source_metadata.report_type == "diabetes_panel"
    assert result.source_metadata.filename == "report.txt"

    assert len(result.benchmarks) == 3
    cholesterol = next(b for b in result.benchmarks if b.parameter == "Total Cholesterol")
    assert cholesterol.population_percentile == 96

    original = normalize_medical_text(sample_lab_text)
    assert result.augmented_report.startswith(original)
    assert "Total Cholesterol: Requires immediate attention" in result.augmented_report


@pytest.mark.asyncio
async def test_result_serializes(pipeline, sample_lab_text):
    payload = (await pipeline.process(_text_document(sample_lab_text))).to_dict()

    assert payload["parsingMethod"] == "structured"
    assert len(payload["benchmarks"]) == 3
    assert "augmentedReport" in payload
    assert "fallbackMethod" not in payload
    assert payload["traceability"]


@pytest.mark.asyncio
async def test_unsupported_media_type_is_rejected(pipeline):
    document = RawDocument(content=b"PK\x03\x04", media_type="application/zip", filename="archive.zip")

    with pytest.raises(UnsupportedMediaTypeError):
        await pipeline.process(document)


@pytest.mark.asyncio
async def test_unreadable_document_degrades(pipeline):
    document = RawDocument(content=b"", media_type="application/pdf", filename="apollo_sugar_report.pdf")

    result = await pipeline.process(document)

    assert result.parsing_method == FALLBACK_PARSING_METHOD
    assert result.confidence == pytest.approx(0.25)
    assert result.fallback_method is True
    assert result.message == DEGRADED_MESSAGE
    assert result.benchmarks is None
    assert result.augmented_report is None
    assert result.warnings


@pytest.mark.asyncio
async def test_low_confidence_text_degrades(pipeline):
    result = await pipeline.process(_text_document("Thank you for visiting our wellness centre today."))

    assert result.parsing_method == "structured"
    assert result.confidence == pytest.approx(0.60)
    assert result.fallback_method is True
    assert result.enhanced_analysis.confidence == pytest.approx(0.50)


@pytest.mark.asyncio
async def test_scanned_image(pipeline):
    document = RawDocument(content=make_png(), media_type="image/png", filename="scan.png")

    result = await pipeline.process(document)

    assert result.source_metadata.layout == Layout.SCAN
    assert result.source_metadata.acquisition_method == AcquisitionMethod.OCR
    values = {v.parameter: v for v in result.extracted_data.lab_values}
    assert values["Glucose Fasting"].value == 180
    assert values["Glucose Fasting"].status == LabStatus.CRITICAL
    assert values["HbA1c"].value == 7.2
    assert result.fallback_method is False


@pytest.mark.asyncio
async def test_handwritten_hint(pipeline, sample_lab_text):
    result = await pipeline.process(_text_document(sample_lab_text), hints={"handwritten": True})

    assert result.parsing_method == "handwritten"
    assert result.source_metadata.layout == Layout.HANDWRITTEN_NOTE


@pytest.mark.asyncio
async def test_extractor_failure_falls_back_to_normalizer(services, normalizer, sample_lab_text):
    registry = ExtractorRegistry([
        BoomExtractor(),
        TabularExtractor(normalizer),
        NarrativeExtractor(normalizer),
        HandwrittenExtractor(normalizer),
    ])
    pipeline = ClinicalIngestionPipeline(dataclasses.replace(services, registry=registry))

    result = await pipeline.process(_text_document(sample_lab_text))

    assert result.parsing_method == NORMALIZER_ONLY_METHOD
    assert len(result.extracted_data.lab_values) == 3
    assert result.confidence == pytest.approx(0.60)
    assert any("extractor exploded" in w for w in result.warnings)
    assert result.benchmarks is not None


@pytest.mark.asyncio
async def test_csv_export_yields_lab_values(pipeline):
    text = (
        "Test,Result,Unit,Reference\n"
        "Glucose,95,mg/dL,70-110\n"
        "Hemoglobin,13.5,g/dL,12-16\n"
        "Creatinine,1.1,mg/dL,0.6-1.2\n"
    )
    document = RawDocument(content=text.encode("utf-8"), media_type="text/csv", filename="export.csv")

    result = await pipeline.process(document)

    assert result.parsing_method == "tabular"
    assert result.fallback_method is False
    values = {v.parameter: v.value for v in result.extracted_data.lab_values}
    assert values == {"Glucose Fasting": 95, "Hemoglobin": 13.5, "Serum Creatinine": 1.1}
    assert result.confidence == pytest.approx(0.95)
    assert len(result.benchmarks) == 3


@pytest.mark.asyncio
async def test_filename_reaches_the_classifier(pipeline):
    result = await pipeline.process(_text_document("Glucose 95", filename="rx_0412.txt"))

    assert result.parsing_method == "handwritten"


@pytest.mark.asyncio
async def test_benchmark_failure_keeps_extraction(services, sample_lab_text):
    pipeline = ClinicalIngestionPipeline(dataclasses.replace(services, benchmarking=BrokenBenchmarking()))

    result = await pipeline.process(_text_document(sample_lab_text))

    assert result.parsing_method == "structured"
    assert result.fallback_method is False
    assert len(result.extracted_data.lab_values) == 3
    assert result.benchmarks is None
    assert result.augmented_report is None
    assert "benchmarking failed: population table unreadable" in result.warnings
    assert result.traceability[-1].claim == "benchmarking skipped"
    assert result.traceability[-1].source == "BenchmarkError"


@pytest.mark.asyncio
async def test_late_failure_without_data_degrades(services):
    pipeline = ClinicalIngestionPipeline(dataclasses.replace(services, cross_verifier=BrokenCrossVerifier()))

    result = await pipeline.process(_text_document("Thank you for visiting our wellness centre today."))

    assert result.parsing_method == FALLBACK_PARSING_METHOD
    assert result.fallback_method is True
    assert any("verifier crashed" in w for w in result.warnings)


@pytest.mark.asyncio
async def test_acquisition_failure_returns_fallback(services, sample_lab_text):
    pipeline = ClinicalIngestionPipeline(dataclasses.replace(services, acquisition=BrokenAcquisition()))

    result = await pipeline.process(_text_document(sample_lab_text))

    assert result.parsing_method == FALLBACK_PARSING_METHOD
    assert result.fallback_method is True
    assert any("disk on fire" in w for w in result.warnings)


@pytest.mark.asyncio
async def test_batch_keeps_input_order(pipeline, sample_lab_text, sample_table_text):
    documents = [
        _text_document(sample_lab_text, filename="a.txt"),
        RawDocument(content=b"PK", media_type="application/zip", filename="b.zip"),
        RawDocument(content=make_png(), media_type="image/png", filename="c.png"),
        _text_document(sample_table_text, filename="d.txt"),
    ]

    items = await pipeline.process_batch(documents)

    assert [item.filename for item in items] == ["a.txt", "b.zip", "c.png", "d.txt"]
    assert [item.succeeded for item in items] == [True, False, True, True]
    assert "application/zip" in items[1].error
    assert items[3].result.parsing_method == "tabular"
    assert pipeline.services.ocr_pool.available == pipeline.services.ocr_pool.size


@pytest.mark.asyncio
async def test_batch_failure_still_yields_result(services, sample_lab_text):
    pipeline = ClinicalIngestionPipeline(dataclasses.replace(services, acquisition=BrokenAcquisition()))

    items = await pipeline.process_batch([_text_document(sample_lab_text, filename="x.txt")])

    result = items[0].result
    assert items[0].succeeded
    assert result.parsing_method == FALLBACK_PARSING_METHOD
    assert result.fallback_method is True
    assert any("disk on fire" in w for w in result.warnings)
    assert items[0].to_dict()["result"]["fallbackMethod"] is True


@pytest.mark.asyncio
async def test_empty_batch(pipeline):
    assert await pipeline.process_batch([]) == []
