# ============================================================================
# FILE: tests/unit/test_extractors.py
# ============================================================================
"""
Unit tests for the four strategy extractors and the extractor registry
"""

import json

import pytest

from src.clinical_ingestion.core.context.enums import LabStatus, StrategyKind
from src.clinical_ingestion.strategies import (
    ExtractorRegistry,
    HandwrittenExtractor,
    NarrativeExtractor,
    StructuredExtractor,
    TabularExtractor,
)
from src.clinical_ingestion.strategies.structured import JSON_REPAIR_CONFIDENCE_PENALTY
from src.clinical_ingestion.utils.exceptions import ConfigurationError, ExtractionError


# ============================================================================
# Structured
# ============================================================================

class TestStructuredExtractor:

    @pytest.fixture
    def extractor(self, normalizer):
        return StructuredExtractor(normalizer)

    def test_sections_and_lab_values(self, extractor, sample_lab_text):
        outcome = extractor.extract(sample_lab_text)
        data = outcome.data

        assert set(data.sections) == {"investigations", "diagnosis", "recommendations"}
        assert [v.parameter for v in data.lab_values] == [
            "Glucose Fasting", "Total Cholesterol", "Hemoglobin",
        ]
        assert data.lab_values[0].status == LabStatus.NORMAL
        assert data.lab_values[1].status == LabStatus.HIGH
        assert outcome.confidence == pytest.approx(0.95)

    def test_diagnoses_and_recommendations(self, extractor, sample_lab_text):
        data = extractor.extract(sample_lab_text).data

        assert [d.condition for d in data.diagnoses] == ["Hypercholesterolemia"]
        assert data.recommendations == ["Low fat diet", "Repeat lipid profile in 3 months"]

    def test_header_fields(self, extractor, sample_lab_text):
        data = extractor.extract(sample_lab_text).data

        assert data.doctor_name == "Dr. Anil Mehta"
        assert data.hospital_name == "City Care Diagnostics"
        assert data.report_date == "12/03/2024"

    def test_treatment_section(self, extractor):
        text = (
            "Diagnosis: Type 2 diabetes\n"
            "Treatment:\n"
            "Tab Metformin 500 mg BD\n"
        )
        data = extractor.extract(text).data

        assert len(data.medications) == 1
        assert data.medications[0].name == "Metformin"
        assert data.medications[0].dosage == "500mg"
        assert data.medications[0].frequency.lower() == "bd"

    def test_json_payload(self, extractor):
        payload = {
            "labResults": [{"name": "Glucose", "value": 180, "unit": "mg/dL", "normalRange": "70-110"}],
            "medications": [{"name": "Metformin", "dose": "500mg", "frequency": "twice daily"}],
            "diagnoses": ["Type 2 diabetes"],
        }
        outcome = extractor.extract(json.dumps(payload))

        assert len(outcome.data.lab_values) == 1
        assert outcome.data.lab_values[0].value == 180
        assert outcome.data.lab_values[0].status == LabStatus.CRITICAL
        assert outcome.data.medications[0].dosage == "500mg"
        assert outcome.data.diagnoses[0].condition == "Type 2 diabetes"
        assert outcome.confidence == pytest.approx(0.95)

    def test_damaged_json_is_repaired_with_penalty(self, extractor):
        damaged = '{"labResults": [{"name": "Glucose", "value": 180, "unit": "mg/dL"}]'

        outcome = extractor.extract(damaged)

        assert len(outcome.data.lab_values) == 1
        assert outcome.confidence == pytest.approx(0.95 - JSON_REPAIR_CONFIDENCE_PENALTY)

    def test_json_rows_for_unknown_parameters_are_skipped(self, extractor):
        payload = {"labResults": [{"name": "Ferritin", "value": 150}, {"name": "Glucose", "value": "n/a"}]}

        outcome = extractor.extract(json.dumps(payload))

        assert outcome.data.lab_values == []

    def test_nothing_found(self, extractor):
        outcome = extractor.extract("Thank you for visiting our wellness centre today.")

        assert not outcome.data.has_real_data
        assert outcome.confidence == pytest.approx(0.60)


# ============================================================================
# Tabular
# ============================================================================

class TestTabularExtractor:

    @pytest.fixture
    def extractor(self, normalizer):
        return TabularExtractor(normalizer)

    def test_pipe_table(self, extractor, sample_table_text):
        outcome = extractor.extract(sample_table_text)
        data = outcome.data

        assert [v.parameter for v in data.lab_values] == ["Glucose Fasting", "Hemoglobin"]
        assert len(data.test_results) == 3
        assert data.lab_values[0].loinc_code

        ferritin = data.test_results[-1]
        assert ferritin.test_name == "Ferritin"
        assert ferritin.status == LabStatus.NORMAL
        assert ferritin.reference_range == "30-400"

    def test_header_row_is_skipped(self, extractor):
        outcome = extractor.extract("Test | Result | Unit\nGlucose | 95 | mg/dL")

        assert len(outcome.data.test_results) == 1

    def test_duplicate_rows_are_merged(self, extractor):
        text = "Glucose | 95 | mg/dL\nGlucose | 95 | mg/dL\nHemoglobin | 13.5 | g/dL"

        assert len(extractor.extract(text).data.lab_values) == 2

    def test_inline_rows(self, extractor):
        outcome = extractor.extract("TSH = 2.5 µIU/mL\nCreatinine - 1.1 mg/dL (0.6-1.2)")

        parameters = [v.parameter for v in outcome.data.lab_values]
        assert "TSH" in parameters
        assert "Serum Creatinine" in parameters

    def test_csv_export(self, extractor):
        text = (
            "Test,Result,Unit,Reference\n"
            "Glucose,95,mg/dL,70-110\n"
            "Hemoglobin,\"13.5\",g/dL,\"12-16\"\n"
            "Creatinine,1.1,mg/dL,0.6-1.2\n"
        )

        data = extractor.extract(text).data

        assert [(v.parameter, v.value) for v in data.lab_values] == [
            ("Glucose Fasting", 95),
            ("Hemoglobin", 13.5),
            ("Serum Creatinine", 1.1),
        ]
        assert data.lab_values[1].unit == "g/dL"

    def test_confidence_is_clamped(self, extractor, sample_table_text):
        assert extractor.extract(sample_table_text).confidence == pytest.approx(0.95)


# ============================================================================
# Narrative
# ============================================================================

class TestNarrativeExtractor:

    @pytest.fixture
    def extractor(self, normalizer):
        return NarrativeExtractor(normalizer)

    def test_negated_findings_are_not_positive(self, extractor, sample_narrative_text):
        data = extractor.extract(sample_narrative_text).data

        negated = {f.text.lower() for f in data.findings if f.negated}
        positive = {d.condition.lower() for d in data.diagnoses}

        assert {"asthma", "chest pain"} <= negated
        assert "hypertension" in positive
        assert "essential hypertension" in positive
        assert not negated & positive
        assert not any(d.negated for d in data.diagnoses)

    def test_note_with_only_negations_has_no_real_data(self, extractor):
        text = "History: Patient denies chest pain and fever.\nNo history of diabetes."

        data = extractor.extract(text).data

        assert data.diagnoses == []
        assert not data.has_real_data
        assert [f.text for f in data.findings if f.negated] == ["chest pain", "fever", "diabetes"]

    def test_positive_findings(self, extractor):
        text = (
            "Chest X-ray shows cardiomegaly. ECG reveals sinus tachycardia.\n"
            "Dengue NS1 positive for antigen. No evidence of pleural effusion."
        )

        findings = [f.text for f in extractor.extract(text).data.findings if f.kind == "finding"]

        assert findings == ["cardiomegaly", "sinus tachycardia", "antigen"]

    def test_negated_positive_cue_is_skipped(self, extractor):
        text = "Findings are not consistent with malignancy. MRI reveals no lesion."

        assert extractor.detect_positive_findings(text) == []

    def test_symptoms_and_medications(self, extractor, sample_narrative_text):
        data = extractor.extract(sample_narrative_text).data

        symptoms = [f.text for f in data.findings if f.kind == "symptom"]
        assert symptoms == ["fatigue", "headache", "dizziness"]
        assert [m.name for m in data.medications] == ["Amlodipine"]

    def test_temporal_observation(self, extractor, sample_narrative_text):
        observations = extractor.extract(sample_narrative_text).data.temporal_observations

        assert len(observations) == 1
        assert observations[0].change == "improved"
        assert observations[0].time_reference == "last visit"
        assert observations[0].score == 1

    def test_negation_list(self, extractor):
        negations = extractor.detect_negations("Patient denies fever, chills and cough.")

        assert [phrase for phrase, _ in negations] == ["fever", "chills", "cough"]

    @pytest.mark.parametrize("word,score", [("worsened", -1), ("stable", 0), ("decreased", 0)])
    def test_temporal_scores(self, extractor, word, score):
        observations = extractor.analyze_temporal(f"Symptoms {word} since last week.")

        assert observations[0].score == score

    def test_no_lab_values_from_bare_numbers(self, extractor, sample_narrative_text):
        assert extractor.extract(sample_narrative_text).data.lab_values == []


# ============================================================================
# Handwritten
# ============================================================================

class TestHandwrittenExtractor:

    @pytest.fixture
    def extractor(self, normalizer, classifier):
        return HandwrittenExtractor(normalizer, specialty_detector=classifier.detect_specialty)

    def test_vitals(self, extractor, sample_handwritten_text):
        vitals = {v.name: v.value for v in extractor.extract(sample_handwritten_text).data.vital_signs}

        assert vitals == {"blood_pressure": "140/90", "pulse": "88"}

    def test_medications(self, extractor, sample_handwritten_text):
        medications = extractor.extract(sample_handwritten_text).data.medications

        assert len(medications) == 1
        assert medications[0].name == "Paracetamol"
        assert medications[0].dosage == "500mg"

    def test_complaints_and_diagnosis(self, extractor, sample_handwritten_text):
        data = extractor.extract(sample_handwritten_text).data

        assert [f.text for f in data.findings] == ["fever", "body ache"]
        assert [d.condition for d in data.diagnoses] == ["viral fever"]

    def test_specialty_trace(self, extractor, sample_handwritten_text):
        traces = extractor.extract(sample_handwritten_text).traceability

        assert len(traces) == 2
        assert traces[1].claim.endswith("cardiology")

    def test_without_specialty_detector(self, normalizer, sample_handwritten_text):
        traces = HandwrittenExtractor(normalizer).extract(sample_handwritten_text).traceability

        assert len(traces) == 1


# ============================================================================
# Registry
# ============================================================================

def test_registry_covers_every_kind(normalizer):
    registry = ExtractorRegistry.build_default(normalizer)

    for kind in StrategyKind:
        assert kind in registry
        assert registry.get(kind).kind == kind


def test_registry_rejects_duplicates(normalizer):
    with pytest.raises(ConfigurationError):
        ExtractorRegistry([
            StructuredExtractor(normalizer),
            StructuredExtractor(normalizer),
            TabularExtractor(normalizer),
            NarrativeExtractor(normalizer),
            HandwrittenExtractor(normalizer),
        ])


def test_registry_rejects_missing_kind(normalizer):
    with pytest.raises(ConfigurationError):
        ExtractorRegistry([StructuredExtractor(normalizer), TabularExtractor(normalizer)])


class ExplodingNarrativeExtractor:
    kind = StrategyKind.NARRATIVE

    def extract(self, text):
        raise KeyError("section")


def test_registry_extract_dispatches(normalizer, sample_lab_text):
    registry = ExtractorRegistry.build_default(normalizer)

    outcome = registry.extract(StrategyKind.STRUCTURED, sample_lab_text)

    assert len(outcome.data.lab_values) == 3


def test_registry_extract_wraps_failures(normalizer):
    registry = ExtractorRegistry([
        StructuredExtractor(normalizer),
        TabularExtractor(normalizer),
        ExplodingNarrativeExtractor(),
        HandwrittenExtractor(normalizer),
    ])

    with pytest.raises(ExtractionError) as excinfo:
        registry.extract(StrategyKind.NARRATIVE, "History of present illness")

    assert excinfo.value.strategy == "narrative"
    assert isinstance(excinfo.value.__cause__, KeyError)
