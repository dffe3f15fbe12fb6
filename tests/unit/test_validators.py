# ============================================================================
# FILE: tests/unit/test_validators.py
# ============================================================================
"""
Unit tests for cross-verification and the confidence gate
"""

import pytest

from src.clinical_ingestion.core.context import AcquiredText, ExtractedMedicalData, LabValue, ParsingResult
from src.clinical_ingestion.core.context.enums import AcquisitionMethod, Layout
from src.clinical_ingestion.core.context.medical_data import Diagnosis
from src.clinical_ingestion.core.context.results import SourceMetadata
from src.clinical_ingestion.validators.confidence_gate import DEGRADED_MESSAGE, ConfidenceGate
from src.clinical_ingestion.validators.cross_verification import CrossVerifier


def _result(data=None, confidence=0.9):
    return ParsingResult(
        extracted_data=data or ExtractedMedicalData(),
        confidence=confidence,
        parsing_method="structured",
        source_metadata=SourceMetadata(
            layout=Layout.LAB_PDF, quality=0.8, acquisition_method=AcquisitionMethod.NATIVE,
        ),
    )


def _acquired(text):
    return AcquiredText(text=text, quality_score=0.8, method=AcquisitionMethod.NATIVE)


# ============================================================================
# Cross-verification
# ============================================================================

class TestCrossVerifier:

    @pytest.fixture
    def verifier(self):
        return CrossVerifier()

    def test_verified_source_text(self, verifier):
        data = ExtractedMedicalData(lab_values=[
            LabValue(parameter="Glucose Fasting", value=95, unit="mg/dL", source_text="Glucose:  95 mg/dL"),
        ])

        confidence, records = verifier.verify(data, 0.9, "Report\nGlucose: 95 mg/dL\n")

        assert confidence == pytest.approx(0.9)
        assert records[0].confidence == 1.0
        # 0.9 is still under the cross-verify threshold
        assert records[-1].claim == "Low confidence extraction"

    def test_value_found_without_source_text(self, verifier):
        data = ExtractedMedicalData(lab_values=[
            LabValue(parameter="Glucose Fasting", value=95, unit="mg/dL"),
        ])

        assert verifier.verified_ratio(data, "Glucose | 95 | mg/dL") == 1.0

    def test_value_is_not_matched_inside_other_numbers(self, verifier):
        data = ExtractedMedicalData(lab_values=[
            LabValue(parameter="Glucose Fasting", value=95, unit="mg/dL"),
        ])

        assert verifier.verified_ratio(data, "Glucose 195 and 1.95") == 0.0

    def test_unverified_values_lower_confidence(self, verifier):
        data = ExtractedMedicalData(lab_values=[
            LabValue(parameter="Glucose Fasting", value=95, unit="mg/dL"),
            LabValue(parameter="Hemoglobin", value=13.5, unit="g/dL"),
        ])

        confidence, _ = verifier.verify(data, 0.9, "Glucose 95 mg/dL")

        assert confidence == pytest.approx(0.9 * 0.85)

    def test_nothing_claimed_is_fully_verified(self, verifier):
        confidence, records = verifier.verify(ExtractedMedicalData(), 0.6, "anything")

        assert confidence == pytest.approx(0.6)
        assert records[0].confidence == 1.0

    def test_high_confidence_has_single_record(self, verifier):
        _, records = verifier.verify(ExtractedMedicalData(), 0.99, "anything")

        assert len(records) == 1


# ============================================================================
# Confidence gate
# ============================================================================

class TestConfidenceGate:

    @pytest.fixture
    def gate(self, classifier):
        return ConfidenceGate(classifier.detect_report_type)

    def test_low_confidence_without_data_degrades(self, gate):
        result = _result(confidence=0.55)

        decision = gate.inspect(result, _acquired("Blood sugar: 180 mg/dl"))

        assert decision.degraded is True
        assert decision.has_real_data is False
        assert result.fallback_method is True
        assert result.message == DEGRADED_MESSAGE

        analysis = result.enhanced_analysis
        assert analysis is decision.enhanced_analysis
        assert analysis.report_type == "diabetes_panel"
        assert analysis.confidence == pytest.approx(0.50)
        assert analysis.detected_values["glucose_fasting"]["value"] == 180
        assert "Medical patterns recognized" in analysis.key_points
        assert result.source_metadata.report_type == "diabetes_panel"

    def test_degraded_analysis_without_glucose(self, gate):
        result = _result(confidence=0.30)

        gate.inspect(result, _acquired("Thank you for visiting"))

        assert result.enhanced_analysis.detected_values == {}
        assert result.enhanced_analysis.report_type == "general_checkup"
        assert "lab-pdf" in result.enhanced_analysis.summary

    def test_real_data_always_continues(self, gate):
        data = ExtractedMedicalData(diagnoses=[Diagnosis(condition="Hypertension")])
        result = _result(data, confidence=0.30)

        decision = gate.inspect(result, _acquired("Diagnosis: Hypertension"))

        assert decision.degraded is False
        assert decision.has_real_data is True
        assert result.fallback_method is False
        assert result.enhanced_analysis is None

    def test_negated_diagnosis_is_not_real_data(self, gate):
        data = ExtractedMedicalData(diagnoses=[Diagnosis(condition="Diabetes", negated=True)])
        result = _result(data, confidence=0.55)

        decision = gate.inspect(result, _acquired("No history of diabetes"))

        assert decision.degraded is True
        assert decision.has_real_data is False

    @pytest.mark.parametrize("text,value", [
        ("Glucose,95,mg/dL,70-110", 95),
        ("Glucose, 95", 95),
        ("Fasting blood glucose: 126 mg/dl", 126),
        ("Blood sugar 180.", 180),
        ("Glucose: 5.4", 5.4),
    ])
    def test_glucose_detection_in_degraded_text(self, gate, text, value):
        analysis = gate.enhanced_text_analysis(text, "lab-pdf")

        assert analysis.detected_values["glucose_fasting"]["value"] == pytest.approx(value)

    def test_confident_result_without_data_continues(self, gate):
        result = _result(confidence=0.75)

        decision = gate.inspect(result, _acquired("Thank you for visiting"))

        assert decision.degraded is False
        assert decision.reason == "confidence above threshold"

    def test_threshold_is_exclusive(self, gate):
        result = _result(confidence=0.70)

        assert gate.inspect(result, _acquired("text")).degraded is False

    def test_degraded_result_serializes_fallback_fields(self, gate):
        result = _result(confidence=0.55)
        gate.inspect(result, _acquired("Blood sugar: 180 mg/dl"))

        payload = result.to_dict()

        assert payload["fallbackMethod"] is True
        assert payload["message"] == DEGRADED_MESSAGE
        assert payload["enhancedAnalysis"]["confidence"] == pytest.approx(0.50)
