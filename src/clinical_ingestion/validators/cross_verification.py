# ============================================================================
# src/clinical_ingestion/validators/cross_verification.py
# ============================================================================
"""
Cross-Verification

Checks extracted lab values against the acquired text they came from and
scales extraction confidence by how much of the extraction could be found
again:

    confidence *= 0.7 + 0.3 * verified_ratio

An extraction that claims nothing has nothing unverified (ratio 1.0).
"""

import re
import logging
from typing import List, Optional, Tuple

from ..config import threshold_settings, ThresholdSettings
from ..core.context.medical_data import ExtractedMedicalData, LabValue
from ..core.context.results import TraceabilityRecord, clamp_confidence

logger = logging.getLogger(__name__)

VALIDATION_REFERENCE = "vitalis_validation_engine_v1.0"
VALIDATOR_REFERENCE = "extraction_validator_v1.0"


def _squash(text: str) -> str:
    return re.sub(r"\s+", " ", text).strip().lower()


def _found_in(lab_value: LabValue, haystack: str) -> bool:
    if lab_value.source_text and _squash(lab_value.source_text) in haystack:
        return True
    # Values rebuilt from JSON or table cells: look for the number itself
    return re.search(rf"(?<![\d.]){re.escape(f'{lab_value.value:g}')}(?![\d])", haystack) is not None


class CrossVerifier:
    """Verifies extractions against the original text."""

    def __init__(self, thresholds: Optional[ThresholdSettings] = None):
        self.thresholds = thresholds or threshold_settings

    def verified_ratio(self, data: ExtractedMedicalData, original_text: str) -> float:
        if not data.lab_values:
            return 1.0

        haystack = _squash(original_text)
        verified = 0
        for lab_value in data.lab_values:
            if _found_in(lab_value, haystack):
                verified += 1
            else:
                logger.warning(f"Finding not verified in original: {lab_value.parameter} {lab_value.value}")

        return verified / len(data.lab_values)

    def verify(
        self,
        data: ExtractedMedicalData,
        confidence: float,
        original_text: str,
    ) -> Tuple[float, List[TraceabilityRecord]]:
        """
        Returns:
            (adjusted_confidence, traceability records to append)
        """
        ratio = self.verified_ratio(data, original_text)
        adjusted = clamp_confidence(confidence * (0.7 + 0.3 * ratio))

        records = [TraceabilityRecord(
            claim="Cross-validation against original document layout",
            source="Document verification engine",
            confidence=ratio,
            database="Original Document Text",
            reference=VALIDATION_REFERENCE,
        )]

        if adjusted < self.thresholds.CROSS_VERIFY_THRESHOLD:
            records.append(TraceabilityRecord(
                claim="Low confidence extraction",
                source="Validation Layer",
                confidence=adjusted,
                database="ModelID",
                reference=VALIDATOR_REFERENCE,
            ))

        return adjusted, records
