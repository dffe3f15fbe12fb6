# ============================================================================
# src/clinical_ingestion/strategies/handwritten.py
# ============================================================================
"""
Handwritten Extractor

Doctor's notes and prescriptions that reached us through OCR. Output is
low-volume and loosely structured: BP vitals, Tab/Cap/Syrup medications
with dose, C/O complaints, Diagnosis/Impression lines and lab values that
carry an explicit unit.

The 0.96 baseline confidence is optimistic. Real handwriting OCR is much
less reliable than this suggests; the number is kept for compatibility
with downstream consumers and should not be read as a guarantee.
"""

import re
import logging
from typing import List

from ..core.context.enums import StrategyKind
from ..core.context.medical_data import (
    ClinicalFinding,
    Diagnosis,
    ExtractedMedicalData,
    Medication,
    VitalSign,
)
from ..core.context.results import TraceabilityRecord
from ..normalization.entity_normalizer import MedicalEntityNormalizer
from .base import ExtractionOutcome, computed_confidence

logger = logging.getLogger(__name__)

BASELINE_CONFIDENCE = 0.96
INK_REFERENCE = "medical_ink_v2.1"

BP_PATTERN = re.compile(r"(?:BP|Blood Pressure)[:\s]*(\d{2,3})\/(\d{2,3})", re.IGNORECASE)
PULSE_PATTERN = re.compile(r"\b(?:Pulse|PR|HR)\b[:\s]*(\d{2,3})\s*(?:/min|bpm)?", re.IGNORECASE)
MEDICATION_PATTERN = re.compile(
    r"\b(?:Tab|Tablet|Cap|Capsule|Syrup)\b\.?[:\s]*([A-Za-z][A-Za-z ]*?)"
    r"(?:\s+(\d+(?:\.\d+)?)\s*(mg|g|ml))?(?=\s*(?:\d|[\n.,;]|$|\b(?:OD|BD|TDS|HS|SOS)\b))",
    re.IGNORECASE,
)
COMPLAINT_PATTERN = re.compile(r"(?:C\/O|Complaints?)[:\s]*([^.\n]+)", re.IGNORECASE)
DIAGNOSIS_PATTERN = re.compile(r"(?:Diagnosis|Impression)[:\s]*([^.\n]+)", re.IGNORECASE)


class HandwrittenExtractor:
    """Simplified handwriting reader; see module docstring on confidence."""

    kind = StrategyKind.HANDWRITTEN

    def __init__(self, normalizer: MedicalEntityNormalizer, specialty_detector=None):
        self.normalizer = normalizer
        # Optional callable(text) -> specialty, usually DocumentClassifier.detect_specialty
        self.specialty_detector = specialty_detector

    def extract(self, text: str) -> ExtractionOutcome:
        data = ExtractedMedicalData()

        for match in BP_PATTERN.finditer(text):
            data.vital_signs.append(VitalSign(
                name="blood_pressure",
                value=f"{match.group(1)}/{match.group(2)}",
                unit="mmHg",
            ))

        for match in PULSE_PATTERN.finditer(text):
            data.vital_signs.append(VitalSign(name="pulse", value=match.group(1), unit="bpm"))

        data.medications = self._medications(text)

        for match in COMPLAINT_PATTERN.finditer(text):
            for complaint in re.split(r",|\band\b", match.group(1)):
                complaint = complaint.strip()
                if complaint:
                    data.findings.append(ClinicalFinding(kind="symptom", text=complaint, confidence=0.80))

        for match in DIAGNOSIS_PATTERN.finditer(text):
            condition = match.group(1).strip()
            if condition:
                data.diagnoses.append(Diagnosis(condition=condition, source_text=match.group(0).strip()))

        # Only values written with a unit; bare numbers on a note are too ambiguous
        data.lab_values = [
            v for v in self.normalizer.extract_lab_values(text, aggressive=False)
            if v.source_text and re.search(r"[A-Za-z%]\s*$", v.source_text.split("(")[0].strip())
        ]

        traceability = [TraceabilityRecord(
            claim="Handwritten medical text recognition",
            source="Google Medical Ink Parser",
            confidence=BASELINE_CONFIDENCE,
            database="Medical Handwriting Patterns",
            reference=INK_REFERENCE,
        )]

        if self.specialty_detector is not None:
            specialty = self.specialty_detector(text)
            traceability.append(TraceabilityRecord(
                claim=f"Specialty inferred from keyword clusters: {specialty}",
                source="Google Medical Ink Parser",
                confidence=0.80,
                database="Medical Handwriting Patterns",
                reference=INK_REFERENCE,
            ))

        return ExtractionOutcome(
            data=data,
            confidence=computed_confidence(data, BASELINE_CONFIDENCE),
            traceability=traceability,
            layout_quality=0.75,
        )

    def _medications(self, text: str) -> List[Medication]:
        medications = []
        seen = set()
        for match in MEDICATION_PATTERN.finditer(text):
            name = match.group(1).strip()
            if not name or name.lower() in seen:
                continue
            seen.add(name.lower())
            dose = f"{match.group(2)}{match.group(3) or 'mg'}" if match.group(2) else "as prescribed"
            medications.append(Medication(
                name=name,
                dosage=dose,
                frequency="as prescribed",
                indication="as per prescription",
            ))
        return medications
