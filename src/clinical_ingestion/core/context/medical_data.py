# ============================================================================
# src/clinical_ingestion/core/context/medical_data.py
# ============================================================================
"""
Canonical medical record produced by the strategy extractors
- LabValue (immutable, created by the normalizer)
- TestResult, Medication, Diagnosis, ClinicalFinding, TemporalObservation, VitalSign
- ExtractedMedicalData: ordered collections owned by one pipeline run
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .enums import LabStatus


@dataclass(frozen=True)
class LabValue:
    parameter: str
    value: float
    unit: str
    reference_min: Optional[float] = None
    reference_max: Optional[float] = None
    status: LabStatus = LabStatus.NORMAL
    flagged: bool = False
    auto_detected: bool = False
    loinc_code: Optional[str] = None
    source_text: Optional[str] = None

    @property
    def normal_range(self) -> str:
        if self.reference_min is None or self.reference_max is None:
            return ""
        return f"{self.reference_min:g}-{self.reference_max:g}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameter": self.parameter,
            "value": self.value,
            "unit": self.unit,
            "normalRange": self.normal_range,
            "referenceMin": self.reference_min,
            "referenceMax": self.reference_max,
            "status": self.status.value,
            "flagged": self.flagged,
            "autoDetected": self.auto_detected,
            "loincCode": self.loinc_code,
        }


@dataclass
class TestResult:
    __test__ = False  # not a pytest class

    test_name: str
    value: Any
    unit: str = ""
    reference_range: str = ""
    status: LabStatus = LabStatus.NORMAL
    category: str = "laboratory"
    loinc_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "testName": self.test_name,
            "value": self.value,
            "unit": self.unit,
            "referenceRange": self.reference_range,
            "status": self.status.value,
            "category": self.category,
            "loincCode": self.loinc_code,
        }


@dataclass
class Medication:
    name: str
    dosage: str = ""
    frequency: str = ""
    duration: str = ""
    indication: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "dosage": self.dosage,
            "frequency": self.frequency,
            "duration": self.duration,
            "indication": self.indication,
        }


@dataclass
class Diagnosis:
    condition: str
    negated: bool = False
    source_text: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"condition": self.condition, "negated": self.negated}


@dataclass
class ClinicalFinding:
    kind: str  # "symptom", "condition", "finding"
    text: str
    negated: bool = False
    confidence: float = 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "text": self.text,
            "negated": self.negated,
            "confidence": self.confidence,
        }


@dataclass
class TemporalObservation:
    change: str  # improved, worsened, stable, increased, decreased
    time_reference: str = ""
    score: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"change": self.change, "timeReference": self.time_reference, "score": self.score}


@dataclass
class VitalSign:
    name: str
    value: str
    unit: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "value": self.value, "unit": self.unit}


@dataclass
class ExtractedMedicalData:
    lab_values: List[LabValue] = field(default_factory=list)
    test_results: List[TestResult] = field(default_factory=list)
    diagnoses: List[Diagnosis] = field(default_factory=list)
    medications: List[Medication] = field(default_factory=list)
    findings: List[ClinicalFinding] = field(default_factory=list)
    temporal_observations: List[TemporalObservation] = field(default_factory=list)
    vital_signs: List[VitalSign] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    sections: Dict[str, str] = field(default_factory=dict)

    report_date: Optional[str] = None
    doctor_name: Optional[str] = None
    hospital_name: Optional[str] = None

    @property
    def has_real_data(self) -> bool:
        positive_diagnoses = [d for d in self.diagnoses if not d.negated]
        return len(self.lab_values) + len(self.test_results) + len(positive_diagnoses) > 0

    @property
    def entity_count(self) -> int:
        return (
            len(self.lab_values) + len(self.test_results) + len(self.diagnoses)
            + len(self.medications) + len(self.findings) + len(self.vital_signs)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "labValues": [v.to_dict() for v in self.lab_values],
            "testResults": [t.to_dict() for t in self.test_results],
            "diagnoses": [d.to_dict() for d in self.diagnoses],
            "medications": [m.to_dict() for m in self.medications],
            "findings": [f.to_dict() for f in self.findings],
            "temporalObservations": [t.to_dict() for t in self.temporal_observations],
            "vitalSigns": [v.to_dict() for v in self.vital_signs],
            "recommendations": list(self.recommendations),
            "sections": dict(self.sections),
            "reportDate": self.report_date,
            "doctorName": self.doctor_name,
            "hospitalName": self.hospital_name,
        }
