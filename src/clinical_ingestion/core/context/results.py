# ============================================================================
# src/clinical_ingestion/core/context/results.py
# ============================================================================
"""
Pipeline outputs
- TraceabilityRecord: append-only audit entries
- BenchmarkRecord with cohort / regional comparisons
- EnhancedTextAnalysis: degraded path summary
- ParsingResult: terminal artifact handed to callers
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .enums import AcquisitionMethod, BenchmarkStatus, Layout
from .medical_data import ExtractedMedicalData


def clamp_confidence(value: float) -> float:
    return max(0.0, min(1.0, value))


@dataclass(frozen=True)
class TraceabilityRecord:
    claim: str
    source: str
    confidence: float
    database: str
    reference: str

    def __post_init__(self):
        object.__setattr__(self, "confidence", clamp_confidence(self.confidence))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "claim": self.claim,
            "source": self.source,
            "confidence": round(self.confidence, 4),
            "database": self.database,
            "reference": self.reference,
        }


@dataclass(frozen=True)
class CohortComparison:
    name: str
    mean: float
    std_dev: float
    risk_category: str
    z_score: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "mean": self.mean,
            "stdDev": self.std_dev,
            "riskCategory": self.risk_category,
            "zScore": round(self.z_score, 2),
        }


@dataclass(frozen=True)
class RegionalStandard:
    min: float
    max: float
    unit: str
    source: str
    status: BenchmarkStatus
    interpretation: str
    region: str

    @property
    def is_normal(self) -> bool:
        return self.status == BenchmarkStatus.NORMAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "normal": {"min": self.min, "max": self.max},
            "unit": self.unit,
            "source": self.source,
            "status": self.status.value,
            "isNormal": self.is_normal,
            "interpretation": self.interpretation,
            "region": self.region,
        }


@dataclass(frozen=True)
class BenchmarkRecord:
    parameter: str
    patient_value: float
    population_percentile: Optional[int] = None
    age_group_mean: Optional[float] = None
    disease_cohort: Optional[CohortComparison] = None
    regional_standard: Optional[RegionalStandard] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "parameter": self.parameter,
            "patientValue": self.patient_value,
            "populationPercentile": self.population_percentile,
            "ageGroupMean": self.age_group_mean,
            "diseaseSpecificCohort": self.disease_cohort.to_dict() if self.disease_cohort else None,
            "regionalStandards": self.regional_standard.to_dict() if self.regional_standard else None,
        }


@dataclass(frozen=True)
class EnhancedTextAnalysis:
    report_type: str
    summary: str
    key_points: List[str]
    detected_values: Dict[str, Dict[str, Any]]
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reportType": self.report_type,
            "summary": self.summary,
            "keyPoints": list(self.key_points),
            "detectedValues": self.detected_values,
            "confidence": self.confidence,
        }


@dataclass
class SourceMetadata:
    layout: Layout
    quality: float
    acquisition_method: AcquisitionMethod
    language: str = "en"
    specialty: str = "general"
    report_type: str = "general_checkup"
    filename: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "layout": self.layout.value,
            "quality": round(self.quality, 4),
            "language": self.language,
            "medicalSpecialty": self.specialty,
            "acquisitionMethod": self.acquisition_method.value,
            "reportType": self.report_type,
            "filename": self.filename,
        }


@dataclass
class ParsingResult:
    extracted_data: ExtractedMedicalData
    confidence: float
    parsing_method: str
    source_metadata: SourceMetadata
    traceability: List[TraceabilityRecord] = field(default_factory=list)

    # Filled in by later stages
    benchmarks: Optional[List[BenchmarkRecord]] = None
    augmented_report: Optional[str] = None
    fallback_method: bool = False
    message: Optional[str] = None
    enhanced_analysis: Optional[EnhancedTextAnalysis] = None
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self):
        self.confidence = clamp_confidence(self.confidence)

    def add_trace(self, record: TraceabilityRecord) -> None:
        self.traceability.append(record)

    def to_dict(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "extractedData": self.extracted_data.to_dict(),
            "confidence": round(self.confidence, 4),
            "parsingMethod": self.parsing_method,
            "sourceMetadata": self.source_metadata.to_dict(),
            "traceability": [t.to_dict() for t in self.traceability],
            "warnings": list(self.warnings),
        }
        if self.benchmarks is not None:
            payload["benchmarks"] = [b.to_dict() for b in self.benchmarks]
        if self.augmented_report is not None:
            payload["augmentedReport"] = self.augmented_report
        if self.fallback_method:
            payload["fallbackMethod"] = True
        if self.message:
            payload["message"] = self.message
        if self.enhanced_analysis is not None:
            payload["enhancedAnalysis"] = self.enhanced_analysis.to_dict()
        return payload
