# ============================================================================
# src/clinical_ingestion/core/context/__init__.py
# ============================================================================
"""
Data model shared by every pipeline stage.
"""

from .enums import (
    AcquisitionMethod,
    StrategyKind,
    Layout,
    LabStatus,
    BenchmarkStatus,
)
from .document import PatientContext, RawDocument, AcquiredText, DocumentClassification
from .medical_data import (
    LabValue,
    TestResult,
    Medication,
    Diagnosis,
    ClinicalFinding,
    TemporalObservation,
    VitalSign,
    ExtractedMedicalData,
)
from .results import (
    clamp_confidence,
    TraceabilityRecord,
    CohortComparison,
    RegionalStandard,
    BenchmarkRecord,
    EnhancedTextAnalysis,
    SourceMetadata,
    ParsingResult,
)
