# ============================================================================
# src/clinical_ingestion/core/context/enums.py
# ============================================================================
"""
Processing Enums
- Acquisition methods
- Parsing strategies and layouts
- Lab value and benchmark statuses
"""

from enum import Enum

class AcquisitionMethod(str, Enum):
    NATIVE = "native"
    PDF_LAYER = "pdf-layer"
    OCR = "ocr"
    INTELLIGENT_FALLBACK = "intelligent-fallback"

class StrategyKind(str, Enum):
    STRUCTURED = "structured"
    TABULAR = "tabular"
    NARRATIVE = "narrative"
    HANDWRITTEN = "handwritten"

class Layout(str, Enum):
    SCAN = "scan"
    EHR_PRINTOUT = "ehr-printout"
    LAB_PDF = "lab-pdf"
    HANDWRITTEN_NOTE = "handwritten-note"

class LabStatus(str, Enum):
    """Extraction-time status of a single lab value."""
    NORMAL = "normal"
    LOW = "low"
    HIGH = "high"
    CRITICAL = "critical"
    BORDERLINE = "borderline"

class BenchmarkStatus(str, Enum):
    """Benchmark-time classification against a regional standard."""
    NORMAL = "normal"
    BORDERLINE = "borderline"
    ABNORMAL = "abnormal"
    CRITICAL = "critical"
