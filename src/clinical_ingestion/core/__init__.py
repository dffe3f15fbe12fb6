# ============================================================================
# src/clinical_ingestion/core/__init__.py
# ============================================================================
"""
Core components for the clinical ingestion engine.

The pipeline and its services are imported from their own modules
(core.pipeline, core.services); this package only re-exports the data model.
"""

from .context import (
    AcquiredText,
    DocumentClassification,
    ExtractedMedicalData,
    LabValue,
    ParsingResult,
    PatientContext,
    RawDocument,
)
