# ============================================================================
# src/clinical_ingestion/config/thresholds_config.py
# ============================================================================
"""
Confidence Thresholds
- Text acquisition acceptance
- Computed confidence band
- Cross-verification and confidence gate
- Fallback confidences
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings

class ThresholdSettings(BaseSettings):
    MIN_PDF_TEXT_CHARS: int = Field(
        default=20,
        ge=0,
        description="Cleaned PDF text layer shorter than this is treated as empty and sent to OCR"
    )
    MIN_OCR_TEXT_CHARS: int = Field(
        default=10,
        ge=0,
        description="OCR output shorter than this counts as near-empty"
    )
    MIN_OFFICE_PRINTABLE_RATIO: float = Field(
        default=0.85,
        ge=0.0, le=1.0,
        description="Share of printable characters required to accept a raw office-document decode"
    )
    COMPUTED_CONFIDENCE_FLOOR: float = Field(
        default=0.60,
        ge=0.0, le=1.0,
        description="Lower bound for computed extraction confidences"
    )
    COMPUTED_CONFIDENCE_CEILING: float = Field(
        default=0.95,
        ge=0.0, le=1.0,
        description="Upper bound for computed extraction confidences"
    )
    CROSS_VERIFY_THRESHOLD: float = Field(
        default=0.98,
        ge=0.0, le=1.0,
        description="Below this, cross-verification records a low-confidence trace"
    )
    GATE_CONFIDENCE_THRESHOLD: float = Field(
        default=0.70,
        ge=0.0, le=1.0,
        description="Results with no real data and confidence below this take the degraded path"
    )
    FALLBACK_CONFIDENCE: float = Field(
        default=0.25,
        ge=0.0, le=1.0,
        description="Confidence assigned to results built on intelligent-fallback text"
    )
    ENHANCED_ANALYSIS_CONFIDENCE: float = Field(
        default=0.50,
        ge=0.0, le=1.0,
        description="Confidence of the degraded enhanced text analysis"
    )
    AUTO_DETECT_CONFIDENCE: float = Field(
        default=0.60,
        ge=0.0, le=1.0,
        description="Confidence of values found by aggressive bare-number extraction"
    )
    MIN_TABULAR_ROWS: int = Field(
        default=2,
        ge=1,
        description="Delimited rows needed before a document is classified as tabular"
    )

    @model_validator(mode="after")
    def check_band(self):
        if self.COMPUTED_CONFIDENCE_FLOOR > self.COMPUTED_CONFIDENCE_CEILING:
            raise ValueError("COMPUTED_CONFIDENCE_FLOOR must not exceed COMPUTED_CONFIDENCE_CEILING")
        return self

threshold_settings = ThresholdSettings()
