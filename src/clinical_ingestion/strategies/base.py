# ============================================================================
# src/clinical_ingestion/strategies/base.py
# ============================================================================
"""
Strategy extractor capability.

Every extractor exposes a `kind` tag and `extract(text) -> ExtractionOutcome`.
There is no base class: the registry dispatches on StrategyKind, and any
object satisfying StrategyExtractor can be registered.
"""

from dataclasses import dataclass, field
from typing import List, Protocol

from ..config import threshold_settings
from ..core.context.enums import StrategyKind
from ..core.context.medical_data import ExtractedMedicalData
from ..core.context.results import TraceabilityRecord
from ..normalization.status import clamp_computed_confidence, count_based_confidence


@dataclass
class ExtractionOutcome:
    data: ExtractedMedicalData
    confidence: float
    traceability: List[TraceabilityRecord] = field(default_factory=list)
    layout_quality: float = 1.0


class StrategyExtractor(Protocol):
    kind: StrategyKind

    def extract(self, text: str) -> ExtractionOutcome:
        ...


def computed_confidence(data: ExtractedMedicalData, baseline: float) -> float:
    """
    Confidence for an extraction result.

    baseline when anything was extracted, otherwise 0.5 + 0.1 per entity;
    clamped to the computed band either way. Results made up only of
    auto-detected lab values are capped at AUTO_DETECT_CONFIDENCE.
    """
    if data.lab_values and all(v.auto_detected for v in data.lab_values):
        return min(
            clamp_computed_confidence(baseline),
            threshold_settings.AUTO_DETECT_CONFIDENCE,
        )

    if data.entity_count > 0:
        return clamp_computed_confidence(baseline)

    return count_based_confidence(data.entity_count)
