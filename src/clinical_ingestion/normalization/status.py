# ============================================================================
# src/clinical_ingestion/normalization/status.py
# ============================================================================
"""
Extraction-time lab status and confidence banding.

classify_lab_status is the only place a LabValue's status is decided. It
depends on the value and the reference range alone.

Benchmark-time classification uses different thresholds and lives in
benchmarking/status.py; the two are intentionally separate.
"""

from ..config import threshold_settings
from ..core.context.enums import LabStatus
from ..utils.exceptions import ReferenceRangeError

CRITICAL_LOW_FACTOR = 0.5
CRITICAL_HIGH_FACTOR = 1.5
BORDERLINE_LOW_FACTOR = 1.1
BORDERLINE_HIGH_FACTOR = 0.9


def classify_lab_status(value: float, ref_min: float, ref_max: float) -> LabStatus:
    """
    Classify a lab value against its reference range.

    critical   value < 0.5*min or value > 1.5*max
    low        value < min
    high       value > max
    borderline value <= 1.1*min or value >= 0.9*max (inside the range)
    normal     otherwise

    Raises:
        ReferenceRangeError: if ref_min >= ref_max
    """
    if not ref_min < ref_max:
        raise ReferenceRangeError(ref_min, ref_max)

    if value < ref_min * CRITICAL_LOW_FACTOR or value > ref_max * CRITICAL_HIGH_FACTOR:
        return LabStatus.CRITICAL
    if value < ref_min:
        return LabStatus.LOW
    if value > ref_max:
        return LabStatus.HIGH
    if value <= ref_min * BORDERLINE_LOW_FACTOR or value >= ref_max * BORDERLINE_HIGH_FACTOR:
        return LabStatus.BORDERLINE
    return LabStatus.NORMAL


def clamp_computed_confidence(value: float, floor: float = None, ceiling: float = None) -> float:
    """Clamp a computed extraction confidence into the configured band (default [0.60, 0.95])."""
    floor = threshold_settings.COMPUTED_CONFIDENCE_FLOOR if floor is None else floor
    ceiling = threshold_settings.COMPUTED_CONFIDENCE_CEILING if ceiling is None else ceiling
    return max(floor, min(ceiling, value))


def count_based_confidence(entity_count: int) -> float:
    """Confidence estimate from the number of extracted entities: 0.5 + 0.1 per entity, banded."""
    return clamp_computed_confidence(0.5 + 0.1 * entity_count)
