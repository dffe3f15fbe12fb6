# ============================================================================
# src/clinical_ingestion/benchmarking/status.py
# ============================================================================
"""
Benchmark-time status against a regional standard.

Not the same function as normalization.status.classify_lab_status: the
critical-low factor is 0.7 here (0.5 at extraction time) and there is no
low/high split. Both are kept as separate contracts.

    critical    value < 0.7*min or value > 1.5*max
    abnormal    value < min or value > max
    borderline  value < 1.1*min or value > 0.9*max
    normal      otherwise
"""

from typing import Tuple

from ..core.context.enums import BenchmarkStatus
from ..utils.exceptions import ReferenceRangeError

CRITICAL_LOW_FACTOR = 0.7
CRITICAL_HIGH_FACTOR = 1.5
BORDERLINE_LOW_FACTOR = 1.1
BORDERLINE_HIGH_FACTOR = 0.9


def classify_benchmark_status(value: float, ref_min: float, ref_max: float) -> BenchmarkStatus:
    if not ref_min < ref_max:
        raise ReferenceRangeError(ref_min, ref_max)

    if value < ref_min * CRITICAL_LOW_FACTOR or value > ref_max * CRITICAL_HIGH_FACTOR:
        return BenchmarkStatus.CRITICAL
    if value < ref_min or value > ref_max:
        return BenchmarkStatus.ABNORMAL
    if value < ref_min * BORDERLINE_LOW_FACTOR or value > ref_max * BORDERLINE_HIGH_FACTOR:
        return BenchmarkStatus.BORDERLINE
    return BenchmarkStatus.NORMAL


def interpret_benchmark_status(
    status: BenchmarkStatus, ref_min: float, ref_max: float, unit: str
) -> str:
    """Human-readable interpretation for a benchmark status."""
    span = f"({ref_min:g}-{ref_max:g} {unit})".replace(" )", ")")
    return {
        BenchmarkStatus.CRITICAL: f"Value significantly outside normal range {span}",
        BenchmarkStatus.ABNORMAL: f"Value outside normal range {span}",
        BenchmarkStatus.BORDERLINE: f"Value at borderline of normal range {span}",
        BenchmarkStatus.NORMAL: f"Value within normal range {span}",
    }[status]


def classify_and_interpret(
    value: float, ref_min: float, ref_max: float, unit: str
) -> Tuple[BenchmarkStatus, str]:
    status = classify_benchmark_status(value, ref_min, ref_max)
    return status, interpret_benchmark_status(status, ref_min, ref_max, unit)
