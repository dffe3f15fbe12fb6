# ============================================================================
# src/clinical_ingestion/benchmarking/__init__.py
# ============================================================================
"""
Benchmarking against population cohorts and regional reference standards.
"""

from .engine import BenchmarkingEngine
from .population import PopulationReferenceStore
from .screening import screening_recommendations
from .standards_store import ReferenceRange, ReferenceStandardsStore
from .status import classify_and_interpret, classify_benchmark_status, interpret_benchmark_status

__all__ = [
    "BenchmarkingEngine",
    "PopulationReferenceStore",
    "ReferenceRange",
    "ReferenceStandardsStore",
    "classify_and_interpret",
    "classify_benchmark_status",
    "interpret_benchmark_status",
    "screening_recommendations",
]
