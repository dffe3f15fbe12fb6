# ============================================================================
# src/clinical_ingestion/strategies/__init__.py
# ============================================================================
"""
Strategy extractors, one per StrategyKind, dispatched through the registry.
"""

from .base import ExtractionOutcome, StrategyExtractor, computed_confidence
from .structured import StructuredExtractor
from .tabular import TabularExtractor
from .narrative import NarrativeExtractor
from .handwritten import HandwrittenExtractor
from .registry import ExtractorRegistry
