# ============================================================================
# src/clinical_ingestion/strategies/registry.py
# ============================================================================
"""
Extractor Registry

Tagged dispatch from StrategyKind to an extractor instance. The classifier
produces the tag, the registry resolves it; adding a strategy means adding
an enum member and registering an object with a matching `kind`.
"""

import logging
from typing import Dict, Iterable

from ..core.context.enums import StrategyKind
from ..normalization.entity_normalizer import MedicalEntityNormalizer
from ..utils.exceptions import ConfigurationError, ExtractionError
from .base import ExtractionOutcome, StrategyExtractor
from .handwritten import HandwrittenExtractor
from .narrative import NarrativeExtractor
from .structured import StructuredExtractor
from .tabular import TabularExtractor

logger = logging.getLogger(__name__)


class ExtractorRegistry:
    """Immutable StrategyKind -> extractor map covering every kind."""

    def __init__(self, extractors: Iterable[StrategyExtractor]):
        self._extractors: Dict[StrategyKind, StrategyExtractor] = {}
        for extractor in extractors:
            if extractor.kind in self._extractors:
                raise ConfigurationError(f"Duplicate extractor for {extractor.kind.value}")
            self._extractors[extractor.kind] = extractor

        missing = [kind.value for kind in StrategyKind if kind not in self._extractors]
        if missing:
            raise ConfigurationError(f"No extractor registered for: {', '.join(missing)}")

    @classmethod
    def build_default(
        cls,
        normalizer: MedicalEntityNormalizer,
        specialty_detector=None,
    ) -> "ExtractorRegistry":
        """All four built-in extractors sharing one normalizer."""
        return cls([
            StructuredExtractor(normalizer),
            TabularExtractor(normalizer),
            NarrativeExtractor(normalizer),
            HandwrittenExtractor(normalizer, specialty_detector=specialty_detector),
        ])

    def get(self, kind: StrategyKind) -> StrategyExtractor:
        return self._extractors[kind]

    def extract(self, kind: StrategyKind, text: str) -> ExtractionOutcome:
        """
        Run the extractor registered for `kind`.

        Raises:
            ExtractionError: the extractor failed; the original error is chained
        """
        try:
            return self._extractors[kind].extract(text)
        except ExtractionError:
            raise
        except Exception as e:
            raise ExtractionError(str(e), strategy=kind.value) from e

    def __contains__(self, kind: StrategyKind) -> bool:
        return kind in self._extractors

    def kinds(self):
        return list(self._extractors)
