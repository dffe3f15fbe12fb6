# ============================================================================
# src/clinical_ingestion/classifiers/document_classifier.py
# ============================================================================
"""
Document Classifier

Decides which strategy extractor reads a document. Ordered rules, first
hit wins:

1. HANDWRITTEN: handwriting indicators, or metadata flag "handwritten"
2. TABULAR: at least MIN_TABULAR_ROWS pipe-, tab- or comma-delimited rows
3. NARRATIVE: clinical section markers (history, examination, impression)
4. Filename hint (prescription, ecg, lab...) when the text gave no signal
5. STRUCTURED: everything else

Layout follows the strategy, except that structured text recovered by OCR
is reported as a scan.

Pure and deterministic: same text and metadata, same verdict. All
patterns and keyword clusters live in constants/classification_rules.py.
"""

import re
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..config import threshold_settings, ThresholdSettings
from ..constants.classification_rules import (
    DEFAULT_REPORT_TYPE,
    DEFAULT_SPECIALTY,
    FILENAME_STRATEGY_HINTS,
    HANDWRITTEN_PATTERNS,
    NARRATIVE_PATTERNS,
    REPORT_TYPE_KEYWORDS,
    SPECIALTY_KEYWORDS,
    TABULAR_ROW_PATTERNS,
)
from ..core.context.document import DocumentClassification
from ..core.context.enums import AcquisitionMethod, Layout, StrategyKind

logger = logging.getLogger(__name__)

STRATEGY_LAYOUTS = {
    StrategyKind.HANDWRITTEN: Layout.HANDWRITTEN_NOTE,
    StrategyKind.TABULAR: Layout.LAB_PDF,
    StrategyKind.NARRATIVE: Layout.EHR_PRINTOUT,
    StrategyKind.STRUCTURED: Layout.LAB_PDF,
}


def _keyword_pattern(keyword: str) -> re.Pattern:
    return re.compile(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?![a-z0-9])", re.IGNORECASE)


class DocumentClassifier:
    """
    Rule-based document classifier.

    Patterns are compiled once at construction; instances are immutable
    and can be shared across pipeline runs.
    """

    def __init__(self, thresholds: Optional[ThresholdSettings] = None):
        self.thresholds = thresholds or threshold_settings

        self.handwritten_patterns = [re.compile(p, re.IGNORECASE) for p in HANDWRITTEN_PATTERNS]
        self.tabular_patterns = [re.compile(p, re.MULTILINE) for p in TABULAR_ROW_PATTERNS]
        self.narrative_patterns = [re.compile(p, re.IGNORECASE) for p in NARRATIVE_PATTERNS]

        self.specialty_patterns: List[Tuple[str, List[re.Pattern]]] = [
            (specialty, [_keyword_pattern(k) for k in keywords])
            for specialty, keywords in SPECIALTY_KEYWORDS.items()
        ]
        self.report_type_patterns: List[Tuple[str, List[re.Pattern]]] = [
            (report_type, [_keyword_pattern(k) for k in keywords])
            for report_type, keywords in REPORT_TYPE_KEYWORDS
        ]

    def classify(
        self,
        text: str,
        metadata: Optional[Dict[str, Any]] = None,
        acquisition_method: Optional[AcquisitionMethod] = None,
        filename: Optional[str] = None,
    ) -> DocumentClassification:
        """
        Classify document text.

        Args:
            text: Normalized document text
            metadata: Optional hints; {"handwritten": True} forces handwritten
            acquisition_method: How the text was obtained (OCR changes layout)
            filename: Original filename, a tie-breaker for text with no strategy signal

        Returns:
            DocumentClassification
        """
        metadata = metadata or {}
        text = text or ""

        strategy, indicators = self._select_strategy(text, metadata, filename)

        layout = STRATEGY_LAYOUTS[strategy]
        if strategy == StrategyKind.STRUCTURED and acquisition_method == AcquisitionMethod.OCR:
            layout = Layout.SCAN

        specialty = self.detect_specialty(text)

        logger.debug(
            f"Classified as {strategy.value} ({layout.value}, {specialty}); "
            f"indicators: {indicators}"
        )

        return DocumentClassification(
            strategy=strategy,
            layout=layout,
            specialty=specialty,
            matched_indicators=tuple(indicators),
        )

    def _select_strategy(
        self, text: str, metadata: Dict[str, Any], filename: Optional[str] = None
    ) -> Tuple[StrategyKind, List[str]]:
        if metadata.get("handwritten"):
            return StrategyKind.HANDWRITTEN, ["metadata:handwritten"]

        hits = self._matches(self.handwritten_patterns, text)
        if hits:
            return StrategyKind.HANDWRITTEN, hits

        rows = self.count_tabular_rows(text)
        if rows >= self.thresholds.MIN_TABULAR_ROWS:
            return StrategyKind.TABULAR, [f"tabular_rows:{rows}"]

        hits = self._matches(self.narrative_patterns, text)
        if hits:
            return StrategyKind.NARRATIVE, hits

        hint = self.filename_hint(filename)
        if hint is not None:
            strategy, token = hint
            if strategy != StrategyKind.TABULAR or rows > 0:
                return strategy, [f"filename:{token}"]

        return StrategyKind.STRUCTURED, []

    @staticmethod
    def filename_hint(filename: Optional[str]) -> Optional[Tuple[StrategyKind, str]]:
        """Strategy suggested by a filename token, e.g. "rx_0412.jpg" -> handwritten."""
        tokens = set(re.split(r"[^a-z0-9]+", (filename or "").lower()))
        for strategy, keywords in FILENAME_STRATEGY_HINTS:
            for keyword in keywords:
                if keyword in tokens:
                    return StrategyKind(strategy), keyword
        return None

    @staticmethod
    def _matches(patterns: Sequence[re.Pattern], text: str) -> List[str]:
        hits = []
        for pattern in patterns:
            match = pattern.search(text)
            if match:
                hits.append(match.group(0).strip().lower())
        return hits

    def count_tabular_rows(self, text: str) -> int:
        """Number of lines that look like delimited table rows."""
        count = 0
        for line in text.splitlines():
            if any(pattern.search(line) for pattern in self.tabular_patterns):
                count += 1
        return count

    def detect_specialty(self, text: str) -> str:
        """First specialty cluster with a keyword hit, else 'general'."""
        for specialty, patterns in self.specialty_patterns:
            if any(pattern.search(text) for pattern in patterns):
                return specialty
        return DEFAULT_SPECIALTY

    def detect_report_type(self, text: str) -> str:
        """
        Coarse report type from keywords.

        Returns one of diabetes_panel, lipid_panel, thyroid_function,
        cardiac_markers, liver_function, kidney_function, blood_test or
        general_checkup.
        """
        for report_type, patterns in self.report_type_patterns:
            if any(pattern.search(text or "") for pattern in patterns):
                return report_type
        return DEFAULT_REPORT_TYPE
