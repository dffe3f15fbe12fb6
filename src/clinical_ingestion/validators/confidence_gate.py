# ============================================================================
# src/clinical_ingestion/validators/confidence_gate.py
# ============================================================================
"""
Validation & Confidence Gate

Inspects a ParsingResult once and routes it once:

    has_real_data = |lab_values| + |test_results| + |diagnoses| > 0

    not has_real_data and confidence < GATE_CONFIDENCE_THRESHOLD
        -> degrade: attach an EnhancedTextAnalysis, fallbackMethod=True
    otherwise
        -> continue to benchmarking and augmentation

Degrading is not an error and is never retried.
"""

import re
import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from ..config import threshold_settings, ThresholdSettings
from ..core.context.document import AcquiredText
from ..core.context.results import EnhancedTextAnalysis, ParsingResult

logger = logging.getLogger(__name__)

DEGRADED_MESSAGE = "Analysis based on enhanced text interpretation with regional medical context"

GLUCOSE_PATTERN = re.compile(
    r"(?:glucose|fasting.*glucose|blood.*sugar)[:\s,]*(\d+(?:\.\d+)?)\s*(mg\/dl|mg%)?",
    re.IGNORECASE,
)
GLUCOSE_RANGE = "70-110"


@dataclass(frozen=True)
class GateDecision:
    degraded: bool
    has_real_data: bool
    confidence: float
    reason: str
    enhanced_analysis: Optional[EnhancedTextAnalysis] = None


class ConfidenceGate:
    """
    One-shot confidence gate.

    report_type_detector is injected (usually DocumentClassifier.detect_report_type).
    """

    def __init__(
        self,
        report_type_detector: Callable[[str], str],
        thresholds: Optional[ThresholdSettings] = None,
    ):
        self.report_type_detector = report_type_detector
        self.thresholds = thresholds or threshold_settings

    def inspect(self, result: ParsingResult, acquired: AcquiredText) -> GateDecision:
        """
        Decide whether the result continues or degrades.

        On degrade the result is marked in place (fallback_method, message,
        enhanced_analysis); the returned decision carries the same analysis.
        """
        has_real_data = result.extracted_data.has_real_data
        threshold = self.thresholds.GATE_CONFIDENCE_THRESHOLD

        if has_real_data or result.confidence >= threshold:
            return GateDecision(
                degraded=False,
                has_real_data=has_real_data,
                confidence=result.confidence,
                reason="real data extracted" if has_real_data else "confidence above threshold",
            )

        logger.info(
            f"Low confidence extraction ({result.confidence:.2f} < {threshold:.2f}, no real data); "
            f"falling back to enhanced text analysis"
        )

        analysis = self.enhanced_text_analysis(acquired.text, result.source_metadata.layout.value)

        result.fallback_method = True
        result.message = DEGRADED_MESSAGE
        result.enhanced_analysis = analysis
        result.source_metadata.report_type = analysis.report_type

        return GateDecision(
            degraded=True,
            has_real_data=False,
            confidence=result.confidence,
            reason=f"no real data and confidence {result.confidence:.2f} below {threshold:.2f}",
            enhanced_analysis=analysis,
        )

    def enhanced_text_analysis(self, text: str, layout: str) -> EnhancedTextAnalysis:
        """Degraded re-read of the acquired text focused on glucose."""
        detected: Dict[str, Dict] = {}

        match = GLUCOSE_PATTERN.search(text)
        if match:
            detected["glucose_fasting"] = {
                "value": float(match.group(1)),
                "unit": "mg/dL",
                "range": GLUCOSE_RANGE,
            }

        key_points = ["Text extraction completed"]
        if detected:
            key_points.append("Medical patterns recognized")
        key_points.append("Regional standards applied")

        return EnhancedTextAnalysis(
            report_type=self.report_type_detector(text),
            summary=(
                f"Analysis of {layout} document shows extractable medical parameters "
                f"with regional population context applied."
            ),
            key_points=key_points,
            detected_values=detected,
            confidence=self.thresholds.ENHANCED_ANALYSIS_CONFIDENCE,
        )
