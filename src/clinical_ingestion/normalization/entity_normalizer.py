# ============================================================================
# src/clinical_ingestion/normalization/entity_normalizer.py
# ============================================================================
"""
Medical Entity Normalizer

Shared by every strategy extractor:
- Finds lab values in free text using the ordered rule table
- Canonicalizes units (mg% / mg/dl -> mg/dL) and converts known unit systems
- Attaches reference range, LOINC code and status to each LabValue
- Falls back to aggressive bare-number extraction when no rule matches

First match wins per occurrence: once a rule claims a span of text, later
rules skip any match overlapping it.
"""

import re
import logging
from typing import List, Optional, Tuple

from ..constants.loinc import get_loinc_code
from ..constants.units import UNIT_CONVERSIONS
from ..core.context.enums import LabStatus
from ..core.context.medical_data import LabValue
from ..utils.exceptions import PlausibilityError
from ..utils.text_normalizer import normalize_unit
from ..validators.plausibility import PlausibilityChecker
from .rules import ParameterRule, ParameterRuleTable
from .status import classify_lab_status

logger = logging.getLogger(__name__)

# Bare number that is not part of a ratio, range, date, time or percentage
BARE_NUMBER_PATTERN = re.compile(
    r"(?<![\d.,/:\-–])(\d{2,3}(?:\.\d+)?)(?![\d/%]|\.\d|[ \t]*[-–][ \t]*\d|[ \t]*%)"
)

Span = Tuple[int, int]


def _overlaps(span: Span, claimed: List[Span]) -> bool:
    return any(span[0] < end and start < span[1] for start, end in claimed)


class MedicalEntityNormalizer:
    """
    Rule-table driven lab value recognizer.

    Stateless after construction; safe to share across concurrent pipeline runs.
    """

    def __init__(
        self,
        rules: ParameterRuleTable,
        plausibility: Optional[PlausibilityChecker] = None,
    ):
        self.rules = rules
        self.plausibility = plausibility or PlausibilityChecker()

    @property
    def rules_version(self) -> str:
        return self.rules.version

    def extract_lab_values(self, text: str, aggressive: bool = True) -> List[LabValue]:
        """
        Extract lab values from text, in document order.

        Args:
            text: Normalized document text
            aggressive: When no rule matches anywhere, scan for a bare number
                inside the default analyte's plausible window

        Returns:
            List of LabValue (possibly empty)
        """
        if not text:
            return []

        claimed: List[Span] = []
        found: List[Tuple[int, LabValue]] = []
        seen = set()

        for rule in self.rules:
            for match in rule.value_pattern.finditer(text):
                span = match.span()
                if _overlaps(span, claimed):
                    continue
                claimed.append(span)

                lab_value = self._lab_value_from_match(rule, match)
                if lab_value is None:
                    continue

                dedupe_key = (lab_value.parameter, lab_value.value, lab_value.unit)
                if dedupe_key in seen:
                    continue
                seen.add(dedupe_key)
                found.append((span[0], lab_value))

        if not claimed and aggressive:
            return self.aggressive_extract(text)

        found.sort(key=lambda item: item[0])
        return [lab_value for _, lab_value in found]

    def aggressive_extract(self, text: str) -> List[LabValue]:
        """
        Last-resort scan: first bare number inside the default analyte's window.

        The result is tagged auto_detected so extractors can lower confidence.
        """
        rule = self.rules.default_rule
        if rule is None or rule.auto_detect_window is None:
            return []

        low, high = rule.auto_detect_window
        for match in BARE_NUMBER_PATTERN.finditer(text):
            value = float(match.group(1))
            if low <= value <= high:
                snippet = text[max(0, match.start() - 30):match.end() + 10].strip()
                logger.info(f"Aggressive extraction: {value} auto-detected as {rule.name}")
                return [self.build_lab_value(rule, value, source_text=snippet, auto_detected=True)]

        return []

    def match_parameter(self, name: str) -> Optional[ParameterRule]:
        """Map a free-standing parameter name (e.g. a table cell) to its rule."""
        return self.rules.resolve(name)

    def build_lab_value(
        self,
        rule: ParameterRule,
        value: float,
        unit: Optional[str] = None,
        ref_min: Optional[float] = None,
        ref_max: Optional[float] = None,
        source_text: Optional[str] = None,
        auto_detected: bool = False,
    ) -> LabValue:
        """
        Build a canonical LabValue for a recognized analyte.

        Unit is canonicalized and, where a conversion is known, the value and
        any explicit range are converted to the rule's unit. An explicit range
        that is not increasing is ignored in favour of the rule's range.
        """
        canonical_unit = normalize_unit(unit, default=rule.unit)

        if canonical_unit != rule.unit:
            factor = UNIT_CONVERSIONS.get((rule.key, canonical_unit))
            if factor is not None:
                value = round(value * factor, 2)
                if ref_min is not None and ref_max is not None:
                    ref_min = round(ref_min * factor, 2)
                    ref_max = round(ref_max * factor, 2)
                canonical_unit = rule.unit

        if ref_min is None or ref_max is None or not ref_min < ref_max:
            if canonical_unit == rule.unit:
                ref_min, ref_max = rule.reference_range
            else:
                ref_min, ref_max = None, None

        if ref_min is not None and ref_max is not None:
            status = classify_lab_status(value, ref_min, ref_max)
        else:
            status = LabStatus.NORMAL

        return LabValue(
            parameter=rule.name,
            value=value,
            unit=canonical_unit,
            reference_min=ref_min,
            reference_max=ref_max,
            status=status,
            flagged=status != LabStatus.NORMAL,
            auto_detected=auto_detected,
            loinc_code=get_loinc_code(rule.key),
            source_text=source_text,
        )

    def _lab_value_from_match(self, rule: ParameterRule, match: re.Match) -> Optional[LabValue]:
        ref_min = match.group("min") or match.group("min2")
        ref_max = match.group("max") or match.group("max2")

        return self.normalize_measurement(
            rule,
            float(match.group("value")),
            unit=match.group("unit"),
            ref_min=float(ref_min) if ref_min else None,
            ref_max=float(ref_max) if ref_max else None,
            source_text=match.group(0).strip(),
        )

    def normalize_measurement(
        self,
        rule: ParameterRule,
        value: float,
        unit: Optional[str] = None,
        ref_min: Optional[float] = None,
        ref_max: Optional[float] = None,
        source_text: Optional[str] = None,
    ) -> Optional[LabValue]:
        """build_lab_value plus the plausibility check; None when implausible."""
        lab_value = self.build_lab_value(
            rule, value, unit=unit, ref_min=ref_min, ref_max=ref_max, source_text=source_text,
        )

        # Plausible windows are expressed in the rule unit
        if lab_value.unit == rule.unit:
            try:
                self.plausibility.validate(rule, lab_value.value)
            except PlausibilityError as e:
                hint = f" (did the report mean {e.suggestion:g}?)" if e.suggestion is not None else ""
                logger.debug(f"Dropping {rule.name} value {lab_value.value}: {e}{hint}")
                return None

        return lab_value
