# ============================================================================
# src/clinical_ingestion/validators/plausibility.py
# ============================================================================
"""
Plausibility Checks

Catches extreme errors (decimal point mistakes, unit errors, dates read as
values). Different from reference ranges - these are "physically possible"
boundaries taken from the rule table's plausible_range.

Example:
- Hemoglobin 142 g/dL -> FAIL (likely meant 14.2)
- Hemoglobin 6.5 g/dL -> PASS (low but possible)
"""

from typing import Optional, Tuple
import logging

from ..normalization.rules import ParameterRule
from ..utils.exceptions import PlausibilityError

logger = logging.getLogger(__name__)


class PlausibilityChecker:
    """
    Check if lab values are within plausible ranges.

    Plausibility ranges are WIDER than reference ranges. Rules without a
    plausible_range accept every value.
    """

    def check(self, rule: ParameterRule, value: float) -> Tuple[bool, Optional[str]]:
        """
        Check if value is plausible for the rule's analyte.

        Returns:
            (is_plausible, reason_if_not)
        """
        if rule.plausible_range is None:
            return True, None

        min_val, max_val = rule.plausible_range

        if value < min_val:
            reason = f"Value {value} below plausible minimum {min_val} {rule.unit}"
            logger.warning(f"{rule.key}: {reason}")
            return False, reason

        if value > max_val:
            reason = f"Value {value} above plausible maximum {max_val} {rule.unit}"
            logger.warning(f"{rule.key}: {reason}")
            return False, reason

        return True, None

    def validate(self, rule: ParameterRule, value: float) -> None:
        """
        Raise PlausibilityError when value is outside the plausible window.

        The error carries a decimal-shift suggestion when one explains the value.
        """
        is_plausible, reason = self.check(rule, value)
        if not is_plausible:
            raise PlausibilityError(reason, suggestion=self.suggest_correction(rule, value))

    def suggest_correction(self, rule: ParameterRule, value: float) -> Optional[float]:
        """
        Suggest corrected value if a decimal shift explains the error.

        Common errors:
        - Decimal point shift: 142.0 -> 14.2
        - Lost decimal point: 1420 -> 14.2

        Returns:
            Suggested corrected value, or None if no correction found
        """
        if rule.plausible_range is None:
            return None

        min_val, max_val = rule.plausible_range

        if min_val <= value <= max_val:
            return None

        if value > max_val:
            for divisor in (10, 100):
                corrected = value / divisor
                if min_val <= corrected <= max_val:
                    logger.info(f"{rule.key}: suggesting decimal correction {value} -> {corrected}")
                    return corrected

        if value < min_val:
            corrected = value * 10
            if min_val <= corrected <= max_val:
                logger.info(f"{rule.key}: suggesting decimal correction {value} -> {corrected}")
                return corrected

        return None
