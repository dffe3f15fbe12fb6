# ============================================================================
# src/clinical_ingestion/benchmarking/standards_store.py
# ============================================================================
"""
Regional Reference Standards

Loaded from knowledge/regional_standards.json, keyed by region:

    {
      "india": {
        "standards": {"<rule key>": {normal_range, gender_ranges?, age_ranges?,
                                     source, regional_factors, clinical_relevance}},
        "disease_prevalence": {...},
        "pharmacogenomics": {...}
      }
    }

Lookups accept a canonical parameter name, a rule key or a synonym; the
rule table resolves names to keys. Every lookup miss returns None.
"""

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import base_settings, benchmark_settings
from ..core.context.results import RegionalStandard
from ..normalization.rules import ParameterRuleTable
from ..utils.exceptions import ConfigurationError
from ..utils.text_normalizer import normalize_parameter_key
from .status import classify_and_interpret

logger = logging.getLogger(__name__)

STANDARDS_FILE = "regional_standards.json"

SYSTEM_PARAMETERS = {
    "cardiovascular": ["cholesterol_total", "hdl", "ldl", "triglycerides", "troponin_i", "ck_mb", "crp"],
    "endocrine": ["glucose_fasting", "hba1c", "thyroid_tsh", "t3", "t4", "insulin"],
    "hepatic": ["alt", "ast", "bilirubin_total", "albumin", "ggt"],
    "renal": ["creatinine", "bun", "uric_acid", "microalbumin"],
    "hematological": ["hemoglobin", "wbc", "platelets", "esr", "vitamin_b12", "folate"],
}


@dataclass(frozen=True)
class ReferenceRange:
    parameter: str
    min: float
    max: float
    unit: str
    source: str
    region: str
    clinical_relevance: str = ""
    regional_factors: Dict[str, List[str]] = field(default_factory=dict)


class ReferenceStandardsStore:
    """Read-only regional standards, disease prevalence and pharmacogenomics."""

    def __init__(
        self,
        data: Dict[str, Any],
        rules: Optional[ParameterRuleTable] = None,
        default_region: Optional[str] = None,
    ):
        self._data = {region.lower(): content for region, content in data.items()}
        self.rules = rules
        self.default_region = (default_region or benchmark_settings.DEFAULT_REGION).lower()

    @classmethod
    def from_file(
        cls,
        path: Optional[Path] = None,
        rules: Optional[ParameterRuleTable] = None,
    ) -> "ReferenceStandardsStore":
        path = path or base_settings.KNOWLEDGE_DIR / STANDARDS_FILE
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load regional standards from {path}: {e}") from e
        return cls(data, rules=rules)

    @property
    def regions(self) -> List[str]:
        return list(self._data)

    def _region(self, region: Optional[str]) -> Dict[str, Any]:
        return self._data.get((region or self.default_region).lower(), {})

    def resolve_key(self, parameter: str) -> str:
        """Rule key for a parameter name, falling back to a slug of the name."""
        if self.rules is not None:
            rule = self.rules.resolve(parameter)
            if rule is not None:
                return rule.key
        return normalize_parameter_key(parameter)

    def get_standard(self, parameter: str, region: Optional[str] = None) -> Optional[Dict[str, Any]]:
        standards = self._region(region).get("standards", {})
        return standards.get(self.resolve_key(parameter))

    def lookup(
        self,
        parameter: str,
        age: Optional[int] = None,
        gender: Optional[str] = None,
        region: Optional[str] = None,
    ) -> Optional[ReferenceRange]:
        """
        Reference range for a parameter, adjusted for gender and age.

        Returns:
            ReferenceRange, or None when the region or parameter is unknown
        """
        standard = self.get_standard(parameter, region)
        if standard is None:
            return None

        normal = standard.get("normal_range") or {}
        try:
            low, high = float(normal["min"]), float(normal["max"])
        except (KeyError, TypeError, ValueError):
            logger.warning(f"Regional standard for {parameter} has no usable normal_range")
            return None

        if gender:
            adjusted = (standard.get("gender_ranges") or {}).get(gender.lower())
            if adjusted:
                low, high = float(adjusted["min"]), float(adjusted["max"])

        if age is not None:
            for band in standard.get("age_ranges") or []:
                if age >= band.get("min_age", 0) and age <= band.get("max_age", 200):
                    low, high = float(band["min"]), float(band["max"])

        return ReferenceRange(
            parameter=standard.get("parameter", parameter),
            min=low,
            max=high,
            unit=normal.get("unit", ""),
            source=standard.get("source", ""),
            region=(region or self.default_region).lower(),
            clinical_relevance=standard.get("clinical_relevance", ""),
            regional_factors=standard.get("regional_factors", {}),
        )

    def validate_value(
        self,
        parameter: str,
        value: float,
        age: Optional[int] = None,
        gender: Optional[str] = None,
        region: Optional[str] = None,
    ) -> Optional[RegionalStandard]:
        """
        Classify a value against its regional standard.

        Returns:
            RegionalStandard with status and interpretation, or None when
            no standard exists for the parameter in the region
        """
        reference = self.lookup(parameter, age=age, gender=gender, region=region)
        if reference is None:
            return None

        status, interpretation = classify_and_interpret(value, reference.min, reference.max, reference.unit)
        return RegionalStandard(
            min=reference.min,
            max=reference.max,
            unit=reference.unit,
            source=reference.source,
            status=status,
            interpretation=interpretation,
            region=reference.region,
        )

    def get_disease_prevalence(self, condition: str, region: Optional[str] = None) -> Optional[Dict[str, Any]]:
        return self._region(region).get("disease_prevalence", {}).get(condition)

    def get_pharmacogenomics(self, medication: str, region: Optional[str] = None) -> Optional[Dict[str, Any]]:
        return self._region(region).get("pharmacogenomics", {}).get(medication.lower())

    def get_standards_by_source(self, source: str, region: Optional[str] = None) -> List[Dict[str, Any]]:
        standards = self._region(region).get("standards", {})
        return [s for s in standards.values() if s.get("source") == source]

    @staticmethod
    def parameters_for_system(system: str) -> List[str]:
        """Rule keys relevant to a body system (cardiovascular, endocrine, ...)."""
        return list(SYSTEM_PARAMETERS.get(system.lower(), []))
