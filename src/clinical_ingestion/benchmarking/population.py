# ============================================================================
# src/clinical_ingestion/benchmarking/population.py
# ============================================================================
"""
Population Cohort Tables

Percentiles are read off a normal approximation (mean, std_dev) of the
cohort distribution for each parameter. Parameters missing from the table
report the configured default percentile instead of failing.
"""

import json
import logging
from pathlib import Path
from statistics import NormalDist
from typing import Any, Dict, Optional

from ..config import base_settings, benchmark_settings
from ..core.context.results import CohortComparison
from ..utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

POPULATION_FILE = "population_benchmarks.json"


class PopulationReferenceStore:
    """Cohort statistics keyed by parameter rule key."""

    def __init__(self, data: Dict[str, Any]):
        cohort = data.get("cohort") or {}
        self.cohort_name = f"{cohort.get('name', 'unknown')} {cohort.get('version', '')}".strip()
        self._parameters: Dict[str, Dict[str, Any]] = data.get("parameters", {})
        self._disease_cohorts: Dict[str, Dict[str, Any]] = data.get("disease_cohorts", {})
        self._age_bands = data.get("age_bands", [])

    @classmethod
    def from_file(cls, path: Optional[Path] = None) -> "PopulationReferenceStore":
        path = path or base_settings.KNOWLEDGE_DIR / POPULATION_FILE
        try:
            with open(path, encoding="utf-8") as f:
                return cls(json.load(f))
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigurationError(f"Cannot load population benchmarks from {path}: {e}") from e

    def __contains__(self, key: str) -> bool:
        return key in self._parameters

    def percentile(self, key: str, value: float) -> int:
        """Population percentile of value, 0-100."""
        stats = self._parameters.get(key)
        if not stats or not stats.get("std_dev"):
            return benchmark_settings.DEFAULT_PERCENTILE

        distribution = NormalDist(mu=stats["mean"], sigma=stats["std_dev"])
        return int(round(distribution.cdf(value) * 100))

    def age_band(self, age: Optional[int]) -> Optional[str]:
        if age is None:
            return None
        for band in self._age_bands:
            if band["min"] <= age <= band["max"]:
                return band["label"]
        return None

    def age_group_mean(self, key: str, age: Optional[int] = None) -> Optional[float]:
        """Cohort mean for the patient's age band, else the overall default."""
        stats = self._parameters.get(key)
        if not stats:
            return None

        age_means = stats.get("age_means") or {}
        band = self.age_band(age)
        if band and band in age_means:
            return float(age_means[band])
        if "default" in age_means:
            return float(age_means["default"])
        return float(stats["mean"])

    def disease_cohort(self, key: str, value: float) -> Optional[CohortComparison]:
        cohort = self._disease_cohorts.get(key)
        if not cohort:
            return None

        std_dev = cohort.get("std_dev") or 0
        z_score = (value - cohort["mean"]) / std_dev if std_dev else 0.0
        return CohortComparison(
            name=cohort["name"],
            mean=cohort["mean"],
            std_dev=std_dev,
            risk_category=cohort.get("risk_category", "unknown"),
            z_score=z_score,
        )
