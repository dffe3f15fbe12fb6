# ============================================================================
# src/clinical_ingestion/benchmarking/engine.py
# ============================================================================
"""
Benchmarking Engine

Compares each extracted LabValue against:
- the population cohort (percentile, age-group mean)
- a disease-specific cohort with z-score, where one exists
- the regional reference standard, classified with classify_benchmark_status

A miss in any table leaves that field empty. A malformed table entry raises
BenchmarkError naming the parameter; the pipeline keeps the extraction and
records the failure.
"""

import logging
from typing import List, Optional

from ..core.context.medical_data import LabValue
from ..core.context.results import BenchmarkRecord
from ..normalization.rules import ParameterRuleTable
from ..utils.exceptions import BenchmarkError, ReferenceRangeError
from ..utils.text_normalizer import normalize_parameter_key
from .population import PopulationReferenceStore
from .standards_store import ReferenceStandardsStore

logger = logging.getLogger(__name__)


class BenchmarkingEngine:
    """Stateless comparator over injected reference stores."""

    def __init__(
        self,
        standards_store: ReferenceStandardsStore,
        population_store: PopulationReferenceStore,
        rules: Optional[ParameterRuleTable] = None,
    ):
        self.standards_store = standards_store
        self.population_store = population_store
        self.rules = rules

    def _key(self, parameter: str) -> str:
        if self.rules is not None:
            rule = self.rules.resolve(parameter)
            if rule is not None:
                return rule.key
        return normalize_parameter_key(parameter)

    def benchmark(
        self,
        lab_values: List[LabValue],
        age: Optional[int] = None,
        gender: Optional[str] = None,
        region: Optional[str] = None,
    ) -> List[BenchmarkRecord]:
        """
        Benchmark lab values, one record per value, in input order.

        Args:
            lab_values: Extracted values (canonical parameter names)
            age: Patient age, used for age-band means and age-specific ranges
            gender: Patient gender, used for gender-specific ranges
            region: Regional standards set (default from BenchmarkSettings)

        Raises:
            BenchmarkError: a population table entry cannot be read
        """
        records = []
        for lab_value in lab_values:
            key = self._key(lab_value.parameter)

            try:
                regional = self.standards_store.validate_value(
                    lab_value.parameter, lab_value.value, age=age, gender=gender, region=region,
                )
            except ReferenceRangeError as e:
                logger.warning(f"Regional standard for {lab_value.parameter} unusable: {e}")
                regional = None

            if regional is None:
                logger.debug(f"No regional standard for {lab_value.parameter} ({key})")

            try:
                records.append(BenchmarkRecord(
                    parameter=lab_value.parameter,
                    patient_value=lab_value.value,
                    population_percentile=self.population_store.percentile(key, lab_value.value),
                    age_group_mean=self.population_store.age_group_mean(key, age),
                    disease_cohort=self.population_store.disease_cohort(key, lab_value.value),
                    regional_standard=regional,
                ))
            except (KeyError, TypeError, ValueError, ZeroDivisionError) as e:
                raise BenchmarkError(
                    f"Population data for {lab_value.parameter} ({key}) is malformed: {e}"
                ) from e

        logger.info(f"Benchmarked {len(records)} lab values")
        return records
