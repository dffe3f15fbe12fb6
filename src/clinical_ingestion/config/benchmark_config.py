# ============================================================================
# src/clinical_ingestion/config/benchmark_config.py
# ============================================================================
"""
Benchmarking Settings
- Default region for regional standards
- Percentile thresholds that drive augmentation notes
"""

from pydantic import Field
from pydantic_settings import BaseSettings

class BenchmarkSettings(BaseSettings):
    DEFAULT_REGION: str = Field(
        default="india",
        description="Region used for regional reference standards when the caller gives none"
    )
    DEFAULT_PERCENTILE: int = Field(
        default=50,
        ge=0, le=100,
        description="Percentile reported for parameters without a cohort table entry"
    )
    PERCENTILE_ALERT: int = Field(
        default=90,
        ge=0, le=100,
        description="Percentile above which augmentation flags a value"
    )
    PERCENTILE_URGENT: int = Field(
        default=95,
        ge=0, le=100,
        description="Percentile above which a value requires immediate attention"
    )
    PERCENTILE_LOW: int = Field(
        default=10,
        ge=0, le=100,
        description="Percentile below which a value is noted as below normal range"
    )

benchmark_settings = BenchmarkSettings()
