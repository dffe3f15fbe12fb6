# ============================================================================
# src/clinical_ingestion/config/__init__.py
# ============================================================================
"""
Convenient imports for all settings

The .env file is loaded first so every settings class sees its overrides.
"""

from .dotenv_loader import load_env_file

load_env_file()

from .base_config import base_settings, BaseSettingsConfig
from .thresholds_config import threshold_settings, ThresholdSettings
from .ocr_config import ocr_settings, OCRSettings
from .benchmark_config import benchmark_settings, BenchmarkSettings
from .logging_config import logging_settings, LoggingSettings
