# ============================================================================
# src/clinical_ingestion/config/logging_config.py
# ============================================================================
"""
Logging Settings
- Log level
- JSON output
- Optional log file
"""

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings

class LoggingSettings(BaseSettings):
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Logging level"
    )
    LOG_JSON: bool = Field(
        default=False,
        description="Emit JSON log lines (one object per record)"
    )
    LOG_FILE: Optional[Path] = Field(
        default=None,
        description="Also write logs to this file"
    )

logging_settings = LoggingSettings()
