# ============================================================================
# src/clinical_ingestion/config/base_config.py
# ============================================================================
"""
Base Configuration
- Project root
- Knowledge base directory (parameter rule tables)
"""

from pathlib import Path
from pydantic import Field
from pydantic_settings import BaseSettings

class BaseSettingsConfig(BaseSettings):
    # Root project directory
    PROJECT_ROOT: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent.parent.parent,
        description="Root directory of the project"
    )

    # Knowledge bases
    KNOWLEDGE_DIR: Path = Field(
        default_factory=lambda: Path(__file__).parent.parent / "knowledge",
        description="Rule tables (parameter recognition, enhancement patterns)"
    )

    PARAMETER_RULES_FILE: str = Field(
        default="parameter_rules.json",
        description="File name of the analyte recognition rule table inside KNOWLEDGE_DIR"
    )

    @property
    def parameter_rules_path(self) -> Path:
        return self.KNOWLEDGE_DIR / self.PARAMETER_RULES_FILE

base_settings = BaseSettingsConfig()
