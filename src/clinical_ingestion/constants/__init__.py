# ============================================================================
# src/clinical_ingestion/constants/__init__.py
# ============================================================================
"""
Convenient imports for all constants
"""

from .media_types import (
    SUPPORTED_MEDIA_TYPES,
    TEXT_MEDIA_TYPES,
    PDF_MEDIA_TYPES,
    IMAGE_MEDIA_TYPES,
    OFFICE_MEDIA_TYPES,
    EXTENSION_MEDIA_TYPES,
    is_supported,
    resolve_media_type,
)
from .loinc import LOINC_CODES, LOINC_VERSION, get_loinc_code
from .units import UNIT_ALIASES, UNIT_PATTERN, UNIT_CONVERSIONS
from .classification_rules import (
    HANDWRITTEN_PATTERNS,
    TABULAR_ROW_PATTERNS,
    NARRATIVE_PATTERNS,
    SPECIALTY_KEYWORDS,
    REPORT_TYPE_KEYWORDS,
    DEFAULT_SPECIALTY,
    DEFAULT_REPORT_TYPE,
)
