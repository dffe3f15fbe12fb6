# ============================================================================
# src/clinical_ingestion/constants/loinc.py
# ============================================================================
"""
Common LOINC Codes
- Lab tests mapped by the tabular extractor and the normalizer

Loads from loinc_mappings.json and builds name-to-code lookup dict.
"""

import json
from pathlib import Path
from typing import Optional

LOINC_VERSION = "LOINC_2024.1"

_knowledge_dir = Path(__file__).parent.parent / "knowledge"

with open(_knowledge_dir / "loinc_mappings.json", encoding="utf-8") as f:
    LOINC_MAPPINGS = json.load(f)

# name/alias (lowercase, underscored) -> code
LOINC_CODES = {}
for code, data in LOINC_MAPPINGS.items():
    name = data.get("name", "").lower().replace(" ", "_")
    if name:
        LOINC_CODES[name] = code

    for alias in data.get("aliases", []):
        alias_key = alias.lower().replace(" ", "_")
        if alias_key not in LOINC_CODES:
            LOINC_CODES[alias_key] = code


def get_loinc_code(name: str) -> Optional[str]:
    """Look up a LOINC code by canonical name, rule key or alias."""
    if not name:
        return None
    return LOINC_CODES.get(name.strip().lower().replace(" ", "_"))
