# ============================================================================
# src/clinical_ingestion/utils/text_normalizer.py
# ============================================================================
"""
Text Normalization Utilities

Cleans up text coming out of PDF layers, OCR and raw decodes:
- Collapses whitespace while keeping table columns (tabs, double spaces)
- Repairs decimal separators ("12,5" -> "12.5", "12 . 5" -> "12.5")
- Repairs unit spelling and spacing ("mg / dl" -> "mg/dL")
- Normalizes "Label : value" spacing
- Collapses runs of blank lines

normalize_medical_text is idempotent: running it on its own output is a no-op.
"""

import re
import logging
from typing import Optional

from ..constants.units import UNIT_ALIASES

logger = logging.getLogger(__name__)

# Applied first; the order of the tuples below matters for idempotence
WHITESPACE_PATTERNS = [
    (re.compile(r'\r\n?'), '\n'),
    (re.compile(r'[\u00a0\u2000-\u200a\u202f\u205f\u3000\f\v]'), ' '),
    (re.compile(r' *\t[ \t]*'), '\t'),        # tab runs -> one tab
    (re.compile(r' {2,}'), '  '),              # keep column gaps at two spaces
    (re.compile(r'[ \t]+$', re.MULTILINE), ''),  # trailing whitespace
]

DECIMAL_PATTERNS = [
    # "12 . 5" / "12. 5" / "12 .5"
    (re.compile(r'(?<=\d)(?:[ \t]+\.[ \t]*|\.[ \t]+)(?=\d)'), '.'),
    # "12,5" but not "1,250" or CSV cells such as "95,110"
    (re.compile(r'(?<![\d,])(\d+),(\d{1,2})(?![\d,])'), r'\1.\2'),
]

LABEL_PATTERN = (re.compile(r'\b([A-Za-z]+)[ \t]*:[ \t]*(?=[^\s/])'), r'\1: ')

UNIT_SPACING_PATTERNS = [
    (re.compile(r'\bmg[ \t]*/[ \t]*dl\b', re.IGNORECASE), 'mg/dL'),
    (re.compile(r'\bmg[ \t]*%'), 'mg/dL'),
    (re.compile(r'\bg[ \t]*/[ \t]*dl\b', re.IGNORECASE), 'g/dL'),
    (re.compile(r'\bmmol[ \t]*/[ \t]*l\b', re.IGNORECASE), 'mmol/L'),
    (re.compile(r'\biu[ \t]*/[ \t]*l\b', re.IGNORECASE), 'IU/L'),
    (re.compile(r'\bu[ \t]*/[ \t]*l\b', re.IGNORECASE), 'U/L'),
    (re.compile(r'\bng[ \t]*/[ \t]*ml\b', re.IGNORECASE), 'ng/mL'),
    (re.compile(r'\bpg[ \t]*/[ \t]*ml\b', re.IGNORECASE), 'pg/mL'),
]

BLANK_LINES_PATTERN = (re.compile(r'\n{3,}'), '\n\n')


def normalize_medical_text(text: str) -> str:
    """
    Normalize acquired text before classification and extraction.

    Examples:
        "Glucose :  95 mg / dl" -> "Glucose: 95 mg/dL"
        "Hb 12,5 g/dl"          -> "Hb 12.5 g/dL"
    """
    if not text:
        return ""

    result = text

    for pattern, replacement in WHITESPACE_PATTERNS:
        result = pattern.sub(replacement, result)

    for pattern, replacement in DECIMAL_PATTERNS:
        result = pattern.sub(replacement, result)

    pattern, replacement = LABEL_PATTERN
    result = pattern.sub(replacement, result)

    for pattern, replacement in UNIT_SPACING_PATTERNS:
        result = pattern.sub(replacement, result)

    pattern, replacement = BLANK_LINES_PATTERN
    result = pattern.sub(replacement, result)

    return result.strip()


def normalize_unit(unit: Optional[str], default: str = "") -> str:
    """
    Canonicalize a unit string.

    Examples:
        "mg/dl" -> "mg/dL"
        "mg %"  -> "mg/dL"
        "MMOL/L" -> "mmol/L"
        "mg/dL" -> "mg/dL"
    """
    if not unit:
        return default

    key = re.sub(r'\s+', '', unit).lower()
    if key in UNIT_ALIASES:
        return UNIT_ALIASES[key]

    # Unknown units pass through with whitespace removed
    return re.sub(r'\s+', '', unit)


def normalize_parameter_key(name: str) -> str:
    """
    Turn a free-form parameter name into a lookup key.

    Examples:
        "Fasting Glucose" -> "fasting_glucose"
        "CK-MB"           -> "ck_mb"
    """
    if not name:
        return ""
    return re.sub(r'[\s\-]+', '_', name.strip().lower())


def printable_ratio(text: str) -> float:
    """Share of characters that are printable or ordinary whitespace."""
    if not text:
        return 0.0
    printable = sum(1 for ch in text if ch.isprintable() or ch in '\n\r\t')
    return printable / len(text)
