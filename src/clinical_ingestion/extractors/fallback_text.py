# ============================================================================
# src/clinical_ingestion/extractors/fallback_text.py
# ============================================================================
"""
Intelligent Fallback Text

Last step of the acquisition chain. Builds a clearly labeled placeholder
from keywords in the file name so classification and the confidence gate
still have something to work with.

The placeholder never carries numeric values: digits in the file name are
dropped, and nothing in the template looks like a measurement or a date.
"""

import re
from pathlib import PurePath
from typing import List

PLACEHOLDER_HEADER = "[PLACEHOLDER] Intelligent fallback - no readable text recovered"

LAB_BRANDS = {
    "apollo": "Apollo Diagnostics",
    "thyrocare": "Thyrocare",
    "srl": "SRL Diagnostics",
    "metropolis": "Metropolis Healthcare",
}

# Ordered: earlier panels are listed first in the placeholder
PANEL_KEYWORDS = [
    (("glucose", "sugar", "diabetes"), "Blood glucose / diabetes screening"),
    (("lipid", "cholesterol"), "Lipid profile (cholesterol)"),
    (("thyroid", "tsh"), "Thyroid function (TSH)"),
    (("hemoglobin", "haemoglobin", "cbc"), "Complete blood count (hemoglobin)"),
    (("kidney", "creatinine", "renal"), "Kidney function (creatinine)"),
    (("liver", "lft"), "Liver function"),
]


def _filename_words(filename: str) -> List[str]:
    stem = PurePath(filename or "").stem.lower()
    return [word for word in re.split(r"[^a-z]+", stem) if word]


def generate_fallback_text(filename: str) -> str:
    """
    Build the placeholder text for a document nothing could read.

    Example:
        "apollo_sugar_report.pdf" ->
            [PLACEHOLDER] Intelligent fallback - no readable text recovered
            Source file: apollo sugar report
            Laboratory: Apollo Diagnostics
            Suspected panel: Blood glucose / diabetes screening
            Values: not available from the original document
    """
    words = _filename_words(filename)
    joined = " ".join(words)

    lines = [PLACEHOLDER_HEADER, f"Source file: {joined or 'unnamed document'}"]

    for key, label in LAB_BRANDS.items():
        if key in words:
            lines.append(f"Laboratory: {label}")
            break

    panels = [
        label for keywords, label in PANEL_KEYWORDS
        if any(keyword in joined for keyword in keywords)
    ]
    if panels:
        for label in panels:
            lines.append(f"Suspected panel: {label}")
    else:
        lines.append("Suspected panel: general health checkup")

    lines.append("Values: not available from the original document")
    lines.append("Please upload a clearer copy for a full analysis")

    return "\n".join(lines)
