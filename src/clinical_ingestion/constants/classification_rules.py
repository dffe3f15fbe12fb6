# ============================================================================
# src/clinical_ingestion/constants/classification_rules.py
# ============================================================================
"""
Document Classification Rules
- Ordered strategy indicators (first rule that fires wins)
- Filename hints used as a tie-breaker
- Specialty keyword clusters
- Report type keywords
"""

# Handwriting indicators; OCR of handwritten notes tends to carry these
HANDWRITTEN_PATTERNS = [
    r"\bscanned\b",
    r"\bhand\s*written\b",
    r"\bdoctor.?s?\s*note",
    r"\billegible\b",
    r"\bunclear\b",
]

# A row counts as tabular when it is pipe-, tab- or comma-delimited
TABULAR_ROW_PATTERNS = [
    r"^\s*\|?\s*[^|\n]+\|\s*[^|\n]+\|",
    r"^[^\t\n]+\t[^\t\n]+\t",
    r"^[^\t\n]+\t[^\t\n]+$",
    # CSV export: name, then a purely numeric cell
    r"^[A-Za-z][^,\n]*,[ \t]*[<>]?\d+(?:\.\d+)?[ \t]*(?:,|$)",
]

NARRATIVE_PATTERNS = [
    r"\bhistory\b",
    r"\bexamination\b",
    r"\bimpression\b",
    r"\bpatient\b.{0,40}\bpresents?\b",
    r"\bcomplains? of\b",
    r"\bassessment\b",
]

# Filename tokens consulted only when the text itself gives no strategy signal.
# A tabular hint still needs at least one delimited row in the text.
FILENAME_STRATEGY_HINTS = [
    ("handwritten", ["prescription", "rx"]),
    ("narrative", ["ecg", "echo", "discharge"]),
    ("tabular", ["lab", "pathology", "diagnostics"]),
]

# Ordered: the first cluster with a keyword hit wins
SPECIALTY_KEYWORDS = {
    "cardiology": ["bp", "ecg", "heart", "cardiac", "troponin", "blood pressure"],
    "endocrinology": ["glucose", "diabetes", "thyroid", "hormone", "hba1c", "tsh", "insulin"],
    "nephrology": ["creatinine", "kidney", "urea", "protein", "renal", "egfr"],
    "hematology": ["hemoglobin", "haemoglobin", "blood", "wbc", "rbc", "platelet"],
}

# Ordered by specificity
REPORT_TYPE_KEYWORDS = [
    ("diabetes_panel", ["glucose", "sugar", "diabetes", "hba1c"]),
    ("lipid_panel", ["cholesterol", "lipid", "triglyceride", "hdl", "ldl"]),
    ("thyroid_function", ["thyroid", "tsh", "t3", "t4"]),
    ("cardiac_markers", ["troponin", "ck-mb", "ckmb", "bnp"]),
    ("liver_function", ["alt", "ast", "sgpt", "sgot", "bilirubin", "liver"]),
    ("kidney_function", ["creatinine", "urea", "kidney", "egfr", "bun"]),
    ("blood_test", ["hemoglobin", "haemoglobin", "blood count", "cbc", "wbc", "platelet"]),
]

DEFAULT_SPECIALTY = "general"
DEFAULT_REPORT_TYPE = "general_checkup"
