# ============================================================================
# src/clinical_ingestion/constants/units.py
# ============================================================================
"""
Unit Canonicalization
- Lower-cased spelling -> canonical unit
- Canonical forms map to themselves so canonicalization is idempotent
"""

UNIT_ALIASES = {
    "mg/dl": "mg/dL",
    "mg%": "mg/dL",
    "mg/100ml": "mg/dL",
    "mg/l": "mg/L",
    "g/dl": "g/dL",
    "g/l": "g/L",
    "gm/dl": "g/dL",
    "gm%": "g/dL",
    "g%": "g/dL",
    "mmol/l": "mmol/L",
    "mmol/mol": "mmol/mol",
    "umol/l": "µmol/L",
    "µmol/l": "µmol/L",
    "meq/l": "mEq/L",
    "iu/l": "IU/L",
    "u/l": "U/L",
    "units/l": "U/L",
    "miu/l": "mIU/L",
    "uiu/ml": "µIU/mL",
    "µiu/ml": "µIU/mL",
    "ng/ml": "ng/mL",
    "ng/dl": "ng/dL",
    "pg/ml": "pg/mL",
    "mm/hr": "mm/hr",
    "mm/h": "mm/hr",
    "mmhg": "mmHg",
    "%": "%",
    "k/ul": "10^3/µL",
    "10^3/ul": "10^3/µL",
    "m/ul": "10^6/µL",
    "10^6/ul": "10^6/µL",
    "bpm": "bpm",
}

# Alternation used by value regexes, longest spellings first
UNIT_PATTERN = (
    r"(?:mg\s*/\s*100\s*ml|mg\s*/\s*dl|mg\s*/\s*l(?![a-z])|mg\s*%|gm?\s*/\s*dl|gm?\s*/\s*l(?![a-z])|gm?\s*%|mmol\s*/\s*mol|mmol\s*/\s*l|"
    r"[uµ]mol\s*/\s*l|meq\s*/\s*l|[uµ]iu\s*/\s*ml|miu\s*/\s*l|iu\s*/\s*l|units\s*/\s*l|u\s*/\s*l|"
    r"ng\s*/\s*ml|ng\s*/\s*dl|pg\s*/\s*ml|mm\s*/\s*hr?|mmhg|10\^[36]\s*/\s*[uµ]l|[km]\s*/\s*[uµ]l|%)"
)

# (rule key, canonical unit found in text) -> factor into the rule's unit
UNIT_CONVERSIONS = {
    ("glucose_fasting", "mmol/L"): 18.016,
    ("glucose_random", "mmol/L"): 18.016,
    ("glucose_postprandial", "mmol/L"): 18.016,
    ("cholesterol_total", "mmol/L"): 38.67,
    ("hdl", "mmol/L"): 38.67,
    ("ldl", "mmol/L"): 38.67,
    ("triglycerides", "mmol/L"): 88.57,
    ("creatinine", "µmol/L"): 1 / 88.4,
    ("urea", "mmol/L"): 6.006,
    ("bun", "mmol/L"): 2.801,
    ("uric_acid", "µmol/L"): 1 / 59.48,
    ("thyroid_tsh", "mIU/L"): 1.0,
    ("sodium", "mEq/L"): 1.0,
    ("potassium", "mEq/L"): 1.0,
}
