# ============================================================================
# src/clinical_ingestion/benchmarking/screening.py
# ============================================================================
"""
Age, gender and family-history screening recommendations.

The rules are a data table; each entry fires when every condition holds.
"""

from typing import Iterable, List, Optional

# (min_age, gender or None, risk factor or None, recommendations)
SCREENING_RULES = [
    (25, None, None, ["Annual diabetes screening (HbA1c or FPG)", "Blood pressure monitoring every 6 months"]),
    (30, None, None, ["Lipid profile every 2 years", "ECG baseline and every 3 years"]),
    (35, None, None, ["Comprehensive metabolic panel annually", "Thyroid function test every 3 years"]),
    (40, None, None, ["Coronary artery calcium score (if high risk)", "Annual cardiac risk assessment"]),
    (21, "female", None, ["Cervical cancer screening (Pap smear) every 3 years"]),
    (40, "female", None, ["Mammography every 2 years", "Bone density scan (if risk factors)"]),
    (40, "male", None, ["Prostate cancer screening discussion"]),
    (0, None, "family_history_diabetes", ["Annual diabetes screening from age 20", "HbA1c every 6 months if prediabetic"]),
    (0, None, "family_history_heart_disease", ["Lipid screening from age 25", "Consider genetic counseling"]),
]


def screening_recommendations(
    age: int,
    gender: Optional[str] = None,
    risk_factors: Optional[Iterable[str]] = None,
) -> List[str]:
    """Recommendations in rule order, without duplicates."""
    gender = gender.lower() if gender else None
    risk_factors = {r.lower() for r in (risk_factors or [])}

    recommendations: List[str] = []
    for min_age, rule_gender, risk_factor, items in SCREENING_RULES:
        if age < min_age:
            continue
        if rule_gender is not None and rule_gender != gender:
            continue
        if risk_factor is not None and risk_factor not in risk_factors:
            continue
        recommendations.extend(item for item in items if item not in recommendations)
    return recommendations
