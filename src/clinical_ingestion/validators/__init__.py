# ============================================================================
# src/clinical_ingestion/validators/__init__.py
# ============================================================================
"""
Validation layer: plausibility, cross-verification, confidence gate.
"""
