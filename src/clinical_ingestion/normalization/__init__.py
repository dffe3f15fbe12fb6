# ============================================================================
# src/clinical_ingestion/normalization/__init__.py
# ============================================================================
"""
Medical entity normalization: analyte rule table, value extraction, status.
"""
