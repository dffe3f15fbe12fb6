# ============================================================================
# src/clinical_ingestion/utils/__init__.py
# ============================================================================
"""
Shared utilities: exceptions, logging helpers, text normalization.
"""
