# ============================================================================
# src/clinical_ingestion/classifiers/__init__.py
# ============================================================================
"""
Document classification: parsing strategy, layout, specialty, report type.
"""

from .document_classifier import DocumentClassifier
