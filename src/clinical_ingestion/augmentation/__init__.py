# ============================================================================
# src/clinical_ingestion/augmentation/__init__.py
# ============================================================================
"""
Style-matched report augmentation.
"""

from .augmenter import ReportAugmenter

__all__ = ["ReportAugmenter"]
