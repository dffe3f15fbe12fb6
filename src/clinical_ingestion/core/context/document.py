# ============================================================================
# src/clinical_ingestion/core/context/document.py
# ============================================================================
"""
Document-level inputs and intermediate artifacts
- RawDocument: bytes as received, immutable
- AcquiredText: output of the text acquisition chain
- DocumentClassification: classifier verdict
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

from .enums import AcquisitionMethod, Layout, StrategyKind


@dataclass(frozen=True)
class PatientContext:
    age: Optional[int] = None
    gender: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"age": self.age, "gender": self.gender}


@dataclass(frozen=True)
class RawDocument:
    content: bytes
    media_type: str
    filename: str = "document"
    patient: Optional[PatientContext] = None

    @property
    def normalized_media_type(self) -> str:
        # Drop parameters such as "; charset=utf-8"
        return self.media_type.split(";")[0].strip().lower()

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class AcquiredText:
    text: str
    quality_score: float
    method: AcquisitionMethod
    warnings: Tuple[str, ...] = ()

    def __post_init__(self):
        if not self.text or not self.text.strip():
            raise ValueError("AcquiredText must not be empty")
        object.__setattr__(self, "quality_score", max(0.0, min(1.0, self.quality_score)))

    @property
    def is_fallback(self) -> bool:
        return self.method == AcquisitionMethod.INTELLIGENT_FALLBACK


@dataclass(frozen=True)
class DocumentClassification:
    strategy: StrategyKind
    layout: Layout
    specialty: str = "general"
    matched_indicators: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "strategy": self.strategy.value,
            "layout": self.layout.value,
            "specialty": self.specialty,
            "matchedIndicators": list(self.matched_indicators),
        }
