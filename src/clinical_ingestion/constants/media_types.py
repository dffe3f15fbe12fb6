# ============================================================================
# src/clinical_ingestion/constants/media_types.py
# ============================================================================
"""
Accepted Media Types
- Grouped by the acquisition route they take
- Anything outside SUPPORTED_MEDIA_TYPES is rejected up front
"""

from pathlib import Path
from typing import Optional

TEXT_MEDIA_TYPES = frozenset({
    "text/plain",
    "text/csv",
    "application/json",
})

PDF_MEDIA_TYPES = frozenset({
    "application/pdf",
})

IMAGE_MEDIA_TYPES = frozenset({
    "image/jpeg",
    "image/jpg",
    "image/png",
    "image/tiff",
    "application/dicom",
})

OFFICE_MEDIA_TYPES = frozenset({
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/rtf",
    "text/rtf",
})

SUPPORTED_MEDIA_TYPES = TEXT_MEDIA_TYPES | PDF_MEDIA_TYPES | IMAGE_MEDIA_TYPES | OFFICE_MEDIA_TYPES

# Used when a client uploads with a generic content type
EXTENSION_MEDIA_TYPES = {
    ".pdf": "application/pdf",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".png": "image/png",
    ".tif": "image/tiff",
    ".tiff": "image/tiff",
    ".dcm": "application/dicom",
    ".txt": "text/plain",
    ".csv": "text/csv",
    ".json": "application/json",
    ".doc": "application/msword",
    ".docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    ".rtf": "application/rtf",
}


def is_supported(media_type: str) -> bool:
    return media_type.split(";")[0].strip().lower() in SUPPORTED_MEDIA_TYPES


def resolve_media_type(declared: Optional[str], filename: Optional[str] = None) -> str:
    """
    Declared media type, or the one implied by the file extension when the
    declaration is missing or generic (application/octet-stream).
    """
    declared = (declared or "").split(";")[0].strip().lower()
    if declared and declared != "application/octet-stream":
        return declared
    suffix = Path(filename or "").suffix.lower()
    return EXTENSION_MEDIA_TYPES.get(suffix, declared or "application/octet-stream")
