# ============================================================================
# src/clinical_ingestion/strategies/structured.py
# ============================================================================
"""
Structured Extractor

Default strategy for reports with labeled sections. Two paths:

1. JSON payloads ({"labResults": [...], "medications": [...],
   "diagnoses": [...]}); damaged JSON is repaired with json_repair
2. Section segmentation by header patterns, then per-section extraction:
   - investigations (or the whole text): lab values via the normalizer
   - diagnosis: one Diagnosis per line / comma item
   - treatment: medications
   - recommendations: bullet or line items
   - header fields: doctor, hospital, report date
"""

import json
import re
import logging
from typing import Any, Dict, List, Optional

from json_repair import repair_json

from ..core.context.enums import StrategyKind
from ..core.context.medical_data import Diagnosis, ExtractedMedicalData, Medication
from ..core.context.results import TraceabilityRecord
from ..normalization.entity_normalizer import MedicalEntityNormalizer
from .base import ExtractionOutcome, computed_confidence

logger = logging.getLogger(__name__)

BASELINE_CONFIDENCE = 0.95
PARSER_REFERENCE = "vitalis_structured_engine_v1.0"

# Confidence penalty when json_repair had to fix the payload
JSON_REPAIR_CONFIDENCE_PENALTY = 0.10

# Ordered section headers; a header must start its line
SECTION_HEADERS = [
    ("patient_info", r"patient\s+(?:info(?:rmation)?|details)|demographics"),
    ("chief_complaint", r"chief\s+complaints?|presenting\s+complaints?|c/o"),
    ("history", r"(?:past\s+)?(?:medical\s+)?history(?:\s+of\s+present\s+illness)?"),
    ("examination", r"(?:physical\s+|clinical\s+)?examination|vitals?"),
    ("investigations", r"investigations?|lab(?:oratory)?\s+(?:results?|findings|report)|test\s+results?"),
    ("diagnosis", r"(?:final\s+|provisional\s+)?diagnos[ie]s|impression|assessment"),
    ("treatment", r"treatment(?:\s+plan)?|medications?|prescription|rx|plan"),
    ("recommendations", r"recommendations?|advice|follow[\s-]*up"),
]

SECTION_PATTERN = re.compile(
    r"^[ \t]*(?:" + "|".join(f"(?P<{name}>{pattern})" for name, pattern in SECTION_HEADERS) + r")"
    r"[ \t]*(?::|-|$)[ \t]*",
    re.IGNORECASE | re.MULTILINE,
)

DOCTOR_PATTERN = re.compile(r"(?:Dr\.?|Doctor)[ \t]*:?[ \t]*([A-Z][A-Za-z.]*(?:[ \t]+[A-Z][A-Za-z.]*){0,3})")
HOSPITAL_PATTERN = re.compile(
    r"^[ \t]*([A-Z][\w&.' ]{2,60}?(?:Hospital|Clinic|Diagnostics|Laborator(?:y|ies)|Medical Cent(?:er|re)|Healthcare))\b",
    re.MULTILINE,
)
DATE_PATTERN = re.compile(
    r"(?:date|reported|collected)[^:\n]{0,20}:[ \t]*"
    r"(\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}|\d{4}-\d{2}-\d{2}|\d{1,2}[ \t]+[A-Za-z]{3,9}[ \t]+\d{4})",
    re.IGNORECASE,
)
MEDICATION_LINE = re.compile(
    r"(?:tab(?:let)?\.?|cap(?:sule)?\.?|syrup|inj\.?)?[ \t]*"
    r"(?P<name>[A-Za-z][A-Za-z\-]+)"
    r"(?:[ \t]+(?P<dose>\d+(?:\.\d+)?[ \t]*(?:mg|mcg|g|ml|iu|units)))?"
    r"(?:[ \t]+(?P<freq>od|bd|tds|qid|hs|sos|once daily|twice daily|daily|at night))?",
    re.IGNORECASE,
)
BULLET = re.compile(r"^[ \t]*(?:[-*•]|\d+[.)])[ \t]*")


def _split_items(body: str) -> List[str]:
    items = []
    for line in body.splitlines():
        line = BULLET.sub("", line).strip()
        if not line:
            continue
        items.extend(part.strip() for part in re.split(r"[;,]", line) if part.strip())
    return items


class StructuredExtractor:
    """Section-aware extraction for labeled reports and JSON payloads."""

    kind = StrategyKind.STRUCTURED

    def __init__(self, normalizer: MedicalEntityNormalizer):
        self.normalizer = normalizer

    def extract(self, text: str) -> ExtractionOutcome:
        payload, repaired = self._parse_json(text)
        if payload is not None:
            return self._extract_from_json(payload, repaired)

        data = ExtractedMedicalData()
        data.sections = self.segment_sections(text)

        lab_source = data.sections.get("investigations") or text
        data.lab_values = self.normalizer.extract_lab_values(lab_source, aggressive=True)
        if not data.lab_values and lab_source is not text:
            data.lab_values = self.normalizer.extract_lab_values(text, aggressive=True)

        if "diagnosis" in data.sections:
            data.diagnoses = [
                Diagnosis(condition=item, source_text=item)
                for item in _split_items(data.sections["diagnosis"])
            ]

        if "treatment" in data.sections:
            data.medications = self._parse_medications(data.sections["treatment"])

        if "recommendations" in data.sections:
            data.recommendations = _split_items(data.sections["recommendations"])

        self._extract_header_fields(text, data)

        traceability = [TraceabilityRecord(
            claim=f"Structured parsing: {len(data.sections)} sections, {len(data.lab_values)} lab values",
            source="Section segmentation with medical field validation",
            confidence=BASELINE_CONFIDENCE,
            database="Structured Data Parser",
            reference=PARSER_REFERENCE,
        )]

        return ExtractionOutcome(
            data=data,
            confidence=computed_confidence(data, BASELINE_CONFIDENCE),
            traceability=traceability,
            layout_quality=min(1.0, len(data.sections) / len(SECTION_HEADERS)) if data.sections else 0.5,
        )

    def segment_sections(self, text: str) -> Dict[str, str]:
        """
        Split text into named sections by header lines.

        A repeated header appends to the existing section. Text before the
        first header is not assigned to any section.
        """
        sections: Dict[str, str] = {}
        matches = list(SECTION_PATTERN.finditer(text))

        for i, match in enumerate(matches):
            name = match.lastgroup
            end = matches[i + 1].start() if i + 1 < len(matches) else len(text)
            body = text[match.end():end].strip()
            if not body:
                continue
            sections[name] = f"{sections[name]}\n{body}" if name in sections else body

        return sections

    def _parse_medications(self, body: str) -> List[Medication]:
        medications = []
        for item in _split_items(body):
            match = MEDICATION_LINE.match(item)
            if not match:
                continue
            medications.append(Medication(
                name=match.group("name"),
                dosage=(match.group("dose") or "").replace(" ", ""),
                frequency=match.group("freq") or "as prescribed",
            ))
        return medications

    def _extract_header_fields(self, text: str, data: ExtractedMedicalData) -> None:
        match = DOCTOR_PATTERN.search(text)
        if match:
            data.doctor_name = f"Dr. {match.group(1).strip()}"

        match = HOSPITAL_PATTERN.search(text)
        if match:
            data.hospital_name = match.group(1).strip()

        match = DATE_PATTERN.search(text)
        if match:
            data.report_date = match.group(1)

    def _parse_json(self, text: str):
        """
        Parse a JSON payload with repair fallback.

        Returns:
            (payload_dict or None, json_was_repaired)
        """
        stripped = text.strip()
        if not stripped.startswith("{"):
            return None, False

        try:
            payload = json.loads(stripped)
            return (payload, False) if isinstance(payload, dict) else (None, False)
        except json.JSONDecodeError:
            pass

        repaired = repair_json(stripped, return_objects=True)
        if isinstance(repaired, dict) and repaired:
            logger.warning(f"json_repair fixed payload - potential data loss. First 200 chars: {stripped[:200]}")
            return repaired, True

        return None, False

    def _extract_from_json(self, payload: Dict[str, Any], repaired: bool) -> ExtractionOutcome:
        data = ExtractedMedicalData()

        for item in payload.get("labResults") or []:
            lab_value = self._json_lab_value(item)
            if lab_value is not None:
                data.lab_values.append(lab_value)

        for item in payload.get("medications") or []:
            if isinstance(item, dict) and item.get("name"):
                data.medications.append(Medication(
                    name=str(item["name"]),
                    dosage=str(item.get("dose") or item.get("dosage") or ""),
                    frequency=str(item.get("frequency") or "as prescribed"),
                    indication=str(item.get("indication") or ""),
                ))

        for item in payload.get("diagnoses") or []:
            condition = item.get("condition") if isinstance(item, dict) else item
            if condition:
                data.diagnoses.append(Diagnosis(condition=str(condition)))

        confidence = computed_confidence(data, BASELINE_CONFIDENCE)
        if repaired:
            confidence = max(0.0, confidence - JSON_REPAIR_CONFIDENCE_PENALTY)

        traceability = [TraceabilityRecord(
            claim="Structured medical data parsing with JSON support",
            source="Native JSON parser with medical field validation",
            confidence=confidence,
            database="Structured Data Parser",
            reference=PARSER_REFERENCE,
        )]

        return ExtractionOutcome(
            data=data,
            confidence=confidence,
            traceability=traceability,
            layout_quality=1.0,
        )

    def _json_lab_value(self, item: Any):
        if not isinstance(item, dict):
            return None

        rule = self.normalizer.match_parameter(str(item.get("name") or item.get("parameter") or ""))
        if rule is None:
            return None

        try:
            value = float(item.get("value"))
        except (TypeError, ValueError):
            return None

        ref_min, ref_max = self._json_range(item.get("normalRange"))
        return self.normalizer.normalize_measurement(
            rule,
            value,
            unit=item.get("unit"),
            ref_min=ref_min,
            ref_max=ref_max,
            source_text=f"{item.get('name')}: {item.get('value')} {item.get('unit') or ''}".strip(),
        )

    @staticmethod
    def _json_range(value: Any):
        if isinstance(value, dict):
            low, high = value.get("min"), value.get("max")
        elif isinstance(value, str):
            match = re.search(r"(\d+(?:\.\d+)?)\s*[-–]\s*(\d+(?:\.\d+)?)", value)
            low, high = (match.group(1), match.group(2)) if match else (None, None)
        else:
            return None, None
        try:
            return float(low), float(high)
        except (TypeError, ValueError):
            return None, None
