# ============================================================================
# src/clinical_ingestion/strategies/tabular.py
# ============================================================================
"""
Tabular Extractor

Lab reports exported as tables: one parameter per row, columns separated
by pipes, tabs or runs of spaces. CSV exports split on commas when a row
has neither pipes nor tabs.

    Test        | Result | Unit  | Reference
    Glucose     | 95     | mg/dL | 70-110
    Hemoglobin  | 13.5   | g/dL  | 12-16

Rows without delimiters are tried against the "Name: value unit (range)",
"Name - value" and "Name = value" forms.

Each parameter is mapped to a recognition rule and a LOINC code. Rows the
rule table does not know become TestResults only.
"""

import csv
import re
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ..constants.loinc import LOINC_VERSION, get_loinc_code
from ..core.context.enums import LabStatus, StrategyKind
from ..core.context.medical_data import ExtractedMedicalData, TestResult
from ..core.context.results import TraceabilityRecord
from ..normalization.entity_normalizer import MedicalEntityNormalizer
from ..normalization.status import classify_lab_status
from ..utils.text_normalizer import normalize_unit
from .base import ExtractionOutcome, computed_confidence

logger = logging.getLogger(__name__)

BASELINE_CONFIDENCE = 0.99

CELL_SPLIT = re.compile(r"[ \t]*\|[ \t]*|\t|[ \t]{2,}")

NUMBER_CELL = re.compile(r"^[<>]?\s*(\d+(?:[.,]\d+)?)(?:\s*(?P<unit>[A-Za-zµ%][A-Za-zµ/%]*))?\s*\*?$")
RANGE = re.compile(r"(\d+(?:\.\d+)?)\s*[-–]\s*(\d+(?:\.\d+)?)")
UNIT_CELL = re.compile(r"^[A-Za-zµ%][A-Za-zµ/%^0-9\s]{0,11}$")

# Undelimited rows, tried in order
ROW_PATTERNS = [
    re.compile(
        r"^(?P<name>[A-Za-z][A-Za-z0-9 ()]*?)\s*[:\-]\s*(?P<value>\d+(?:\.\d+)?)(?![\d/])\s*"
        r"(?P<unit>[A-Za-z/%µ]*)\s*(?:\((?P<range>[0-9.,\s\-–]+)\))?"
    ),
    re.compile(
        r"^(?P<name>[A-Za-z][A-Za-z0-9 ()]*?)\s*=\s*(?P<value>\d+(?:\.\d+)?)(?![\d/])\s*"
        r"(?P<unit>[A-Za-z/%µ]*)\s*(?:\((?P<range>[0-9.,\s\-–]+)\))?"
    ),
]


@dataclass
class TableRow:
    name: str
    value: float
    unit: str
    ref_min: Optional[float]
    ref_max: Optional[float]
    source_text: str


def _parse_range(text: Optional[str]) -> Tuple[Optional[float], Optional[float]]:
    if not text:
        return None, None
    match = RANGE.search(text)
    if not match:
        return None, None
    low, high = float(match.group(1)), float(match.group(2))
    if not low < high:
        return None, None
    return low, high


def _parse_number(cell: str) -> Tuple[Optional[float], str]:
    match = NUMBER_CELL.match(cell.strip())
    if not match:
        return None, ""
    return float(match.group(1).replace(",", "")), match.group("unit") or ""


def split_cells(line: str) -> List[str]:
    """Split a table row into non-empty cells."""
    stripped = line.strip()
    if "|" not in stripped and "\t" not in stripped and "," in stripped:
        cells = next(csv.reader([stripped]), [])
    else:
        cells = CELL_SPLIT.split(stripped.strip("|"))
    return [c.strip() for c in cells if c.strip()]


def parse_delimited_row(line: str) -> Optional[TableRow]:
    """Parse a pipe/tab/space/comma delimited row; None for headers and prose."""
    cells = split_cells(line)
    if len(cells) < 2 or not re.search(r"[A-Za-z]", cells[0]):
        return None

    value_index = None
    value = None
    unit = ""
    for i, cell in enumerate(cells[1:], start=1):
        value, unit = _parse_number(cell)
        if value is not None:
            value_index = i
            break
    if value_index is None:
        return None

    ref_min = ref_max = None
    for cell in cells[value_index + 1:]:
        if ref_min is None:
            ref_min, ref_max = _parse_range(cell)
            if ref_min is not None:
                continue
        if not unit and UNIT_CELL.match(cell) and cell.upper() not in ("H", "L", "HIGH", "LOW"):
            unit = cell

    return TableRow(
        name=cells[0],
        value=value,
        unit=unit,
        ref_min=ref_min,
        ref_max=ref_max,
        source_text=line.strip(),
    )


def parse_inline_row(line: str) -> Optional[TableRow]:
    """Parse the colon, dash and equals forms."""
    stripped = line.strip()
    for pattern in ROW_PATTERNS:
        match = pattern.match(stripped)
        if match:
            ref_min, ref_max = _parse_range(match.group("range"))
            return TableRow(
                name=match.group("name").strip(),
                value=float(match.group("value")),
                unit=match.group("unit") or "",
                ref_min=ref_min,
                ref_max=ref_max,
                source_text=stripped,
            )
    return None


class TabularExtractor:
    """Row-oriented extraction with LOINC mapping."""

    kind = StrategyKind.TABULAR

    def __init__(self, normalizer: MedicalEntityNormalizer):
        self.normalizer = normalizer

    def extract(self, text: str) -> ExtractionOutcome:
        data = ExtractedMedicalData()
        traceability: List[TraceabilityRecord] = []

        rows = self._parse_rows(text)
        seen = set()

        for row in rows:
            rule = self.normalizer.match_parameter(row.name)

            if rule is None:
                data.test_results.append(self._unmapped_result(row))
                continue

            lab_value = self.normalizer.normalize_measurement(
                rule,
                row.value,
                unit=row.unit,
                ref_min=row.ref_min,
                ref_max=row.ref_max,
                source_text=row.source_text,
            )
            if lab_value is None:
                continue

            dedupe_key = (lab_value.parameter, lab_value.value)
            if dedupe_key in seen:
                continue
            seen.add(dedupe_key)

            data.lab_values.append(lab_value)
            data.test_results.append(TestResult(
                test_name=lab_value.parameter,
                value=lab_value.value,
                unit=lab_value.unit,
                reference_range=lab_value.normal_range,
                status=lab_value.status,
                category=rule.category,
                loinc_code=lab_value.loinc_code,
            ))

            if lab_value.loinc_code:
                traceability.append(TraceabilityRecord(
                    claim=f"{lab_value.parameter} mapped to LOINC {lab_value.loinc_code}",
                    source="LOINC mapping",
                    confidence=BASELINE_CONFIDENCE,
                    database="LOINC",
                    reference=LOINC_VERSION,
                ))

        if not rows:
            # No table structure survived acquisition; read values inline
            data.lab_values.extend(self.normalizer.extract_lab_values(text, aggressive=True))

        traceability.append(TraceabilityRecord(
            claim=f"Tabular structure parsed: {len(rows)} rows, {len(data.lab_values)} lab values",
            source="Tabular Extractor",
            confidence=BASELINE_CONFIDENCE,
            database="LOINC",
            reference=LOINC_VERSION,
        ))

        candidate_lines = [line for line in text.splitlines() if line.strip()]
        layout_quality = len(rows) / len(candidate_lines) if candidate_lines else 0.0

        return ExtractionOutcome(
            data=data,
            confidence=computed_confidence(data, BASELINE_CONFIDENCE),
            traceability=traceability,
            layout_quality=min(1.0, layout_quality),
        )

    def _parse_rows(self, text: str) -> List[TableRow]:
        rows = []
        for line in text.splitlines():
            if not line.strip():
                continue
            stripped = line.strip()
            delimited = CELL_SPLIT.search(stripped) or "," in stripped
            row = parse_delimited_row(line) if delimited else None
            if row is None:
                row = parse_inline_row(line)
            if row is not None:
                rows.append(row)
        return rows

    def _unmapped_result(self, row: TableRow) -> TestResult:
        status = LabStatus.NORMAL
        reference_range = ""
        if row.ref_min is not None and row.ref_max is not None:
            status = classify_lab_status(row.value, row.ref_min, row.ref_max)
            reference_range = f"{row.ref_min:g}-{row.ref_max:g}"

        logger.debug(f"Unmapped table row: {row.name}")

        return TestResult(
            test_name=row.name,
            value=row.value,
            unit=normalize_unit(row.unit),
            reference_range=reference_range,
            status=status,
            loinc_code=get_loinc_code(row.name),
        )
