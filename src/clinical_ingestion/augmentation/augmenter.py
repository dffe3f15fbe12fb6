# ============================================================================
# src/clinical_ingestion/augmentation/augmenter.py
# ============================================================================
"""
Context-Preserving Augmentation

Appends a benchmark annotation block written in the style of the source
document. The original text is never edited; the result always starts
with it byte-for-byte.

Styles (first match wins):
    lab_report       \\hline or \\textbf present -> LaTeX table
    imaging_report   IMPRESSION: or FINDINGS: present -> [AI CORRELATION] list
    clinical_notes   HISTORY: or EXAMINATION: present -> [AI Augmentation] notes
    generic          anything else -> "--- AI Enhanced Analysis ---" lines
"""

import logging
from typing import List, Optional

from ..config import BenchmarkSettings, benchmark_settings
from ..core.context.medical_data import ExtractedMedicalData
from ..core.context.results import BenchmarkRecord

logger = logging.getLogger(__name__)

STYLE_MARKERS = [
    ("lab_report", ("\\hline", "\\textbf")),
    ("imaging_report", ("IMPRESSION:", "FINDINGS:")),
    ("clinical_notes", ("HISTORY:", "EXAMINATION:")),
]


class ReportAugmenter:
    """Style-matched benchmark annotations."""

    def __init__(self, settings: Optional[BenchmarkSettings] = None):
        self.settings = settings or benchmark_settings

    @staticmethod
    def detect_style(text: str) -> str:
        for style, markers in STYLE_MARKERS:
            if any(marker in text for marker in markers):
                return style
        return "generic"

    def _percentile(self, benchmark: BenchmarkRecord) -> int:
        if benchmark.population_percentile is None:
            return self.settings.DEFAULT_PERCENTILE
        return benchmark.population_percentile

    def ai_note(self, benchmark: BenchmarkRecord) -> str:
        percentile = self._percentile(benchmark)
        if percentile > self.settings.PERCENTILE_URGENT:
            return "Requires immediate attention"
        if percentile > self.settings.PERCENTILE_ALERT:
            return "Above normal range"
        if percentile < self.settings.PERCENTILE_LOW:
            return "Below normal range"
        return "Within normal limits"

    def augment(
        self,
        original_text: str,
        data: ExtractedMedicalData,
        benchmarks: List[BenchmarkRecord],
    ) -> str:
        """
        Original text followed by a style-matched annotation block.

        Args:
            original_text: Acquired document text, returned unchanged as prefix
            data: Extracted data (diagnoses feed the imaging correlation)
            benchmarks: Benchmark records for the extracted lab values
        """
        style = self.detect_style(original_text)
        logger.debug(f"Augmenting report in {style} style ({len(benchmarks)} benchmarks)")

        if style == "lab_report":
            return original_text + self._lab_report_block(benchmarks)
        if style == "imaging_report":
            return original_text + self._imaging_block(data, benchmarks)
        if style == "clinical_notes":
            return original_text + self._clinical_notes_block(benchmarks)
        return original_text + self._generic_block(benchmarks)

    def _clinical_notes_block(self, benchmarks: List[BenchmarkRecord]) -> str:
        block = ""
        for benchmark in benchmarks:
            if self._percentile(benchmark) <= self.settings.PERCENTILE_ALERT:
                continue
            regional = benchmark.regional_standard
            span = f"{regional.min:g}-{regional.max:g}" if regional else "not available"
            block += (
                f"\n[AI Augmentation]\n*{benchmark.parameter}: {benchmark.patient_value:g} - "
                f">90th percentile for age/gender (Regional Standards: {span})*"
            )
        return block

    def _lab_report_block(self, benchmarks: List[BenchmarkRecord]) -> str:
        block = "\n\n% AI Enhanced Analysis\n"
        block += "\\begin{table}[h]\n\\centering\n"
        block += "\\begin{tabular}{|l|l|l|l|}\n\\hline\n"
        block += "\\textbf{Parameter} & \\textbf{Value} & \\textbf{Percentile} & \\textbf{AI Note} \\\\\n\\hline\n"

        for benchmark in benchmarks:
            percentile = self._percentile(benchmark)
            color = "red" if percentile > self.settings.PERCENTILE_ALERT else "black"
            block += (
                f"{benchmark.parameter} & {benchmark.patient_value:g} & {percentile}\\% & "
                f"\\textcolor{{{color}}}{{{self.ai_note(benchmark)}}} \\\\\n\\hline\n"
            )

        block += "\\end{tabular}\n\\end{table}"
        return block

    def _imaging_block(self, data: ExtractedMedicalData, benchmarks: List[BenchmarkRecord]) -> str:
        block = "\n\n[AI CORRELATION]\n"
        for benchmark in benchmarks:
            block += (
                f"- {benchmark.parameter}: {benchmark.patient_value:g} "
                f"({self._percentile(benchmark)}th percentile) - {self.ai_note(benchmark)}\n"
            )
        for diagnosis in data.diagnoses:
            if not diagnosis.negated:
                block += f"- Correlate with: {diagnosis.condition}\n"
        if not benchmarks and not any(not d.negated for d in data.diagnoses):
            block += "- No quantitative findings available for correlation\n"
        return block

    def _generic_block(self, benchmarks: List[BenchmarkRecord]) -> str:
        block = "\n\n--- AI Enhanced Analysis ---\n"
        for benchmark in benchmarks:
            block += f"{benchmark.parameter}: {self.ai_note(benchmark)}\n"
        return block
