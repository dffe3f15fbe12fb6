# ============================================================================
# src/clinical_ingestion/core/services.py
# ============================================================================
"""
Pipeline Services

Every long-lived collaborator the pipeline uses, built once and passed in.
There are no module-level engines: tests and the API each build their own
PipelineServices (tests usually with a fake OCR pool).
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..augmentation.augmenter import ReportAugmenter
from ..benchmarking.engine import BenchmarkingEngine
from ..benchmarking.population import POPULATION_FILE, PopulationReferenceStore
from ..benchmarking.standards_store import STANDARDS_FILE, ReferenceStandardsStore
from ..classifiers.document_classifier import DocumentClassifier
from ..config import base_settings
from ..extractors.ocr_extractor import OCRWorkerPool
from ..extractors.text_extractor import TextAcquisitionChain
from ..normalization.entity_normalizer import MedicalEntityNormalizer
from ..normalization.rules import ParameterRuleTable, load_parameter_rules
from ..strategies.registry import ExtractorRegistry
from ..validators.confidence_gate import ConfidenceGate
from ..validators.cross_verification import CrossVerifier

logger = logging.getLogger(__name__)


@dataclass
class PipelineServices:
    rules: ParameterRuleTable
    normalizer: MedicalEntityNormalizer
    classifier: DocumentClassifier
    registry: ExtractorRegistry
    ocr_pool: OCRWorkerPool
    acquisition: TextAcquisitionChain
    cross_verifier: CrossVerifier
    gate: ConfidenceGate
    standards: ReferenceStandardsStore
    population: PopulationReferenceStore
    benchmarking: BenchmarkingEngine
    augmenter: ReportAugmenter

    @classmethod
    def build_default(
        cls,
        ocr_pool: Optional[OCRWorkerPool] = None,
        knowledge_dir: Optional[Path] = None,
    ) -> "PipelineServices":
        """
        Wire the default services from the knowledge base and settings.

        Args:
            ocr_pool: OCR pool to use (default: tesseract workers from OCRSettings)
            knowledge_dir: Override for the rule-table directory

        Raises:
            ConfigurationError: a knowledge file is missing or malformed
        """
        knowledge_dir = knowledge_dir or base_settings.KNOWLEDGE_DIR

        rules = load_parameter_rules(knowledge_dir / base_settings.PARAMETER_RULES_FILE)
        normalizer = MedicalEntityNormalizer(rules)
        classifier = DocumentClassifier()
        registry = ExtractorRegistry.build_default(
            normalizer, specialty_detector=classifier.detect_specialty,
        )

        ocr_pool = ocr_pool or OCRWorkerPool()
        standards = ReferenceStandardsStore.from_file(
            knowledge_dir / STANDARDS_FILE, rules=rules,
        )
        population = PopulationReferenceStore.from_file(knowledge_dir / POPULATION_FILE)

        logger.info(
            f"Pipeline services ready: {len(rules)} parameter rules (v{rules.version}), "
            f"{ocr_pool.size} OCR workers"
        )

        return cls(
            rules=rules,
            normalizer=normalizer,
            classifier=classifier,
            registry=registry,
            ocr_pool=ocr_pool,
            acquisition=TextAcquisitionChain(ocr_pool),
            cross_verifier=CrossVerifier(),
            gate=ConfidenceGate(classifier.detect_report_type),
            standards=standards,
            population=population,
            benchmarking=BenchmarkingEngine(standards, population, rules=rules),
            augmenter=ReportAugmenter(),
        )
