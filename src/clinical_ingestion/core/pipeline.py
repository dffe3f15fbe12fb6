# ============================================================================
# src/clinical_ingestion/core/pipeline.py
# ============================================================================
"""
Clinical Ingestion Pipeline

This is the MAIN entry point for document processing.

Flow (per document, strictly sequential):
1. Reject unsupported media types
2. Acquire text (native -> PDF layer -> OCR -> intelligent fallback)
3. Classify into a parsing strategy
4. Extract with the strategy's extractor (tagged dispatch via the registry)
5. Cross-verify extracted values against the acquired text
6. Confidence gate: degrade once, or continue
7. Benchmark lab values and augment the report

An accepted document always yields a ParsingResult. Only a rejected media
type raises. A failure after extraction keeps the extracted data and is
noted in warnings and traceability.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence

from ..config import threshold_settings, ThresholdSettings
from ..constants.media_types import is_supported
from .context.document import AcquiredText, DocumentClassification, RawDocument
from .context.enums import AcquisitionMethod
from .context.medical_data import ExtractedMedicalData
from .context.results import ParsingResult, SourceMetadata, TraceabilityRecord
from ..extractors.fallback_text import generate_fallback_text
from ..strategies.base import ExtractionOutcome, computed_confidence
from ..utils.exceptions import ExtractionError, UnsupportedMediaTypeError
from ..utils.logging import LogContext, log_performance
from .services import PipelineServices

logger = logging.getLogger(__name__)

FALLBACK_PARSING_METHOD = "intelligent-fallback"
NORMALIZER_ONLY_METHOD = "normalizer-only"


@dataclass
class BatchItem:
    """One entry of a batch report: a result, or the rejection that prevented one."""
    filename: str
    result: Optional[ParsingResult] = None
    error: Optional[str] = None

    @property
    def succeeded(self) -> bool:
        return self.result is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filename": self.filename,
            "result": self.result.to_dict() if self.result else None,
            "error": self.error,
        }


class ClinicalIngestionPipeline:
    """
    Main orchestration engine for document processing.

    Holds no per-document state; one instance serves concurrent documents.
    All collaborators come from the injected PipelineServices.
    """

    def __init__(
        self,
        services: PipelineServices,
        thresholds: Optional[ThresholdSettings] = None,
    ):
        self.services = services
        self.thresholds = thresholds or threshold_settings

    # ========================================================================
    # MAIN PROCESSING PIPELINE
    # ========================================================================

    @log_performance(logger, "Document processing")
    async def process(
        self,
        document: RawDocument,
        hints: Optional[Dict[str, Any]] = None,
    ) -> ParsingResult:
        """
        Process one document end to end.

        Args:
            document: Raw bytes plus declared media type and patient context
            hints: Optional classifier hints, e.g. {"handwritten": True}

        Returns:
            ParsingResult (JSON-ready via to_dict())

        Raises:
            UnsupportedMediaTypeError: declared media type is not accepted

        Example:
            result = await pipeline.process(RawDocument(
                content=pdf_bytes,
                media_type="application/pdf",
                filename="lipid_panel.pdf",
                patient=PatientContext(age=45, gender="female"),
            ))
        """
        if not is_supported(document.normalized_media_type):
            raise UnsupportedMediaTypeError(document.media_type)

        with LogContext(logger, document=document.filename, media_type=document.normalized_media_type):
            logger.info(f"Processing document: {document.filename} ({document.size} bytes)")

            try:
                # ============================================================
                # STEP 1: Text acquisition
                # ============================================================
                acquired = await self.services.acquisition.acquire(document)
                logger.info(f"Acquired {len(acquired.text)} chars via {acquired.method.value}")

                # ============================================================
                # STEP 2: Classification
                # ============================================================
                classification = self.services.classifier.classify(
                    acquired.text,
                    metadata=hints,
                    acquisition_method=acquired.method,
                    filename=document.filename,
                )
                logger.info(
                    f"Classified as: {classification.strategy.value} ({classification.layout.value})"
                )

                # ============================================================
                # STEP 3: Strategy extraction
                # ============================================================
                result = self._extract(acquired, classification, document.filename)
            except Exception as e:
                logger.error(f"Processing failed for {document.filename}: {e}", exc_info=True)
                return self._failure_result(document, e)

            stage = "cross-verification"
            try:
                # ============================================================
                # STEP 4: Cross-verification
                # ============================================================
                confidence, records = self.services.cross_verifier.verify(
                    result.extracted_data, result.confidence, acquired.text,
                )
                result.confidence = confidence
                for record in records:
                    result.add_trace(record)

                # ============================================================
                # STEP 5: Confidence gate
                # ============================================================
                stage = "confidence gate"
                decision = self.services.gate.inspect(result, acquired)
                if decision.degraded:
                    logger.info(f"Degraded result: {decision.reason}")
                    return result

                # ============================================================
                # STEP 6: Benchmarking and augmentation
                # ============================================================
                stage = "benchmarking"
                patient = document.patient
                result.benchmarks = self.services.benchmarking.benchmark(
                    result.extracted_data.lab_values,
                    age=patient.age if patient else None,
                    gender=patient.gender if patient else None,
                )

                stage = "augmentation"
                result.augmented_report = self.services.augmenter.augment(
                    acquired.text, result.extracted_data, result.benchmarks,
                )
            except Exception as e:
                return self._stage_failed(document, result, stage, e)

            logger.info(
                f"Processing complete: {len(result.extracted_data.lab_values)} lab values, "
                f"confidence {result.confidence:.2f}"
            )
            return result

    def _stage_failed(
        self,
        document: RawDocument,
        result: ParsingResult,
        stage: str,
        error: Exception,
    ) -> ParsingResult:
        """Keep what was extracted before a late stage failed; degrade if nothing was."""
        logger.error(f"{stage} failed for {document.filename}: {error}", exc_info=True)
        if not result.extracted_data.has_real_data:
            return self._failure_result(document, error)

        result.warnings.append(f"{stage} failed: {error}")
        result.add_trace(TraceabilityRecord(
            claim=f"{stage} skipped",
            source=type(error).__name__,
            confidence=result.confidence,
            database="pipeline",
            reference=str(error),
        ))
        return result

    def _extract(
        self,
        acquired: AcquiredText,
        classification: DocumentClassification,
        filename: str,
    ) -> ParsingResult:
        warnings = list(acquired.warnings)
        parsing_method = classification.strategy.value

        try:
            outcome = self.services.registry.extract(classification.strategy, acquired.text)
        except ExtractionError as e:
            logger.warning(
                f"{classification.strategy.value} extractor failed, using normalizer only: {e}",
                exc_info=True,
            )
            warnings.append(f"{classification.strategy.value} extraction failed: {e}")
            outcome = self._normalizer_only(acquired.text)
            parsing_method = NORMALIZER_ONLY_METHOD

        confidence = outcome.confidence
        if acquired.is_fallback:
            parsing_method = FALLBACK_PARSING_METHOD
            confidence = self.thresholds.FALLBACK_CONFIDENCE

        metadata = SourceMetadata(
            layout=classification.layout,
            quality=acquired.quality_score * outcome.layout_quality,
            acquisition_method=acquired.method,
            specialty=classification.specialty,
            report_type=self.services.classifier.detect_report_type(acquired.text),
            filename=filename,
        )

        return ParsingResult(
            extracted_data=outcome.data,
            confidence=confidence,
            parsing_method=parsing_method,
            source_metadata=metadata,
            traceability=list(outcome.traceability),
            warnings=warnings,
        )

    def _normalizer_only(self, text: str) -> ExtractionOutcome:
        data = ExtractedMedicalData(
            lab_values=self.services.normalizer.extract_lab_values(text, aggressive=True),
        )
        return ExtractionOutcome(
            data=data,
            confidence=computed_confidence(data, self.thresholds.COMPUTED_CONFIDENCE_FLOOR),
            layout_quality=0.5,
        )

    # ========================================================================
    # BATCH PROCESSING
    # ========================================================================

    async def process_batch(self, documents: Sequence[RawDocument]) -> List[BatchItem]:
        """
        Process documents concurrently, bounded by the OCR pool size.

        Results come back in input order. Rejected media types are reported
        per document; any other failure still yields a fallback result.
        """
        semaphore = asyncio.Semaphore(self.services.ocr_pool.size)

        async def run(document: RawDocument) -> BatchItem:
            async with semaphore:
                try:
                    return BatchItem(filename=document.filename, result=await self.process(document))
                except UnsupportedMediaTypeError as e:
                    logger.warning(f"Rejected {document.filename}: {e}")
                    return BatchItem(filename=document.filename, error=str(e))
                except Exception as e:
                    logger.error(f"Processing failed for {document.filename}: {e}", exc_info=True)
                    return BatchItem(filename=document.filename, result=self._failure_result(document, e))

        items = await asyncio.gather(*(run(document) for document in documents))
        logger.info(
            f"Batch complete: {sum(item.succeeded for item in items)}/{len(items)} documents produced results"
        )
        return list(items)

    def _failure_result(self, document: RawDocument, error: Exception) -> ParsingResult:
        """Degraded result for a document whose run failed unexpectedly."""
        acquired = AcquiredText(
            text=generate_fallback_text(document.filename),
            quality_score=0.0,
            method=AcquisitionMethod.INTELLIGENT_FALLBACK,
            warnings=(f"Processing failed: {error}",),
        )
        classification = self.services.classifier.classify(
            acquired.text, acquisition_method=acquired.method, filename=document.filename,
        )
        result = ParsingResult(
            extracted_data=ExtractedMedicalData(),
            confidence=self.thresholds.FALLBACK_CONFIDENCE,
            parsing_method=FALLBACK_PARSING_METHOD,
            source_metadata=SourceMetadata(
                layout=classification.layout,
                quality=0.0,
                acquisition_method=acquired.method,
                filename=document.filename,
            ),
            warnings=list(acquired.warnings),
        )
        self.services.gate.inspect(result, acquired)
        return result
