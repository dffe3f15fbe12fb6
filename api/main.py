# ============================================================================
# api/main.py
# ============================================================================
"""
FastAPI Backend for the Clinical Ingestion Engine

Runs on port 8000.
Provides a REST API for document analysis and text classification.
"""

import sys
import logging
from pathlib import Path
from typing import Any, Dict, Optional
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

from fastapi import FastAPI, UploadFile, File, Form, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

# Add src to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from clinical_ingestion.config import logging_settings
from clinical_ingestion.constants import resolve_media_type
from clinical_ingestion.core.context import PatientContext, RawDocument
from clinical_ingestion.core.pipeline import ClinicalIngestionPipeline
from clinical_ingestion.core.services import PipelineServices
from clinical_ingestion.utils.exceptions import UnsupportedMediaTypeError
from clinical_ingestion.utils.logging import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the pipeline once at startup so requests share rule tables and OCR workers."""
    setup_logging(
        level=logging_settings.LOG_LEVEL,
        log_file=logging_settings.LOG_FILE,
        format_json=logging_settings.LOG_JSON,
    )
    # A pipeline set before startup (tests) is kept
    if getattr(app.state, "pipeline", None) is None:
        app.state.pipeline = ClinicalIngestionPipeline(PipelineServices.build_default())
        logger.info("Clinical ingestion pipeline initialized")
    yield


app = FastAPI(
    title="Clinical Ingestion Engine API",
    description="API for extracting, validating and benchmarking medical documents",
    version="1.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_origin_regex=r"http://192\.168\.\d+\.\d+:\d+",
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ============================================================================
# Models
# ============================================================================

class ClassifyRequest(BaseModel):
    text: str = Field(..., min_length=1)
    handwritten: bool = False
    filename: Optional[str] = None


# ============================================================================
# Endpoints
# ============================================================================

@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "ok", "service": "Clinical Ingestion Engine API"}


@app.get("/api/health")
async def health(request: Request):
    """Health check for monitoring."""
    pipeline: ClinicalIngestionPipeline = request.app.state.pipeline
    return {
        "status": "healthy",
        "ocr_workers": pipeline.services.ocr_pool.size,
        "parameter_rules": len(pipeline.services.rules),
        "rules_version": pipeline.services.rules.version,
    }


@app.post("/api/v1/analyze")
async def analyze_document(
    request: Request,
    file: UploadFile = File(...),
    age: Optional[int] = Form(None),
    gender: Optional[str] = Form(None),
) -> Dict[str, Any]:
    """
    Analyze an uploaded medical document.

    Args:
        file: Document (PDF, image, text, JSON or office document)
        age: Optional patient age for age-adjusted benchmarks
        gender: Optional patient gender for gender-specific ranges

    Returns:
        ParsingResult JSON
    """
    pipeline: ClinicalIngestionPipeline = request.app.state.pipeline

    content = await file.read()
    media_type = resolve_media_type(file.content_type, file.filename)
    patient = PatientContext(age=age, gender=gender) if age is not None or gender else None

    document = RawDocument(
        content=content,
        media_type=media_type,
        filename=file.filename or "upload",
        patient=patient,
    )

    try:
        result = await pipeline.process(document)
    except UnsupportedMediaTypeError as e:
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Analyzed {document.filename}: {result.parsing_method}, confidence {result.confidence:.2f}")
    return result.to_dict()


@app.post("/api/v1/classify")
async def classify_text(request: Request, body: ClassifyRequest) -> Dict[str, Any]:
    """Classify raw text without running extraction."""
    pipeline: ClinicalIngestionPipeline = request.app.state.pipeline
    classifier = pipeline.services.classifier

    classification = classifier.classify(
        body.text,
        metadata={"handwritten": body.handwritten} if body.handwritten else None,
        filename=body.filename,
    )
    payload = classification.to_dict()
    payload["reportType"] = classifier.detect_report_type(body.text)
    return payload


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
