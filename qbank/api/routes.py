from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile
from fastapi.concurrency import run_in_threadpool
import logging
import os
import time
from typing import List

from qbank.config import (
    ALLOWED_FILE_EXTENSIONS,
    LEADERBOARD_DEFAULT_LIMIT,
    MAX_FILE_SIZE_MB,
)
from qbank.errors import DuplicateSubjectError, SubjectNotFoundError
from qbank.memory.loader import load_pdf_text
from qbank.models import (
    Candidate,
    CreateSubjectRequest,
    HealthResponse,
    IngestionResponse,
    IngestQuestionsRequest,
    LeaderboardEntry,
    LeaderboardResponse,
    ListSubjectsResponse,
    Subject,
    SubjectInfo,
)
from qbank.observability.logger import (
    log_request_complete,
    log_request_error,
    log_request_start,
)
from qbank.observability.metrics import metrics_tracker
from qbank.observability.posthog_client import posthog_client
from qbank.services import Services


logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================
# DEPENDENCIES
# ============================================================

def get_services(request: Request) -> Services:

    services = getattr(request.app.state, "services", None)

    if services is None:
        raise HTTPException(status_code=503, detail="Service not initialized")

    return services


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


def _find_subject(services: Services, subject_name: str) -> Subject:

    try:
        return services.store.find_subject(subject_name)

    except SubjectNotFoundError:
        raise HTTPException(status_code=404, detail="Subject not found")


def _subject_info(subject: Subject) -> SubjectInfo:

    return SubjectInfo(
        subject_id=subject.id,
        name=subject.name,
        question_count=len(subject.questions),
        created_at=subject.created_at.isoformat() if subject.created_at else None,
    )


def validate_upload(filename: str, content: bytes):

    extension = os.path.splitext(filename or "")[1].lower()

    if extension not in ALLOWED_FILE_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"Unsupported file type: {extension or 'none'}",
        )

    size_mb = len(content) / (1024 * 1024)

    if size_mb > MAX_FILE_SIZE_MB:
        raise HTTPException(
            status_code=413,
            detail=f"File too large: {size_mb:.2f}MB",
        )


def _run_ingestion(
    request: Request,
    services: Services,
    subject: Subject,
    candidates: List[Candidate],
    source: str,
    endpoint: str,
) -> IngestionResponse:

    request_id = _request_id(request)
    start_time = time.time()

    log_request_start(
        logger,
        request_id,
        endpoint,
        subject_id=subject.id,
        candidates=len(candidates),
    )

    try:

        result = services.ingestor.ingest(candidates, subject.id)

    except Exception as e:

        log_request_error(logger, request_id, endpoint, e, subject_id=subject.id)

        posthog_client.track_error(
            distinct_id=request_id,
            error_type=type(e).__name__,
            error_message=str(e),
            endpoint=endpoint,
        )

        raise

    latency = time.time() - start_time

    metrics_tracker.record_ingestion(
        processed=result.processed,
        new=result.new_count,
        recurrences=result.recurrence_count,
        failed=result.failed_count,
    )

    posthog_client.track_paper_ingested(
        distinct_id=request_id,
        subject_id=subject.id,
        source=source,
        total_candidates=result.total_candidates,
        new_questions=result.new_count,
        recurrences=result.recurrence_count,
        failed=result.failed_count,
        latency=latency,
    )

    log_request_complete(
        logger,
        request_id,
        endpoint,
        latency,
        subject_id=subject.id,
        new_questions=result.new_count,
        recurrences=result.recurrence_count,
        failed=result.failed_count,
    )

    if result.partial:
        message = "Question paper partially processed"
    else:
        message = "Question paper processed successfully"

    return IngestionResponse(message=message, statistics=result)


# ============================================================
# HEALTH
# ============================================================

@router.get("/health", response_model=HealthResponse)
def health_check(services: Services = Depends(get_services)):

    stats = services.store.get_stats()

    return HealthResponse(
        status="healthy",
        total_subjects=stats["total_subjects"],
        total_questions=stats["total_questions"],
        embedding_provider=services.embedding_provider,
        corpus_backend=services.corpus_backend,
    )


# ============================================================
# SUBJECTS
# ============================================================

@router.post("/subjects", response_model=SubjectInfo, status_code=201)
def create_subject(
    payload: CreateSubjectRequest,
    request: Request,
    services: Services = Depends(get_services),
):

    try:
        subject = services.store.create_subject(payload.name)

    except DuplicateSubjectError:
        raise HTTPException(
            status_code=409,
            detail="A subject with this name already exists",
        )

    posthog_client.track_subject_created(
        distinct_id=_request_id(request),
        subject_id=subject.id,
        name=subject.name,
    )

    return _subject_info(subject)


@router.get("/subjects", response_model=ListSubjectsResponse)
def list_subjects(services: Services = Depends(get_services)):

    subjects = [_subject_info(s) for s in services.store.list_subjects()]

    return ListSubjectsResponse(
        subjects=subjects,
        total_subjects=len(subjects),
    )


# ============================================================
# INGESTION
# ============================================================

@router.post("/subjects/{subject_name}/questions", response_model=IngestionResponse)
def ingest_questions(
    subject_name: str,
    payload: IngestQuestionsRequest,
    request: Request,
    services: Services = Depends(get_services),
):

    subject = _find_subject(services, subject_name)

    return _run_ingestion(
        request,
        services,
        subject,
        payload.candidates,
        source="json",
        endpoint="ingest_questions",
    )


@router.post("/subjects/{subject_name}/papers", response_model=IngestionResponse)
async def upload_paper(
    subject_name: str,
    request: Request,
    file: UploadFile = File(...),
    services: Services = Depends(get_services),
):

    subject = _find_subject(services, subject_name)

    if services.extractor is None:
        raise HTTPException(status_code=503, detail="Question extractor unavailable")

    content = await file.read()

    validate_upload(file.filename, content)

    try:
        text = await run_in_threadpool(load_pdf_text, content)

    except Exception as e:

        logger.warning(
            "PDF text extraction failed",
            extra={"upload_filename": file.filename, "error": str(e)},
        )

        raise HTTPException(status_code=400, detail="Could not read PDF")

    if not text.strip():
        raise HTTPException(status_code=400, detail="No text extracted")

    candidates = await run_in_threadpool(services.extractor.extract, text)

    if not candidates:
        raise HTTPException(status_code=422, detail="No questions extracted")

    return await run_in_threadpool(
        _run_ingestion,
        request,
        services,
        subject,
        candidates,
        file.filename,
        "upload_paper",
    )


# ============================================================
# LEADERBOARD
# ============================================================

@router.get("/subjects/{subject_name}/leaderboard", response_model=LeaderboardResponse)
def get_leaderboard(
    subject_name: str,
    limit: int = Query(LEADERBOARD_DEFAULT_LIMIT, ge=1, le=500),
    services: Services = Depends(get_services),
):

    subject = _find_subject(services, subject_name)

    questions = services.ingestor.index.leaderboard(subject.id, limit)

    if not questions:
        raise HTTPException(
            status_code=404,
            detail="No questions found for this subject",
        )

    return LeaderboardResponse(
        subject=subject.name,
        count=len(questions),
        questions=[
            LeaderboardEntry(
                question_id=q.id,
                content=q.content,
                occurrence_count=q.occurrence_count,
                question_number=q.question_number,
                marks=q.marks,
            )
            for q in questions
        ],
    )


# ============================================================
# METRICS ENDPOINT
# ============================================================

@router.get("/metrics")
def get_metrics():

    return metrics_tracker.get_metrics()
