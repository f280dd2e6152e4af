from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, computed_field, field_validator


# ============================================================
# CORPUS ENTITIES
# ============================================================

class Question(BaseModel):
    """One distinct exam question, deduplicated at the semantic level."""
    id: str
    content: str
    embedding: List[float]
    subject_id: str
    subject_name: str
    question_number: Optional[int] = None
    marks: Optional[float] = None
    occurrence_count: int = Field(1, ge=1)
    created_at: Optional[datetime] = None


class Subject(BaseModel):
    """Scope for deduplication. `questions` holds ids in first-seen order."""
    id: str
    name: str
    questions: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None


class Candidate(BaseModel):
    """A question extracted from an uploaded paper, not yet classified."""
    content: str = ""
    number: Optional[int] = None
    identifier: Optional[str] = None
    marks: Optional[float] = None

    @field_validator("content", mode="before")
    @classmethod
    def coerce_content(cls, v):
        if v is None:
            return ""
        return str(v)


# ============================================================
# RESOLUTION / INGESTION RESULTS
# ============================================================

class Resolution(BaseModel):
    """Outcome of resolving one candidate embedding against a subject."""
    is_new: bool
    matched_question_id: Optional[str] = None
    similarity: Optional[float] = None
    occurrence_count: Optional[int] = None


class RecurrenceDetail(BaseModel):
    candidate_index: int
    matched_question_id: str
    similarity: float
    occurrence_count: int


class CandidateFailure(BaseModel):
    candidate_index: int
    content: str
    error_type: str
    error: str


class IngestionResult(BaseModel):
    """Per-document summary. Failures never abort the batch."""
    subject_id: str
    subject_name: str
    total_candidates: int = 0
    processed: int = 0
    skipped: int = 0
    new_count: int = 0
    recurrence_count: int = 0
    failed_count: int = 0
    created_question_ids: List[str] = Field(default_factory=list)
    recurrences: List[RecurrenceDetail] = Field(default_factory=list)
    failures: List[CandidateFailure] = Field(default_factory=list)

    @computed_field
    @property
    def succeeded(self) -> int:
        return self.new_count + self.recurrence_count

    @computed_field
    @property
    def partial(self) -> bool:
        return self.failed_count > 0


# ============================================================
# API MODELS
# ============================================================

class CreateSubjectRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        """Ensure name is not just whitespace."""
        if not v.strip():
            raise ValueError("Subject name cannot be empty")
        return v.strip()


class SubjectInfo(BaseModel):
    subject_id: str
    name: str
    question_count: int
    created_at: Optional[str] = None


class ListSubjectsResponse(BaseModel):
    subjects: List[SubjectInfo]
    total_subjects: int


class IngestQuestionsRequest(BaseModel):
    """Pre-extracted candidates, for callers that run their own extractor."""
    candidates: List[Candidate] = Field(..., min_length=1)


class IngestionResponse(BaseModel):
    message: str
    statistics: IngestionResult


class LeaderboardEntry(BaseModel):
    question_id: str
    content: str
    occurrence_count: int
    question_number: Optional[int] = None
    marks: Optional[float] = None


class LeaderboardResponse(BaseModel):
    subject: str
    count: int
    questions: List[LeaderboardEntry]


class HealthResponse(BaseModel):
    status: str
    total_subjects: int
    total_questions: int
    embedding_provider: str
    corpus_backend: str
