from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    queued = 'queued'
    transcribing = 'transcribing'
    generating_report = 'generating_report'
    pdf_rendering = 'pdf_rendering'
    emailing = 'emailing'
    completed = 'completed'
    failed = 'failed'


TERMINAL_STATUSES = frozenset({JobStatus.completed, JobStatus.failed})


class JobArtifacts(BaseModel):
    audio_segment_paths: list[str] = Field(default_factory=list)
    transcript_path: str | None = None
    raw_report_path: str | None = None
    report_text_path: str | None = None
    report_pdf_path: str | None = None


class JobState(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    title: str
    patient_name: str = 'Patient'
    clinician_email: str | None = None
    send_to: list[str] = Field(default_factory=list)

    status: JobStatus = JobStatus.queued
    message: str = 'Job queued.'
    error: str | None = None
    failure_kind: str | None = None

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    segment_count: int = 0
    transcript_ready: bool = False
    report_ready: bool = False
    pdf_ready: bool = False
    email_sent: bool = False

    artifacts: JobArtifacts = Field(default_factory=JobArtifacts)
    metadata: dict[str, Any] = Field(default_factory=dict)
