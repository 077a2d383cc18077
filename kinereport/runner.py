from __future__ import annotations

import asyncio
import logging
import traceback
from datetime import datetime
from pathlib import Path

from kinereport.adapters.llm import ReportLLMClient, ReportLLMConfig
from kinereport.adapters.mailer import MailerConfig, ResendMailer
from kinereport.config import get_settings
from kinereport.errors import (
    AudioDownloadError,
    DeliveryError,
    EmptyTranscriptionError,
    ValidationError,
    failure_kind,
)
from kinereport.report.pdf_export import build_report_pdf
from kinereport.state import (
    ensure_artifact_paths,
    fail_job,
    load_job_state,
    mutate_job_state,
    purge_audio,
    set_status,
)
from kinereport.storage import append_event, write_bytes_atomic, write_text_atomic
from kinereport.types import JobState, JobStatus


logger = logging.getLogger(__name__)


def _build_llm_client() -> ReportLLMClient:
    settings = get_settings()
    return ReportLLMClient(
        ReportLLMConfig(
            base_url=settings.openai_base_url,
            api_key=settings.openai_api_key,
            transcription_model=settings.transcription_model,
            transcription_language=settings.transcription_language,
            report_model=settings.report_model,
            report_temperature=settings.report_temperature,
            timeout_seconds=settings.openai_timeout_seconds,
        )
    )


def _build_mailer() -> ResendMailer:
    settings = get_settings()
    return ResendMailer(
        MailerConfig(
            base_url=settings.resend_base_url,
            api_key=settings.resend_api_key,
            sender=settings.sender_email,
            timeout_seconds=settings.email_timeout_seconds,
        )
    )


def report_title(patient_name: str | None) -> str:
    base = get_settings().report_title
    name = str(patient_name or '').strip()
    return f'{base} – {name}' if name else base


def today_line(now: datetime | None = None) -> str:
    moment = now or datetime.now()
    return moment.strftime(get_settings().report_date_format)


def _read_segment(path: Path, *, max_bytes: int) -> bytes:
    if not path.exists() or not path.is_file():
        raise AudioDownloadError(f'Audio segment missing: {path}')
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise AudioDownloadError(f'Audio segment unreadable: {path}: {exc}') from exc
    if not data:
        raise ValidationError(f'Audio segment is empty: {path}')
    if len(data) > max_bytes:
        raise ValidationError(
            f'Audio segment too large: {len(data)} bytes, max allowed {max_bytes} bytes.'
        )
    return data


async def _transcribe_segments(job: JobState, llm: ReportLLMClient) -> str:
    settings = get_settings()
    segment_paths = [Path(p) for p in job.artifacts.audio_segment_paths]
    if not segment_paths:
        raise ValidationError('No audio segment attached to the job.')

    parts: list[str] = []
    for index, path in enumerate(segment_paths, start=1):
        audio = _read_segment(path, max_bytes=int(settings.max_audio_bytes))
        text = await llm.transcribe(audio, filename=path.name)
        append_event(job.id, 'segment_transcribed', segment=index, chars=len(text))
        if text:
            parts.append(text)

    if settings.purge_audio_after_transcription:
        removed = purge_audio(job.id)
        append_event(job.id, 'audio_purged', removed=removed)

    transcript = settings.transcript_segment_separator.join(parts)
    if not transcript.strip():
        raise EmptyTranscriptionError('Transcription returned no text for any audio segment.')
    return transcript


async def run_job_async(
    job_id: str,
    *,
    llm: ReportLLMClient | None = None,
    mailer: ResendMailer | None = None,
) -> None:
    settings = get_settings()
    job = load_job_state(job_id)
    if job is None:
        raise FileNotFoundError(f'Job not found: {job_id}')

    llm = llm or _build_llm_client()
    artifacts = ensure_artifact_paths(job_id)

    set_status(job_id, JobStatus.transcribing, f'Transcribing {len(job.artifacts.audio_segment_paths)} audio segment(s)...')
    transcript = await _transcribe_segments(job, llm)
    write_text_atomic(artifacts['transcript'], transcript)

    def apply_transcript(state):
        state.transcript_ready = True
        state.artifacts.transcript_path = str(artifacts['transcript'])
        if settings.purge_audio_after_transcription:
            state.artifacts.audio_segment_paths = []

    mutate_job_state(job_id, apply_transcript)

    set_status(job_id, JobStatus.generating_report, 'Drafting report from transcript...')
    raw_report = await llm.generate_report(transcript, patient_name=job.patient_name)
    write_text_atomic(artifacts['raw_report'], raw_report)

    set_status(job_id, JobStatus.pdf_rendering, 'Normalizing report and rendering PDF...')
    report_text, pdf_bytes = build_report_pdf(
        raw_report,
        title=job.title,
        date_line=today_line(),
        author=settings.pdf_author,
        placeholder_pattern=settings.placeholder_pattern,
        regular_font=settings.pdf_font_name,
        bold_font=settings.pdf_bold_font_name,
    )
    write_text_atomic(artifacts['report_text'], report_text)
    write_bytes_atomic(artifacts['report_pdf'], pdf_bytes)
    append_event(job_id, 'pdf_rendered', report_chars=len(report_text), pdf_size_bytes=len(pdf_bytes))

    def apply_rendered(state):
        state.report_ready = True
        state.pdf_ready = True
        state.artifacts.raw_report_path = str(artifacts['raw_report'])
        state.artifacts.report_text_path = str(artifacts['report_text'])
        state.artifacts.report_pdf_path = str(artifacts['report_pdf'])

    mutate_job_state(job_id, apply_rendered)

    delivery_error: str | None = None
    if job.send_to:
        set_status(job_id, JobStatus.emailing, f'Emailing report to {len(job.send_to)} recipient(s)...')
        mailer = mailer or _build_mailer()
        try:
            message_id = await mailer.send_report(
                to=list(job.send_to),
                patient_name=job.patient_name,
                pdf_bytes=pdf_bytes,
            )
        except DeliveryError as exc:
            delivery_error = str(exc)
            logger.warning('Report delivery failed for job %s: %s', job_id, exc)
            append_event(job_id, 'email_failed', error=delivery_error, failure_kind=exc.kind)
        else:
            append_event(job_id, 'email_sent', recipients=len(job.send_to), message_id=message_id)

            def apply_sent(state):
                state.email_sent = True
                state.metadata = {**state.metadata, 'email_message_id': message_id}

            mutate_job_state(job_id, apply_sent)

    def apply_completed(state):
        state.status = JobStatus.completed
        state.error = delivery_error
        state.failure_kind = DeliveryError.kind if delivery_error else None
        state.message = (
            'Report pipeline completed.'
            if delivery_error is None
            else 'Report ready, but email delivery failed.'
        )

    mutate_job_state(job_id, apply_completed)
    append_event(job_id, 'completed', report_pdf_path=str(artifacts['report_pdf']))


def run_job(job_id: str) -> None:
    try:
        asyncio.run(run_job_async(job_id))
    except Exception as exc:
        detail = ''.join(traceback.format_exception_only(type(exc), exc)).strip()
        stack = traceback.format_exc()
        kind = failure_kind(exc)
        logger.error('Report pipeline failed for job %s: %s', job_id, detail)
        append_event(job_id, 'pipeline_exception', error=detail, failure_kind=kind, stack=stack)
        fail_job(
            job_id,
            message='Report pipeline failed.',
            error=detail,
            kind=kind,
        )
