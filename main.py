from __future__ import annotations

import argparse
import json
import logging
import shutil
import subprocess
import sys
import time
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from kinereport.adapters.mailer import parse_recipients
from kinereport.config import get_settings
from kinereport.report.pdf_export import build_report_pdf
from kinereport.report.structured import BilanInput, build_report_text
from kinereport.runner import report_title, run_job
from kinereport.state import ensure_artifact_paths, load_job_state, save_job_state
from kinereport.storage import append_event, job_dir, write_bytes_atomic
from kinereport.types import TERMINAL_STATUSES, JobState, JobStatus


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _error(message: str) -> int:
    _print_json({'status': 'error', 'message': message})
    return 2


def _status_snapshot(job: JobState) -> dict:
    return {
        'job_id': str(job.id),
        'status': job.status.value,
        'message': job.message,
        'error': job.error,
        'failure_kind': job.failure_kind,
        'patient_name': job.patient_name,
        'segment_count': job.segment_count,
        'transcript_ready': job.transcript_ready,
        'report_ready': job.report_ready,
        'pdf_ready': job.pdf_ready,
        'email_sent': job.email_sent,
        'created_at': job.created_at.isoformat(),
        'updated_at': job.updated_at.isoformat(),
        'artifacts': job.artifacts.model_dump(mode='json'),
        'metadata': job.metadata,
    }


def _submit_response(job: JobState, completed: bool) -> dict:
    payload: dict = {
        'job_id': str(job.id),
        'status': job.status.value,
        'message': job.message,
        'completed': completed,
        'error': job.error,
        'failure_kind': job.failure_kind,
    }
    if completed:
        payload['result'] = {
            'report_text_path': job.artifacts.report_text_path,
            'report_pdf_path': job.artifacts.report_pdf_path,
            'email_sent': job.email_sent,
        }
    return payload


def _validate_audio_paths(raw_paths: list[str], *, max_bytes: int) -> tuple[list[Path], str | None]:
    paths: list[Path] = []
    for raw in raw_paths:
        path = Path(raw).expanduser().resolve()
        if not path.exists() or not path.is_file():
            return [], f'Audio file not found: {path}'
        size = int(path.stat().st_size)
        if size <= 0:
            return [], f'Audio file is empty: {path}'
        if size > max_bytes:
            return [], f'Audio file too large: {size} bytes, max allowed {max_bytes} bytes'
        paths.append(path)
    if not paths:
        return [], 'At least one --audio file is required'
    return paths, None


def _create_job(
    audio_paths: list[Path],
    *,
    patient_name: str,
    clinician_email: str | None,
    send_to: list[str],
) -> JobState:
    job = JobState(
        title=report_title(patient_name),
        patient_name=patient_name,
        clinician_email=clinician_email,
        send_to=send_to,
        segment_count=len(audio_paths),
    )
    save_job_state(job)

    audio_root = ensure_artifact_paths(job.id)['audio_dir']
    stored: list[str] = []
    for index, source in enumerate(audio_paths, start=1):
        target = audio_root / f'segment_{index:03d}{source.suffix or ".webm"}'
        shutil.copy2(str(source), str(target))
        stored.append(str(target))

    job.artifacts.audio_segment_paths = stored
    save_job_state(job)

    append_event(job.id, 'created', segments=len(stored), patient=patient_name, recipients=len(send_to))
    return job


def _spawn_worker(job_id: str) -> int:
    here = Path(__file__).resolve()
    root = here.parent
    logs_dir = job_dir(job_id)
    stdout_path = logs_dir / 'worker.stdout.log'
    stderr_path = logs_dir / 'worker.stderr.log'

    stdout_f = stdout_path.open('ab')
    stderr_f = stderr_path.open('ab')

    try:
        process = subprocess.Popen(
            [sys.executable, str(here), '_run-job', '--job-id', str(job_id)],
            cwd=str(root),
            start_new_session=True,
            stdout=stdout_f,
            stderr=stderr_f,
        )
    finally:
        stdout_f.close()
        stderr_f.close()

    append_event(job_id, 'worker_spawned', pid=process.pid)
    return process.pid


def cmd_submit(args: argparse.Namespace) -> int:
    settings = get_settings()
    audio_paths, problem = _validate_audio_paths(args.audio or [], max_bytes=int(settings.max_audio_bytes))
    if problem:
        return _error(problem)

    patient_name = str(args.patient or '').strip() or 'Patient'
    send_to = parse_recipients(args.send_to)
    job = _create_job(
        audio_paths,
        patient_name=patient_name,
        clinician_email=args.clinician_email,
        send_to=send_to,
    )
    _spawn_worker(str(job.id))

    wait_seconds = args.wait_seconds
    if wait_seconds is None:
        wait_seconds = settings.submit_default_wait_seconds
    wait_seconds = max(0, int(wait_seconds))

    deadline = time.time() + wait_seconds
    poll_interval = max(0.3, float(settings.submit_poll_interval_seconds))

    latest = job
    while time.time() <= deadline:
        current = load_job_state(job.id)
        if current is not None:
            latest = current
        if latest.status in TERMINAL_STATUSES:
            break
        if wait_seconds == 0:
            break
        time.sleep(poll_interval)

    completed = latest.status == JobStatus.completed
    _print_json(_submit_response(latest, completed=completed))
    return 0


def cmd_status(args: argparse.Namespace) -> int:
    job = load_job_state(args.job_id)
    if job is None:
        return _error(f'Job not found: {args.job_id}')

    _print_json(_status_snapshot(job))
    return 0


def cmd_result(args: argparse.Namespace) -> int:
    job = load_job_state(args.job_id)
    if job is None:
        return _error(f'Job not found: {args.job_id}')

    if job.status != JobStatus.completed:
        _print_json(
            {
                'status': 'not_ready',
                'job_id': str(job.id),
                'current_status': job.status.value,
                'message': job.message,
            }
        )
        return 0

    text_path = Path(job.artifacts.report_text_path or '')
    pdf_path = Path(job.artifacts.report_pdf_path or '')

    if args.format == 'text':
        if not text_path.is_file():
            return _error(f'Report text missing: {text_path}')
        print(text_path.read_text(encoding='utf-8'))
        return 0

    if args.format == 'pdf':
        _print_json(
            {
                'job_id': str(job.id),
                'report_pdf_path': str(pdf_path) if pdf_path.is_file() else None,
            }
        )
        return 0

    report_text = text_path.read_text(encoding='utf-8') if text_path.is_file() else ''
    _print_json(
        {
            'job_id': str(job.id),
            'report_text_path': str(text_path) if text_path.is_file() else None,
            'report_pdf_path': str(pdf_path) if pdf_path.is_file() else None,
            'email_sent': job.email_sent,
            'report_text': report_text,
        }
    )
    return 0


def cmd_watch(args: argparse.Namespace) -> int:
    interval = max(0.5, float(args.interval))
    timeout_seconds = max(0, int(args.timeout)) if args.timeout is not None else None
    deadline = time.time() + timeout_seconds if timeout_seconds is not None else None

    last_status = None
    while True:
        job = load_job_state(args.job_id)
        if job is None:
            return _error(f'Job not found: {args.job_id}')

        if last_status != job.status.value:
            _print_json(_status_snapshot(job))
            last_status = job.status.value

        if job.status in TERMINAL_STATUSES:
            return 0

        if deadline is not None and time.time() > deadline:
            _print_json({'status': 'timeout', 'job_id': str(job.id), 'current_status': job.status.value})
            return 0

        time.sleep(interval)


def cmd_render(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.text:
        source = Path(args.text).expanduser()
        if not source.is_file():
            return _error(f'Report text not found: {source}')
        raw_report = source.read_text(encoding='utf-8')
    else:
        source = Path(args.input_json).expanduser()
        if not source.is_file():
            return _error(f'Structured input not found: {source}')
        try:
            data = BilanInput.model_validate_json(source.read_text(encoding='utf-8'))
        except PydanticValidationError as exc:
            return _error(f'Invalid structured input: {exc.error_count()} error(s): {exc.errors()[0]["msg"]}')
        raw_report = build_report_text(data)

    report_text, pdf_bytes = build_report_pdf(
        raw_report,
        title=args.title,
        date_line=args.date,
        author=settings.pdf_author,
        placeholder_pattern=settings.placeholder_pattern,
        regular_font=settings.pdf_font_name,
        bold_font=settings.pdf_bold_font_name,
    )
    output = Path(args.output).expanduser()
    write_bytes_atomic(output, pdf_bytes)
    _print_json(
        {
            'status': 'ok',
            'report_pdf_path': str(output),
            'pdf_size_bytes': len(pdf_bytes),
            'report_text': report_text,
        }
    )
    return 0


def cmd_run_job(args: argparse.Namespace) -> int:
    run_job(str(args.job_id))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Physiotherapy consultation report pipeline')
    parser.add_argument('--log-level', default='WARNING', help='Python logging level')
    sub = parser.add_subparsers(dest='command', required=True)

    submit = sub.add_parser('submit', help='Submit consultation audio segments')
    submit.add_argument('--audio', action='append', required=True, help='Audio segment path (repeat in order)')
    submit.add_argument('--patient', required=False, help='Patient name')
    submit.add_argument('--clinician-email', required=False, help='Clinician email')
    submit.add_argument('--send-to', required=False, help='Comma-separated recipients for the PDF')
    submit.add_argument('--wait-seconds', type=int, required=False, help='Wait window before returning')
    submit.set_defaults(func=cmd_submit)

    status = sub.add_parser('status', help='Get job status')
    status.add_argument('--job-id', required=True, help='Job ID')
    status.set_defaults(func=cmd_status)

    result = sub.add_parser('result', help='Fetch completed result')
    result.add_argument('--job-id', required=True, help='Job ID')
    result.add_argument('--format', choices=['text', 'pdf', 'all'], default='all')
    result.set_defaults(func=cmd_result)

    watch = sub.add_parser('watch', help='Watch job until completion')
    watch.add_argument('--job-id', required=True, help='Job ID')
    watch.add_argument('--interval', type=float, default=2.0)
    watch.add_argument('--timeout', type=int, required=False)
    watch.set_defaults(func=cmd_watch)

    render = sub.add_parser('render', help='Render a report PDF from text or structured JSON')
    source = render.add_mutually_exclusive_group(required=True)
    source.add_argument('--text', help='Raw report text file')
    source.add_argument('--input-json', help='Structured report fields as JSON')
    render.add_argument('--output', required=True, help='Output PDF path')
    render.add_argument('--title', required=False, help='Document title')
    render.add_argument('--date', required=False, help='Pre-formatted date line')
    render.set_defaults(func=cmd_render)

    run_job_cmd = sub.add_parser('_run-job', help=argparse.SUPPRESS)
    run_job_cmd.add_argument('--job-id', required=True)
    run_job_cmd.set_defaults(func=cmd_run_job)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=str(args.log_level).upper(),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
