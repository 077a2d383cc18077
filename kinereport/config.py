from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        env_prefix='KINEREPORT_',
        case_sensitive=False,
        extra='ignore',
    )

    app_name: str = 'kinereport'

    data_dir: Path = Field(default=Path('./data'))

    # OpenAI: transcription + report generation
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices('OPENAI_API_KEY', 'KINEREPORT_OPENAI_API_KEY'),
    )
    openai_base_url: str | None = Field(
        default=None,
        validation_alias=AliasChoices('OPENAI_BASE_URL', 'KINEREPORT_OPENAI_BASE_URL'),
    )
    openai_timeout_seconds: int = 120
    transcription_model: str = 'whisper-1'
    transcription_language: str = 'fr'
    report_model: str = 'gpt-4o-mini'
    report_temperature: float = 0.2

    # Audio intake
    max_audio_bytes: int = 25 * 1024 * 1024
    purge_audio_after_transcription: bool = True
    transcript_segment_separator: str = '\n\n---\n\n'

    # Submit behavior
    submit_default_wait_seconds: int = 8
    submit_poll_interval_seconds: float = 1.0

    # Email delivery (Resend)
    resend_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices('RESEND_API_KEY', 'KINEREPORT_RESEND_API_KEY'),
    )
    resend_base_url: str = 'https://api.resend.com'
    sender_email: str | None = Field(
        default=None,
        validation_alias=AliasChoices('SENDER_EMAIL', 'KINEREPORT_SENDER_EMAIL'),
    )
    email_timeout_seconds: int = 30

    # Report text + PDF
    report_title: str = 'Bilan kinésithérapique'
    report_date_format: str = '%d/%m/%Y'
    placeholder_pattern: str | None = None
    pdf_font_name: str = 'Helvetica'
    pdf_bold_font_name: str = 'Helvetica-Bold'
    pdf_author: str = 'kinereport'


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    settings = Settings()
    settings.data_dir.mkdir(parents=True, exist_ok=True)
    (settings.data_dir / 'jobs').mkdir(parents=True, exist_ok=True)
    return settings
