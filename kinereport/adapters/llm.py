from __future__ import annotations

import logging
from dataclasses import dataclass

from openai import AsyncOpenAI, OpenAIError

from ..errors import ConfigurationError, ReportGenerationError, TranscriptionError
from ..prompts import SYSTEM_PROMPT, build_report_user_prompt


logger = logging.getLogger(__name__)


@dataclass
class ReportLLMConfig:
    base_url: str | None
    api_key: str | None
    transcription_model: str
    transcription_language: str
    report_model: str
    report_temperature: float
    timeout_seconds: int


class ReportLLMClient:
    """Async OpenAI helper for segment transcription and report drafting."""

    def __init__(self, cfg: ReportLLMConfig):
        self.cfg = cfg
        self._client: AsyncOpenAI | None = None

    @property
    def configured(self) -> bool:
        return bool(self.cfg.api_key)

    def client(self) -> AsyncOpenAI:
        if not self.configured:
            raise ConfigurationError('OpenAI API key is not configured (OPENAI_API_KEY).')
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.cfg.api_key,
                base_url=self.cfg.base_url,
                timeout=max(30, int(self.cfg.timeout_seconds)),
            )
        return self._client

    async def transcribe(self, audio: bytes, *, filename: str = 'audio.webm') -> str:
        try:
            result = await self.client().audio.transcriptions.create(
                file=(filename, audio),
                model=self.cfg.transcription_model,
                language=self.cfg.transcription_language,
            )
        except OpenAIError as exc:
            raise TranscriptionError(f'Transcription failed for {filename}: {exc}') from exc
        text = str(getattr(result, 'text', '') or '').strip()
        logger.info('Transcribed %s: %d bytes audio -> %d chars', filename, len(audio), len(text))
        return text

    async def generate_report(self, transcript: str, *, patient_name: str) -> str:
        try:
            completion = await self.client().chat.completions.create(
                model=self.cfg.report_model,
                temperature=self.cfg.report_temperature,
                messages=[
                    {'role': 'system', 'content': SYSTEM_PROMPT},
                    {'role': 'user', 'content': build_report_user_prompt(transcript, patient_name)},
                ],
            )
        except OpenAIError as exc:
            raise ReportGenerationError(f'Report generation failed: {exc}') from exc

        content = ''
        if completion.choices:
            content = str(completion.choices[0].message.content or '')
        if not content.strip():
            raise ReportGenerationError('Report generation returned no text.')
        return content
