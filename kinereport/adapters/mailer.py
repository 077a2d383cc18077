from __future__ import annotations

import base64
import html
import logging
from dataclasses import dataclass

import httpx

from ..errors import DeliveryError


logger = logging.getLogger(__name__)


@dataclass
class MailerConfig:
    base_url: str
    api_key: str | None
    sender: str | None
    timeout_seconds: int


def parse_recipients(value: str | list[str] | None) -> list[str]:
    if value is None:
        return []
    items = value.split(',') if isinstance(value, str) else value
    recipients: list[str] = []
    for item in items:
        normalized = str(item or '').strip()
        if normalized and normalized not in recipients:
            recipients.append(normalized)
    return recipients


class ResendMailer:
    def __init__(self, cfg: MailerConfig):
        self.cfg = cfg

    @property
    def configured(self) -> bool:
        return bool(self.cfg.api_key and self.cfg.sender)

    def build_payload(
        self,
        *,
        to: list[str],
        patient_name: str,
        pdf_bytes: bytes,
    ) -> dict:
        safe_name = html.escape(patient_name)
        return {
            'from': self.cfg.sender,
            'to': to,
            'subject': f'Bilan kinésithérapie – {patient_name}',
            'html': (
                '<p>Bonjour,</p>'
                f'<p>Veuillez trouver ci-joint le bilan kinésithérapique de {safe_name}.</p>'
            ),
            'attachments': [
                {
                    'filename': f'Bilan-{patient_name}.pdf',
                    'content': base64.b64encode(pdf_bytes).decode('ascii'),
                }
            ],
        }

    async def send_report(
        self,
        *,
        to: list[str],
        patient_name: str,
        pdf_bytes: bytes,
    ) -> str | None:
        if not self.configured:
            raise DeliveryError('Email delivery is not configured (RESEND_API_KEY / SENDER_EMAIL).')
        if not to:
            raise DeliveryError('No email recipient given.')

        url = f"{self.cfg.base_url.rstrip('/')}/emails"
        headers = {
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.cfg.api_key}',
        }
        payload = self.build_payload(to=to, patient_name=patient_name, pdf_bytes=pdf_bytes)
        try:
            async with httpx.AsyncClient(timeout=max(5, int(self.cfg.timeout_seconds))) as client:
                response = await client.post(url, headers=headers, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise DeliveryError(f'Email delivery failed: {exc}') from exc

        try:
            data = response.json() if response.content else {}
        except ValueError:
            logger.warning('Email accepted but response body is not JSON; message id unknown')
            data = {}
        message_id = data.get('id') if isinstance(data, dict) else None
        logger.info('Report emailed to %d recipient(s), id=%s', len(to), message_id)
        return message_id
