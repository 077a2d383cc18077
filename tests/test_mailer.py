"""
Unit tests for the Resend mail adapter, using httpx's mock transport.
"""

import asyncio
import base64
import json

import httpx
import pytest

from kinereport.adapters import mailer as mailer_module
from kinereport.adapters.mailer import MailerConfig, ResendMailer, parse_recipients
from kinereport.errors import DeliveryError


def _mailer(api_key="re_test", sender="bilan@cabinet.fr"):
    return ResendMailer(
        MailerConfig(base_url="https://api.resend.test", api_key=api_key, sender=sender, timeout_seconds=10)
    )


def _patch_transport(monkeypatch, handler):
    real_client = httpx.AsyncClient

    def client_factory(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr(mailer_module.httpx, "AsyncClient", client_factory)


def test_parse_recipients():
    assert parse_recipients(" a@x.fr, ,b@y.fr,a@x.fr ") == ["a@x.fr", "b@y.fr"]
    assert parse_recipients(None) == []
    assert parse_recipients(["c@z.fr", ""]) == ["c@z.fr"]


def test_send_report_posts_attachment(monkeypatch):
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers["Authorization"]
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "email-123"})

    _patch_transport(monkeypatch, handler)

    message_id = asyncio.run(
        _mailer().send_report(to=["kine@example.fr"], patient_name="Jean Dupont", pdf_bytes=b"%PDF-1.4")
    )

    assert message_id == "email-123"
    assert captured["url"] == "https://api.resend.test/emails"
    assert captured["auth"] == "Bearer re_test"
    body = captured["body"]
    assert body["to"] == ["kine@example.fr"]
    assert body["from"] == "bilan@cabinet.fr"
    attachment = body["attachments"][0]
    assert attachment["filename"] == "Bilan-Jean Dupont.pdf"
    assert base64.b64decode(attachment["content"]) == b"%PDF-1.4"


def test_http_error_becomes_delivery_error(monkeypatch):
    _patch_transport(monkeypatch, lambda request: httpx.Response(422, json={"message": "invalid"}))

    with pytest.raises(DeliveryError):
        asyncio.run(_mailer().send_report(to=["kine@example.fr"], patient_name="A", pdf_bytes=b"x"))


@pytest.mark.parametrize("body", [b"Accepted", b""])
def test_non_json_success_body_has_no_message_id(monkeypatch, body):
    _patch_transport(monkeypatch, lambda request: httpx.Response(202, content=body))

    message_id = asyncio.run(_mailer().send_report(to=["kine@example.fr"], patient_name="A", pdf_bytes=b"x"))

    assert message_id is None


def test_unconfigured_mailer_refuses():
    with pytest.raises(DeliveryError):
        asyncio.run(_mailer(api_key=None).send_report(to=["a@x.fr"], patient_name="A", pdf_bytes=b"x"))
