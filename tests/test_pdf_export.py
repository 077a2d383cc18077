"""
Unit tests for PDF rendering of laid-out pages.
"""

from io import BytesIO

from pypdf import PdfReader

from kinereport.report.layout import layout_document
from kinereport.report.pdf_export import build_report_pdf, render_pages_to_pdf


def test_one_pdf_page_per_layout_page():
    body = "\n".join(f"Ligne {i}" for i in range(150))
    pages = layout_document("Bilan kinésithérapique", "19/10/2026", body)

    reader = PdfReader(BytesIO(render_pages_to_pdf(pages, title="Bilan test")))

    assert len(reader.pages) == len(pages) > 1
    assert reader.metadata.title == "Bilan test"
    assert "Ligne 0" in reader.pages[0].extract_text()
    assert "Ligne 149" in reader.pages[-1].extract_text()


def test_build_report_pdf_normalizes_and_renders(raw_report):
    report_text, pdf_bytes = build_report_pdf(raw_report, date_line="19/10/2026")

    assert pdf_bytes.startswith(b"%PDF")
    assert "Motif de consultation" not in report_text
    assert "2. Évaluation clinique" in report_text

    reader = PdfReader(BytesIO(pdf_bytes))
    text = "\n".join(page.extract_text() for page in reader.pages)
    assert "Jean Dupont" in text
    assert "Menuisier" in text
    assert "Date : 19/10/2026" in text
    assert reader.metadata.title == "Bilan kinésithérapique"


def test_header_becomes_title_not_body():
    report_text, pdf_bytes = build_report_pdf("Bilan kinésithérapique\n1. A\nx : 1")

    assert report_text == "Bilan kinésithérapique\n\n1. A\nx : 1"
    text = PdfReader(BytesIO(pdf_bytes)).pages[0].extract_text()
    assert text.count("Bilan") == 1
    assert "x : 1" in text


def test_explicit_title_wins():
    _, pdf_bytes = build_report_pdf("1. A\nx : 1", title="Bilan – Jean Dupont")

    assert PdfReader(BytesIO(pdf_bytes)).metadata.title == "Bilan – Jean Dupont"


def test_empty_report_still_renders_a_page():
    report_text, pdf_bytes = build_report_pdf("")

    assert report_text == ""
    assert len(PdfReader(BytesIO(pdf_bytes)).pages) == 1
