from __future__ import annotations

import io
import logging
from typing import Iterable

from reportlab.pdfgen import canvas as rl_canvas

from .layout import BOLD_FONT, PAGE_HEIGHT, PAGE_WIDTH, REGULAR_FONT, Page, font_measurer, layout_document
from .markup import strip_markup
from .normalizer import REPORT_TITLE, parse_report


logger = logging.getLogger(__name__)

PRODUCER = 'kinereport'


def render_pages_to_pdf(
    pages: Iterable[Page],
    *,
    title: str | None = None,
    author: str | None = None,
    regular_font: str = REGULAR_FONT,
    bold_font: str = BOLD_FONT,
) -> bytes:
    buffer = io.BytesIO()
    canv = rl_canvas.Canvas(buffer, pagesize=(PAGE_WIDTH, PAGE_HEIGHT))
    canv.setProducer(PRODUCER)
    canv.setTitle(title or REPORT_TITLE)
    if author:
        canv.setAuthor(author)

    page_count = 0
    for page in pages:
        canv.setPageSize((page.width, page.height))
        for run in page.runs:
            canv.setFont(bold_font if run.bold else regular_font, run.font_size)
            canv.drawString(run.x, run.y, run.text)
        canv.showPage()
        page_count += 1

    canv.save()
    pdf_bytes = buffer.getvalue()
    logger.info('Rendered report PDF: %d page(s), %d bytes', page_count, len(pdf_bytes))
    return pdf_bytes


def build_report_pdf(
    raw_report: str,
    *,
    title: str | None = None,
    date_line: str | None = None,
    author: str | None = None,
    placeholder_pattern: str | None = None,
    regular_font: str = REGULAR_FONT,
    bold_font: str = BOLD_FONT,
) -> tuple[str, bytes]:
    """Clean, normalize, lay out and render a generated report.

    Returns the normalized report text alongside the PDF bytes. The report
    header line, when present, becomes the document title instead of being
    repeated in the body.
    """
    report = parse_report(strip_markup(raw_report), placeholder_pattern=placeholder_pattern)
    document_title = str(title or '').strip() or report.header or REPORT_TITLE
    pages = layout_document(
        document_title,
        date_line,
        report.render(include_header=False),
        measure=font_measurer(regular_font, bold_font),
    )
    pdf_bytes = render_pages_to_pdf(
        pages,
        title=document_title,
        author=author,
        regular_font=regular_font,
        bold_font=bold_font,
    )
    return report.render(), pdf_bytes
