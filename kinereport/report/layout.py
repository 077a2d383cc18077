from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from reportlab.pdfbase import pdfmetrics

from .normalizer import REPORT_TITLE, is_section_header_line


logger = logging.getLogger(__name__)

# A4 in points, as used by the original PDF output.
PAGE_WIDTH = 595.28
PAGE_HEIGHT = 841.89
MARGIN = 40.0
LINE_SPACING = 10.0
BOTTOM_THRESHOLD = MARGIN + 50.0
CONTENT_WIDTH = PAGE_WIDTH - 2 * MARGIN

TITLE_FONT_SIZE = 18.0
DATE_FONT_SIZE = 11.0
SECTION_FONT_SIZE = 13.0
BODY_FONT_SIZE = 11.0
FOOTER_FONT_SIZE = 8.0
GAP_BEFORE_BODY = 5.0
BLANK_LINE_GAP = 4.0

DATE_LABEL = 'Date : '
FOOTER_TEXT = "Généré automatiquement. Mentions : Consentement d'enregistrement recueilli."

REGULAR_FONT = 'Helvetica'
BOLD_FONT = 'Helvetica-Bold'

TextMeasurer = Callable[[str, float, bool], float]


@dataclass(frozen=True)
class TextRun:
    text: str
    x: float
    y: float
    font_size: float
    bold: bool


@dataclass
class Page:
    width: float = PAGE_WIDTH
    height: float = PAGE_HEIGHT
    runs: list[TextRun] = field(default_factory=list)


def font_measurer(regular_font: str = REGULAR_FONT, bold_font: str = BOLD_FONT) -> TextMeasurer:
    def measure(text: str, size: float, bold: bool) -> float:
        return float(pdfmetrics.stringWidth(text, bold_font if bold else regular_font, size))

    return measure


def format_date_line(date_line: str) -> str:
    text = date_line.strip()
    if text.casefold().startswith('date'):
        return text
    return DATE_LABEL + text


class LayoutEngine:
    """Flows lines of text onto fixed-size pages.

    One engine lays out one document: it owns the page list and the vertical
    cursor, so concurrent layouts never share state.
    """

    def __init__(self, *, measure: TextMeasurer | None = None):
        self.measure = measure or font_measurer()
        self.pages: list[Page] = [Page()]
        self.y = PAGE_HEIGHT - MARGIN

    @property
    def page(self) -> Page:
        return self.pages[-1]

    @property
    def max_width(self) -> float:
        return self.page.width - 2 * MARGIN

    def new_page(self) -> Page:
        page = Page()
        self.pages.append(page)
        self.y = page.height - MARGIN
        return page

    def advance(self, gap: float) -> None:
        self.y -= gap

    def draw_line_raw(self, text: str, size: float, bold: bool) -> TextRun:
        if self.y < BOTTOM_THRESHOLD:
            self.new_page()
        run = TextRun(text=text, x=MARGIN, y=self.y, font_size=size, bold=bold)
        self.page.runs.append(run)
        self.y -= size + LINE_SPACING
        return run

    def wrap(self, text: str, size: float, bold: bool) -> list[str]:
        lines: list[str] = []
        current = ''
        for word in text.split():
            test = f'{current} {word}' if current else word
            if self.measure(test, size, bold) > self.max_width:
                if current:
                    lines.append(current)
                current = word
            else:
                current = test
        if current:
            lines.append(current)
        return lines

    def draw_wrapped_line(self, text: str, size: float, bold: bool) -> list[TextRun]:
        return [self.draw_line_raw(line, size, bold) for line in self.wrap(text, size, bold)]

    def draw_body(self, body: str) -> None:
        for raw_line in str(body or '').split('\n'):
            line = raw_line.rstrip()
            if not line.strip():
                self.advance(BLANK_LINE_GAP)
                continue
            if is_section_header_line(line):
                self.draw_wrapped_line(line, SECTION_FONT_SIZE, True)
            else:
                self.draw_wrapped_line(line, BODY_FONT_SIZE, False)

    def draw_footer(self, text: str = FOOTER_TEXT) -> TextRun:
        run = TextRun(text=text, x=MARGIN, y=MARGIN, font_size=FOOTER_FONT_SIZE, bold=False)
        self.page.runs.append(run)
        return run

    def layout(self, title: str, date_line: str | None, body: str) -> list[Page]:
        self.draw_wrapped_line(str(title or '').strip() or REPORT_TITLE, TITLE_FONT_SIZE, True)
        if date_line is not None:
            self.draw_wrapped_line(format_date_line(date_line), DATE_FONT_SIZE, False)
        self.advance(GAP_BEFORE_BODY)
        self.draw_body(body)
        self.draw_footer()
        logger.debug('Laid out report on %d page(s)', len(self.pages))
        return self.pages


def layout_document(
    title: str,
    date_line: str | None,
    body: str,
    *,
    measure: TextMeasurer | None = None,
) -> list[Page]:
    return LayoutEngine(measure=measure).layout(title, date_line, body)
