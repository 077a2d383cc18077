from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Pattern


logger = logging.getLogger(__name__)

REPORT_TITLE = 'Bilan kinésithérapique'

SECTION_HEADER_PATTERN = re.compile(r'^\d+\.\s')
_SECTION_NUMBER_PATTERN = re.compile(r'^\d+\.')

# An ellipsis or a run of two or more dots, optionally followed by more dots,
# ellipses or spaces ("…", "...", "….", "… …"). Empty values never reach the pattern.
DEFAULT_PLACEHOLDER_PATTERN = r'(?:…|\.{2,})[\s.…]*'


def compile_placeholder_pattern(pattern: str | Pattern[str] | None = None) -> Pattern[str]:
    if pattern is None:
        return re.compile(DEFAULT_PLACEHOLDER_PATTERN)
    if isinstance(pattern, str):
        return re.compile(pattern)
    return pattern


_DEFAULT_PLACEHOLDER = compile_placeholder_pattern()


def is_section_header_line(line: str) -> bool:
    return bool(SECTION_HEADER_PATTERN.match(line))


def is_placeholder_value(value: str, pattern: Pattern[str] | None = None) -> bool:
    token = value.strip()
    if not token:
        return True
    return bool((pattern or _DEFAULT_PLACEHOLDER).fullmatch(token))


def is_empty_item(line: str, pattern: Pattern[str] | None = None) -> bool:
    """True when a candidate item carries no captured data.

    Only ``label : value`` lines can be placeholders; the value is whatever
    follows the first colon. A non-empty line without a colon is always data.
    """
    stripped = line.strip()
    if not stripped:
        return True
    if ':' not in stripped:
        return False
    _, value = stripped.split(':', 1)
    return is_placeholder_value(value, pattern)


def is_report_title(line: str, title: str = REPORT_TITLE) -> bool:
    return line.strip().casefold() == title.casefold()


def section_title(stripped: str) -> str:
    # A bare "5." keeps one space so the rendered title still opens a section.
    return stripped if is_section_header_line(stripped) else f'{stripped} '


def renumber_title(title: str, number: int) -> str:
    return _SECTION_NUMBER_PATTERN.sub(f'{number}.', title, count=1)


@dataclass(frozen=True)
class Section:
    title: str
    items: tuple[str, ...]


@dataclass
class SectionBuilder:
    title: str
    items: list[str] = field(default_factory=list)

    def add(self, line: str) -> None:
        self.items.append(line)

    def close(self) -> Section:
        return Section(title=self.title, items=tuple(self.items))


@dataclass(frozen=True)
class NormalizedReport:
    header: str | None
    sections: tuple[Section, ...]

    def render(self, *, include_header: bool = True) -> str:
        lines: list[str] = []
        if include_header and self.header:
            lines.append(self.header)
            if self.sections:
                lines.append('')
        for index, section in enumerate(self.sections):
            if index:
                lines.append('')
            lines.append(section.title)
            lines.extend(section.items)
        return '\n'.join(lines)


def _split_header(lines: list[str], title: str) -> tuple[str | None, list[str]]:
    for index, line in enumerate(lines):
        if not line.strip():
            continue
        if is_report_title(line, title):
            return line.strip(), lines[index + 1:]
        return None, lines
    return None, lines


def parse_report(
    raw: str,
    *,
    placeholder_pattern: str | Pattern[str] | None = None,
    title: str = REPORT_TITLE,
) -> NormalizedReport:
    pattern = compile_placeholder_pattern(placeholder_pattern)
    header, lines = _split_header(str(raw or '').split('\n'), title)

    closed: list[Section] = []
    current: SectionBuilder | None = None
    dropped_items = 0
    orphan_lines = 0

    for line in lines:
        stripped = line.strip()
        if not stripped:
            continue
        if is_section_header_line(line.lstrip()):
            if current is not None:
                closed.append(current.close())
            current = SectionBuilder(title=section_title(stripped))
            continue
        if current is None:
            orphan_lines += 1
            continue
        if is_empty_item(stripped, pattern):
            dropped_items += 1
            continue
        current.add(stripped)

    if current is not None:
        closed.append(current.close())

    surviving = [section for section in closed if section.items]
    renumbered = tuple(
        Section(title=renumber_title(section.title, number), items=section.items)
        for number, section in enumerate(surviving, start=1)
    )

    logger.debug(
        'Normalized report: %d/%d sections kept, %d placeholder items dropped, %d orphan lines ignored',
        len(renumbered),
        len(closed),
        dropped_items,
        orphan_lines,
    )
    return NormalizedReport(header=header, sections=renumbered)


def normalize_report(raw: str, *, placeholder_pattern: str | Pattern[str] | None = None) -> str:
    return parse_report(raw, placeholder_pattern=placeholder_pattern).render()
