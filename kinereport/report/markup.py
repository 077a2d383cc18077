from __future__ import annotations

import re


_CODE_FENCE_LINE_PATTERN = re.compile(r'^\s*(```|~~~)[^\n]*$')
_HEADING_PATTERN = re.compile(r'^\s{0,3}#{1,6}(?:\s+|$)')
_BOLD_PATTERN = re.compile(r'\*\*(?=\S)(.+?)(?<=\S)\*\*')
_ITALIC_PATTERN = re.compile(r'(?<![*\w])\*(?=[^\s*])([^*\n]+?)(?<=[^\s*])\*(?![*\w])')
_INLINE_CODE_PATTERN = re.compile(r'`([^`\n]+)`')
_BULLET_PATTERN = re.compile(r'^(\s*)\*\s+')
# Unpaired "**" attached to a word; spaced " ** " is literal text.
_ORPHAN_BOLD_PATTERN = re.compile(r'(?<=\S)\*\*|\*\*(?=\S)')


def normalize_newlines(value: str) -> str:
    return value.replace('\r\n', '\n').replace('\r', '\n')


def strip_markup_line(line: str) -> str:
    if '#' not in line and '*' not in line and '`' not in line:
        return line
    stripped = _HEADING_PATTERN.sub('', line, count=1)
    stripped = _BULLET_PATTERN.sub(r'\1- ', stripped, count=1)
    stripped = _INLINE_CODE_PATTERN.sub(r'\1', stripped)
    stripped = _BOLD_PATTERN.sub(r'\1', stripped)
    stripped = _ORPHAN_BOLD_PATTERN.sub('', stripped)
    stripped = _ITALIC_PATTERN.sub(r'\1', stripped)
    return stripped


def strip_markup(text: str) -> str:
    """Remove markdown emphasis so generated text reads as plain report lines.

    Heading markers, bold/italic asterisks, inline code backticks and code
    fence lines are removed; the text between markers is kept verbatim. An
    asterisk touching a word is markup; one with whitespace on both sides is
    literal text, except a leading ``* `` bullet, which becomes ``- ``. Lines
    carrying none of these markers come back unchanged.
    """
    lines: list[str] = []
    for line in normalize_newlines(str(text or '')).split('\n'):
        if _CODE_FENCE_LINE_PATTERN.match(line):
            continue
        lines.append(strip_markup_line(line))
    return '\n'.join(lines)
