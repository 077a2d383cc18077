"""
Unit tests for markdown stripping ahead of normalization.
"""

import pytest

from kinereport.report.markup import normalize_newlines, strip_markup
from kinereport.report.normalizer import normalize_report


def test_strips_headings_bold_and_italics():
    text = "## 1. Informations patient\n**Nom et prénom :** Jean Dupont\n*Âge* : 54 ans"

    assert strip_markup(text) == "1. Informations patient\nNom et prénom : Jean Dupont\nÂge : 54 ans"


def test_removes_code_fences_and_inline_code():
    text = "```text\n1. Plan de traitement\nTechniques : `massage`\n```"

    assert strip_markup(text) == "1. Plan de traitement\nTechniques : massage"


def test_normalizes_line_endings():
    assert normalize_newlines("a\r\nb\rc") == "a\nb\nc"
    assert strip_markup("a\r\nb") == "a\nb"


@pytest.mark.parametrize(
    "line",
    [
        "Nom et prénom : Jean Dupont",
        "Douleur : EVA 6/10, 3 * 10 répétitions",
        "- Renforcement * 3 séries",
        "Test #2 positif",
        "Charge : 2 ** 3 séries",
        "2. Motif de consultation",
        "",
    ],
)
def test_plain_lines_unchanged(line):
    assert strip_markup(line) == line


def test_asterisk_bullets_become_dashes():
    text = "* Nom : Jean\n  *   Âge : 54 ans\n* *Situation* : marié"

    assert strip_markup(text) == "- Nom : Jean\n  - Âge : 54 ans\n- Situation : marié"


def test_unpaired_bold_attached_to_a_word_is_removed():
    assert strip_markup("**Nom : Jean") == "Nom : Jean"
    assert strip_markup("Âge : 54** ans") == "Âge : 54 ans"


def test_markdown_report_normalizes_like_plain_text():
    markdown = (
        "# Bilan kinésithérapique\n\n"
        "### **1. Informations patient**\n"
        "- **Nom et prénom :** Jean Dupont\n"
        "- **Âge :** …\n\n"
        "### **3. Motif de consultation**\n"
        "- **Raison de la venue :** lombalgie\n"
    )

    assert normalize_report(strip_markup(markdown)) == (
        "Bilan kinésithérapique\n\n"
        "1. Informations patient\n"
        "- Nom et prénom : Jean Dupont\n\n"
        "2. Motif de consultation\n"
        "- Raison de la venue : lombalgie"
    )
