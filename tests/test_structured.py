"""
Unit tests for building report text from structured form fields, and for the
report template used in prompts.
"""

from kinereport.prompts import build_report_user_prompt, report_template
from kinereport.report.normalizer import normalize_report
from kinereport.report.structured import BilanInput, build_report_text, build_sections


def test_only_filled_sections_are_built():
    data = BilanInput.model_validate(
        {
            "patient": {"nom_prenom": "Jean Dupont", "age": 54, "situation": "  "},
            "motif": {"raison": None},
            "plan": {"objectifs": "Reprise de la course", "frequence_duree": "…"},
        }
    )

    sections = build_sections(data)

    assert [section.title for section in sections] == ["1. Informations patient", "2. Plan de traitement"]
    assert sections[0].items == ("Nom et prénom : Jean Dupont", "Âge : 54")
    assert sections[1].items == ("Objectifs principaux : Reprise de la course",)


def test_multiline_values_collapse_to_one_line():
    data = BilanInput.model_validate({"evaluation": {"douleur": "EVA 6/10\n  le soir"}})

    assert build_sections(data)[0].items == ("Douleur : EVA 6/10 le soir",)


def test_report_text_is_a_normalization_fixed_point():
    data = BilanInput.model_validate(
        {
            "patient": {"nom_prenom": "Jeanne Martin"},
            "evaluation": {"douleur": "EVA 4/10", "tests": "Lasègue négatif"},
            "explications": {"origine": "surcharge mécanique"},
        }
    )

    text = build_report_text(data)

    assert text.startswith("Bilan kinésithérapique\n\n1. Informations patient\n")
    assert "\n\n3. Explications données au patient\n" in text
    assert normalize_report(text) == text


def test_empty_input_gives_header_only():
    assert build_report_text(BilanInput()) == "Bilan kinésithérapique"


def test_unknown_fields_ignored():
    data = BilanInput.model_validate({"patient": {"nom_prenom": "A", "inconnu": "x"}, "autre": {}})

    assert build_sections(data)[0].items == ("Nom et prénom : A",)


def test_blank_template_normalizes_to_header():
    template = report_template()

    assert template.splitlines()[2] == "1. Informations patient"
    assert "5. Plan de traitement" in template
    assert normalize_report(template) == "Bilan kinésithérapique"


def test_user_prompt_embeds_transcript_and_template():
    prompt = build_report_user_prompt("Le patient décrit une douleur.", "Jean Dupont")

    assert "Le patient décrit une douleur." in prompt
    assert "Jean Dupont" in prompt
    assert report_template() in prompt
