from __future__ import annotations

from pydantic import BaseModel, ConfigDict, field_validator

from .normalizer import REPORT_TITLE, NormalizedReport, Section, is_placeholder_value


class _Group(BaseModel):
    model_config = ConfigDict(extra='ignore')

    @field_validator('*', mode='before')
    @classmethod
    def _coerce_text(cls, value):
        if value is None:
            return None
        return str(value)


class PatientInfo(_Group):
    nom_prenom: str | None = None
    age: str | None = None
    situation: str | None = None
    travail: str | None = None
    loisirs: str | None = None
    antecedents: str | None = None


class Motif(_Group):
    raison: str | None = None
    contexte: str | None = None
    examens: str | None = None
    parcours: str | None = None


class Evaluation(_Group):
    douleur: str | None = None
    incapacites: str | None = None
    observation: str | None = None
    tests: str | None = None
    facteurs: str | None = None


class Explications(_Group):
    origine: str | None = None
    lien: str | None = None
    comprehension: str | None = None


class Plan(_Group):
    objectifs: str | None = None
    techniques: str | None = None
    frequence_duree: str | None = None


class BilanInput(BaseModel):
    model_config = ConfigDict(extra='ignore')

    patient: PatientInfo | None = None
    motif: Motif | None = None
    evaluation: Evaluation | None = None
    explications: Explications | None = None
    plan: Plan | None = None


# (group attribute, section title, [(field, label), ...]) in report order.
SECTION_LAYOUT: tuple[tuple[str, str, tuple[tuple[str, str], ...]], ...] = (
    (
        'patient',
        'Informations patient',
        (
            ('nom_prenom', 'Nom et prénom'),
            ('age', 'Âge'),
            ('situation', 'Situation familiale'),
            ('travail', 'Activité professionnelle'),
            ('loisirs', 'Activités sociales et loisirs'),
            ('antecedents', 'Antécédents médicaux importants'),
        ),
    ),
    (
        'motif',
        'Motif de consultation',
        (
            ('raison', 'Raison de la venue'),
            ('contexte', 'Contexte d’apparition'),
            ('examens', 'Examens complémentaires'),
            ('parcours', 'Parcours de soins déjà réalisé'),
        ),
    ),
    (
        'evaluation',
        'Évaluation clinique',
        (
            ('douleur', 'Douleur'),
            ('incapacites', 'Incapacités fonctionnelles'),
            ('observation', 'Observation clinique'),
            ('tests', 'Tests spécifiques'),
            ('facteurs', 'Facteurs aggravants ou de risque'),
        ),
    ),
    (
        'explications',
        'Explications données au patient',
        (
            ('origine', 'Origine probable du trouble'),
            ('lien', 'Lien avec son mode de vie ou antécédents'),
            ('comprehension', 'Éléments de compréhension'),
        ),
    ),
    (
        'plan',
        'Plan de traitement',
        (
            ('objectifs', 'Objectifs principaux'),
            ('techniques', 'Techniques envisagées'),
            ('frequence_duree', 'Fréquence et durée'),
        ),
    ),
)


def _field_value(group: BaseModel | None, name: str) -> str | None:
    if group is None:
        return None
    value = getattr(group, name, None)
    text = ' '.join(str(value or '').split())
    if is_placeholder_value(text):
        return None
    return text


def build_sections(data: BilanInput) -> list[Section]:
    sections: list[Section] = []
    for group_name, section_title, fields in SECTION_LAYOUT:
        group = getattr(data, group_name)
        lines: list[str] = []
        for field_name, label in fields:
            value = _field_value(group, field_name)
            if value is not None:
                lines.append(f'{label} : {value}')
        if lines:
            number = len(sections) + 1
            sections.append(Section(title=f'{number}. {section_title}', items=tuple(lines)))
    return sections


def sections_to_report_text(sections: list[Section], *, header: str | None = REPORT_TITLE) -> str:
    return NormalizedReport(header=header, sections=tuple(sections)).render()


def build_report_text(data: BilanInput) -> str:
    return sections_to_report_text(build_sections(data))
