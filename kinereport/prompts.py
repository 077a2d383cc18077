from __future__ import annotations

from .report.normalizer import REPORT_TITLE
from .report.structured import SECTION_LAYOUT


def report_template() -> str:
    lines = [REPORT_TITLE, '']
    for number, (_, section_title, fields) in enumerate(SECTION_LAYOUT, start=1):
        if number > 1:
            lines.append('')
        lines.append(f'{number}. {section_title}')
        lines.extend(f'{label} : …' for _, label in fields)
    return '\n'.join(lines)


SYSTEM_PROMPT = (
    'Tu es un assistant clinique pour kinésithérapeute. '
    'Tu reçois la transcription brute d’un échange patient-kiné et tu rédiges un bilan '
    'kinésithérapique en français professionnel, concis, sans diagnostic médical.'
)


def build_report_user_prompt(transcript: str, patient_name: str) -> str:
    return (
        f'Transcription (fr) pour le patient {patient_name} :\n\n'
        f'```\n{transcript}\n```\n\n'
        'Remplis exactement le modèle ci-dessous, en texte brut, sans markdown. '
        'Garde les titres numérotés et une ligne « Libellé : valeur » par information. '
        'Si une information est absente de la transcription, laisse « … » comme valeur.\n\n'
        f'{report_template()}\n'
    )
