"""
Pytest configuration and shared fixtures.
"""

from pathlib import Path

import pytest

from kinereport.config import get_settings


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
    """Point the data directory at a temp folder and drop cached settings."""
    monkeypatch.setenv("KINEREPORT_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("RESEND_API_KEY", raising=False)
    monkeypatch.delenv("SENDER_EMAIL", raising=False)
    get_settings.cache_clear()
    yield get_settings()
    get_settings.cache_clear()


@pytest.fixture
def char_measure():
    """Deterministic width: half the font size per character."""

    def measure(text: str, size: float, bold: bool) -> float:
        return len(text) * size * 0.5

    return measure


@pytest.fixture
def raw_report() -> str:
    """Generated report with placeholders, an empty section and gaps in numbering."""
    return "\n".join(
        [
            "Bilan kinésithérapique",
            "",
            "1. Informations patient",
            "Nom et prénom : Jean Dupont",
            "Âge : …",
            "Activité professionnelle : Menuisier",
            "",
            "2. Motif de consultation",
            "Raison de la venue : ...",
            "Contexte d’apparition :",
            "",
            "4. Évaluation clinique",
            "Douleur : EVA 6/10 en fin de journée",
            "Tests spécifiques : Lasègue négatif",
            "",
            "5. Plan de traitement",
            "Objectifs principaux : reprise du travail",
            "Fréquence et durée : 2 séances par semaine pendant 6 semaines",
        ]
    )
