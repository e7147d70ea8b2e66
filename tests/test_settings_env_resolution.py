"""
Tests pour la résolution des paramètres (fichier .env et variables d'environnement).
"""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from jyotish.core.settings import Settings

SPACING_MS = 250
TIMEOUT_S = 12.5


def test_settings_reads_env_file(tmp_path: Path, monkeypatch) -> None:
    """Les valeurs d'un fichier .env personnalisé sont appliquées."""
    monkeypatch.delenv("PROVIDER_BACKEND", raising=False)
    env = tmp_path / ".env.custom"
    env.write_text(
        "PROVIDER_MIN_SPACING_MS=250\nPROVIDER_TIMEOUT_S=12.5\nGEOCODE_PROVIDER=commercial\n",
        encoding="utf-8",
    )
    s = Settings(_env_file=env)
    assert s.PROVIDER_MIN_SPACING_MS == SPACING_MS
    assert s.PROVIDER_TIMEOUT_S == TIMEOUT_S
    assert s.GEOCODE_PROVIDER == "commercial"


def test_environment_overrides_env_file(tmp_path: Path, monkeypatch) -> None:
    env = tmp_path / ".env"
    env.write_text("LOG_LEVEL=DEBUG\n", encoding="utf-8")
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    assert Settings(_env_file=env).LOG_LEVEL == "WARNING"


def test_defaults(monkeypatch) -> None:
    monkeypatch.delenv("PROVIDER_BACKEND", raising=False)
    s = Settings(_env_file=None)
    assert s.PROVIDER_BACKEND == "http"
    assert s.PROVIDER_MIN_SPACING_MS == 1000
    assert s.GEOCODE_PROVIDER == "osm"
    assert s.APP_DEBUG is False


def test_unknown_geocode_provider_is_rejected(monkeypatch) -> None:
    monkeypatch.setenv("GEOCODE_PROVIDER", "bing")
    with pytest.raises(ValidationError):
        Settings(_env_file=None)
