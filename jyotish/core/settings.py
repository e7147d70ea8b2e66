"""Définition et chargement des paramètres de configuration applicative.

Objectif du module
------------------
- Centraliser les paramètres (env/.env) via Pydantic Settings
- Résoudre le fichier `.env` à utiliser selon la stratégie: ENV_FILE > .env.{APP_ENV} > .env
"""

import os
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Détermination du fichier .env à utiliser avec priorité:
# 1) ENV_FILE (chemin explicite)
# 2) .env.{APP_ENV} si présent
# 3) .env (défaut)
_cwd = Path.cwd()
_env_file_from_env = os.getenv("ENV_FILE")
if _env_file_from_env:
    _ENV_FILE_PATH = _env_file_from_env
else:
    _app_env = os.getenv("APP_ENV", "dev")
    _candidate_specific = _cwd / f".env.{_app_env}"
    _candidate_default = _cwd / ".env"
    if _candidate_specific.exists():
        _ENV_FILE_PATH = _candidate_specific
    else:
        _ENV_FILE_PATH = _candidate_default


class Settings(BaseSettings):
    """Modèle de configuration chargé depuis l'environnement et .env."""

    model_config = SettingsConfigDict(
        env_file=_ENV_FILE_PATH,
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=False,
        extra="ignore",
    )
    APP_NAME: str = "jyotish-compute"
    APP_ENV: str = "dev"
    APP_DEBUG: bool = False
    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    # Stockage (SQL si DATABASE_URL, sinon mémoire) et cache (Redis si REDIS_URL)
    DATABASE_URL: str | None = None
    REDIS_URL: str | None = None

    # Géocodage
    GEOCODE_PROVIDER: Literal["osm", "commercial"] = "osm"
    GEOCODE_USER_AGENT: str = "jyotish-compute/1.0"
    GEOCODE_TIMEOUT_S: float = 10.0
    GEOCODE_CACHE_TTL_S: int = 7 * 24 * 3600
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org"
    GOOGLE_MAPS_URL: str = "https://maps.googleapis.com/maps/api/geocode/json"
    GOOGLE_MAPS_API_KEY: str | None = None

    # Fournisseur de calcul (chart/period/almanac)
    PROVIDER_BACKEND: Literal["http", "fake"] = "http"
    PROVIDER_BASE_URL: str = "https://api.prokerala.com/v2/astrology"
    PROVIDER_API_KEY: str | None = None
    PROVIDER_TIMEOUT_S: float = 30.0
    PROVIDER_MIN_SPACING_MS: int = 1000


def get_settings() -> Settings:
    """Construit et retourne la configuration de l'application."""
    return Settings()
