"""Taxonomie des erreurs du pipeline de calcul.

Chaque erreur porte un `code` stable (journalisé et persisté comme cause d'échec), un statut HTTP
et un message destiné à l'utilisateur. Le message ne contient jamais de trace ni de secret du
fournisseur; le détail technique reste dans `detail` (journaux uniquement).
"""

from __future__ import annotations

from jyotish.core.http_constants import (
    HTTP_BAD_REQUEST,
    HTTP_INTERNAL_SERVER_ERROR,
    HTTP_NOT_FOUND,
)


class ComputeError(Exception):
    """Erreur de base du pipeline (classée, sûre à exposer via `public_message`)."""

    code = "INTERNAL_ERROR"
    http_status = HTTP_INTERNAL_SERVER_ERROR
    public_message = "Internal server error"

    def __init__(self, detail: str = "", session_id: str | None = None) -> None:
        """Initialise l'erreur avec un détail technique et l'id de session éventuel."""
        super().__init__(detail or self.public_message)
        self.detail = detail
        self.session_id = session_id


class ValidationError(ComputeError):
    """Requête mal formée (date, heure, lieu), détectée avant tout appel réseau."""

    code = "VALIDATION_ERROR"
    http_status = HTTP_BAD_REQUEST
    public_message = "Invalid request data"


# --- Géocodage -----------------------------------------------------------------------------


class GeocodingError(ComputeError):
    """Erreur de l'étape de géocodage (aucune session n'est créée)."""

    code = "GEOCODING_ERROR"


class LocationNotFound(GeocodingError):
    """Le fournisseur de géocodage ne renvoie aucun résultat."""

    code = "LOCATION_NOT_FOUND"
    http_status = HTTP_BAD_REQUEST
    public_message = "Location not found"


class InvalidCoordinates(GeocodingError):
    """Latitude/longitude non numériques, non finies ou hors bornes."""

    code = "INVALID_COORDINATES"
    http_status = HTTP_BAD_REQUEST
    public_message = "Location not found"


class GeocodingUnavailable(GeocodingError):
    """Service de géocodage injoignable ou en erreur."""

    code = "GEOCODING_UNAVAILABLE"
    public_message = "Geocoding service unavailable"


# --- Résolution temporelle -----------------------------------------------------------------


class InvalidCalendarValue(ComputeError):
    """Date/heure locale impossible à interpréter dans le fuseau donné."""

    code = "INVALID_CALENDAR_VALUE"
    http_status = HTTP_BAD_REQUEST
    public_message = "Invalid birth date or time"


# --- Fournisseur de calcul -----------------------------------------------------------------


class ProviderError(ComputeError):
    """Erreur d'un appel au fournisseur (la session est persistée en échec)."""

    code = "PROVIDER_ERROR"
    public_message = "Failed to compute horoscope"


class ProviderUnavailable(ProviderError):
    """Fournisseur injoignable, réponse HTTP en erreur ou contenu illisible."""

    code = "PROVIDER_UNAVAILABLE"


class ProviderTimeout(ProviderError):
    """L'appel au fournisseur a dépassé son délai."""

    code = "PROVIDER_TIMEOUT"


# --- Persistance / divers ------------------------------------------------------------------


class PersistenceError(ComputeError):
    """Échec de lecture/écriture du dépôt de sessions."""

    code = "PERSISTENCE_ERROR"
    public_message = "Failed to compute horoscope"


class SessionNotFound(ComputeError):
    """Aucune session pour l'identifiant demandé."""

    code = "SESSION_NOT_FOUND"
    http_status = HTTP_NOT_FOUND
    public_message = "Session not found"


class InternalError(ComputeError):
    """Erreur non classée."""

    code = "INTERNAL_ERROR"
