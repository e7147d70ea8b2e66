"""
Entités du domaine métier.

Ce module définit les modèles de données du pipeline: description de naissance saisie par
l'utilisateur, lieu et instant résolus, requête transmise au fournisseur et session persistée.
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import Enum, IntEnum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from jyotish.domain.models import HoroscopeSummary

Lang = Literal["ne", "hi", "en"]


class AyanamsaVariant(IntEnum):
    """Convention de point de référence, transmise telle quelle au fournisseur."""

    LAHIRI = 1
    RAMAN = 2
    KRISHNAMURTI = 3


class GeocodeProvider(str, Enum):
    """Fournisseurs de géocodage disponibles."""

    OSM = "osm"
    COMMERCIAL = "commercial"


class SessionStatus(str, Enum):
    """Statut persisté d'une session de calcul."""

    CREATED = "created"
    RESOLVING = "resolving"
    COMPUTING = "computing"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class PipelineStage(str, Enum):
    """États de la machine à états de l'orchestrateur."""

    CREATED = "Created"
    GEOCODING = "Geocoding"
    TIME_RESOLVING = "TimeResolving"
    PERSISTED_PARTIAL = "PersistedPartial"
    CALLING_CHART = "CallingChart"
    CALLING_PERIOD = "CallingPeriod"
    CALLING_ALMANAC = "CallingAlmanac"
    SUMMARIZING = "Summarizing"
    PERSISTED_FINAL = "PersistedFinal"
    FAILED = "Failed"


class BirthDescriptor(BaseModel):
    """Données de naissance telles que saisies (immuables une fois soumises)."""

    model_config = ConfigDict(frozen=True)

    name: str
    raw_date: str  # YYYY-MM-DD, heure locale
    raw_time: str  # HH:MM, heure locale
    free_text_location: str
    ayanamsa_variant: AyanamsaVariant = AyanamsaVariant.LAHIRI
    lang: Lang = "ne"


class ResolvedLocation(BaseModel):
    """Lieu résolu: coordonnées validées et fuseau IANA."""

    model_config = ConfigDict(frozen=True)

    lat: float = Field(ge=-90.0, le=90.0)
    lon: float = Field(ge=-180.0, le=180.0)
    iana_timezone: str
    city: str = ""
    country: str = ""
    display_name: str = ""

    @property
    def label(self) -> str:
        """Libellé court `ville, pays` (ou nom complet si la ville est inconnue)."""
        parts = [p for p in (self.city, self.country) if p]
        return ", ".join(parts) if parts else self.display_name


class ResolvedInstant(BaseModel):
    """Instant UTC et décalage du fuseau valable à cet instant (règles historiques)."""

    model_config = ConfigDict(frozen=True)

    utc: datetime
    offset_minutes_at_instant: int

    @property
    def utc_iso(self) -> str:
        """Instant au format ISO 8601 suffixé `Z` (ex: 1990-01-01T04:45:00Z)."""
        return self.utc.astimezone(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")


class ComputationRequest(BaseModel):
    """Seule entrée vue par le fournisseur: jamais le texte libre du lieu."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: ResolvedLocation
    instant: ResolvedInstant
    ayanamsa_variant: AyanamsaVariant = AyanamsaVariant.LAHIRI


def _utcnow() -> datetime:
    return datetime.now(UTC)


class Session(BaseModel):
    """Unité persistée représentant une tentative de calcul."""

    id: str
    birth: BirthDescriptor
    location: ResolvedLocation | None = None
    instant: ResolvedInstant | None = None
    status: SessionStatus = SessionStatus.CREATED
    summary: HoroscopeSummary | None = None
    raw_payload: dict[str, Any] | None = None
    failure_stage: str | None = None
    failure_cause: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
