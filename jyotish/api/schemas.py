# Schémas Pydantic exposés par l'API (requêtes et réponses).

from typing import Any, Literal

from pydantic import BaseModel, Field, model_validator

from jyotish.domain.entities import AyanamsaVariant, BirthDescriptor, Session
from jyotish.domain.models import HoroscopeSummary


class ComputeRequest(BaseModel):
    """Modèle de requête pour lancer un calcul.

    Champs:
    - name: str (1..100 caractères)
    - date: str (YYYY-MM-DD, date locale)
    - time: str (HH:MM, heure locale)
    - location: str (lieu en texte libre, 1..200 caractères)
    - ayanamsa: 1 (Lahiri) | 2 (Raman) | 3 (Krishnamurti)
    - lang: ne | hi | en

    Le corps peut être plat ou imbriqué sous `birthData`.
    """

    name: str = Field(min_length=1, max_length=100)
    date: str = Field(pattern=r"^\d{4}-\d{2}-\d{2}$")
    time: str = Field(pattern=r"^\d{2}:\d{2}$")
    location: str = Field(min_length=1, max_length=200)
    ayanamsa: int = Field(default=1, ge=1, le=3)
    lang: Literal["ne", "hi", "en"] = "ne"

    @model_validator(mode="before")
    @classmethod
    def _unwrap_birth_data(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("birthData"), dict):
            return data["birthData"]
        return data

    def to_birth(self) -> BirthDescriptor:
        """Convertit en `BirthDescriptor` du domaine."""
        return BirthDescriptor(
            name=self.name.strip(),
            raw_date=self.date,
            raw_time=self.time,
            free_text_location=self.location.strip(),
            ayanamsa_variant=AyanamsaVariant(self.ayanamsa),
            lang=self.lang,
        )


class ComputeResponse(BaseModel):
    """Réponse d'un calcul réussi."""

    success: Literal[True] = True
    sessionId: str
    summary: HoroscopeSummary
    computedAt: str


class ServicesStatus(BaseModel):
    provider: Literal["healthy", "unhealthy"]
    database: Literal["healthy", "unhealthy"]
    geocoding: Literal["healthy", "unhealthy"]


class ComputeHealthResponse(BaseModel):
    """État agrégé des dépendances du calcul (`GET /compute`)."""

    status: Literal["healthy", "unhealthy"]
    services: ServicesStatus
    timestamp: str


class SessionResponse(BaseModel):
    """Vue publique d'une session (sans la charge brute du fournisseur).

    Champs:
    - id, status, name, date, time, location, ayanamsa, lang
    - resolvedLocation: dict | None (lat, lon, timezone, city, country, displayName)
    - utcInstant: str | None (ISO 8601, suffixe Z)
    - tzOffsetMinutes: int | None
    - summary: HoroscopeSummary | None
    - failureStage / failureCause: str | None
    - createdAt / updatedAt: str (ISO 8601)
    """

    id: str
    status: str
    name: str
    date: str
    time: str
    location: str
    ayanamsa: int
    lang: str
    resolvedLocation: dict[str, Any] | None = None
    utcInstant: str | None = None
    tzOffsetMinutes: int | None = None
    summary: HoroscopeSummary | None = None
    failureStage: str | None = None
    failureCause: str | None = None
    createdAt: str
    updatedAt: str

    @classmethod
    def from_session(cls, session: Session) -> "SessionResponse":
        loc = session.location
        return cls(
            id=session.id,
            status=session.status.value,
            name=session.birth.name,
            date=session.birth.raw_date,
            time=session.birth.raw_time,
            location=session.birth.free_text_location,
            ayanamsa=int(session.birth.ayanamsa_variant),
            lang=session.birth.lang,
            resolvedLocation=(
                {
                    "lat": loc.lat,
                    "lon": loc.lon,
                    "timezone": loc.iana_timezone,
                    "city": loc.city,
                    "country": loc.country,
                    "displayName": loc.display_name,
                }
                if loc
                else None
            ),
            utcInstant=session.instant.utc_iso if session.instant else None,
            tzOffsetMinutes=(
                session.instant.offset_minutes_at_instant if session.instant else None
            ),
            summary=session.summary,
            failureStage=session.failure_stage,
            failureCause=session.failure_cause,
            createdAt=session.created_at.isoformat(),
            updatedAt=session.updated_at.isoformat(),
        )
