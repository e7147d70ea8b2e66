"""Modèles du résumé d'horoscope (forme fixe, toujours recalculable).

Objectif du module
------------------
- Définir la forme stable du résumé dérivé des réponses du fournisseur.
- Chaque champ textuel absent vaut `UNKNOWN`; les degrés absents valent `None`.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

UNKNOWN = "unknown"

PERIOD_LEVELS = (
    "vimshottari",
    "antardasha",
    "pratyantardasha",
    "sookshma_dasha",
    "yogini_dasha",
)

MAX_PATTERNS = 5


class SummaryModel(BaseModel):
    """Base des modèles du résumé: noms camelCase en JSON, noms Python acceptés en entrée."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Placement(SummaryModel):
    """Triplet signe / degré / nakshatra (ascendant, lune, soleil)."""

    sign: str = UNKNOWN
    degree: float | None = None
    nakshatra: str = UNKNOWN


class PeriodChain(SummaryModel):
    """Chaîne des 5 niveaux de période courante."""

    vimshottari: str = UNKNOWN
    antardasha: str = UNKNOWN
    pratyantardasha: str = UNKNOWN
    sookshma_dasha: str = UNKNOWN
    yogini_dasha: str = UNKNOWN


class Pattern(SummaryModel):
    """Configuration secondaire (yoga) avec sa force."""

    name: str = UNKNOWN
    type: str = UNKNOWN
    strength: float = 0.0


class ChartInfo(SummaryModel):
    """Carte divisionnaire: type, nom et nombre de positions."""

    type: str = UNKNOWN
    name: str = UNKNOWN
    planet_count: int = 0


class Almanac(SummaryModel):
    """Almanach du jour (4 membres)."""

    tithi: str = UNKNOWN
    nakshatra: str = UNKNOWN
    yoga: str = UNKNOWN
    karana: str = UNKNOWN


class HoroscopeSummary(SummaryModel):
    """Résumé compact, dérivé exclusivement des charges utiles du fournisseur."""

    ascendant: Placement = Field(default_factory=Placement)
    moon_sign: Placement = Field(default_factory=Placement)
    sun_sign: Placement = Field(default_factory=Placement)
    current_period: PeriodChain = Field(default_factory=PeriodChain)
    key_patterns: list[Pattern] = Field(default_factory=list, max_length=MAX_PATTERNS)
    charts: list[ChartInfo] = Field(default_factory=list)
    almanac: Almanac = Field(default_factory=Almanac)
