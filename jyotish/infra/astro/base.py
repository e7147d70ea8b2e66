"""Interface de base pour le fournisseur de calcul astrologique."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from jyotish.domain.entities import ComputationRequest


class ProviderClient(ABC):
    """Interface abstraite des trois calculs délégués (carte, périodes, almanach).

    Chaque méthode renvoie la charge utile brute (dict) ou lève une sous-classe de
    `ProviderError` (`ProviderTimeout`, `ProviderUnavailable`).
    """

    @abstractmethod
    async def get_chart(self, request: ComputationRequest) -> dict[str, Any]:
        """Carte natale (ascendant, positions, cartes divisionnaires, yogas)."""

    @abstractmethod
    async def get_period(self, request: ComputationRequest) -> dict[str, Any]:
        """Périodes planétaires (chaîne courante à 5 niveaux)."""

    @abstractmethod
    async def get_almanac(self, request: ComputationRequest) -> dict[str, Any]:
        """Almanach du jour de naissance (tithi, nakshatra, yoga, karana)."""

    async def ping(self) -> bool:
        """Sonde de santé légère; `True` si le fournisseur répond."""
        return True

    async def aclose(self) -> None:
        """Libère les ressources réseau éventuelles."""
        return None
