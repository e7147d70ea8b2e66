"""
Fakes pour les tests unitaires.

Ce module fournit un géocodeur en mémoire, un fournisseur scriptable (charges utiles ou erreurs par
étape) et une horloge simulée pour le limiteur de débit.
"""

from __future__ import annotations

from typing import Any

from jyotish.domain.entities import ComputationRequest, GeocodeProvider, ResolvedLocation
from jyotish.domain.errors import LocationNotFound
from jyotish.infra.astro.base import ProviderClient

KATHMANDU = ResolvedLocation(
    lat=27.7172,
    lon=85.3240,
    iana_timezone="Asia/Kathmandu",
    city="Kathmandu",
    country="Nepal",
    display_name="Kathmandu, Bagmati Province, Nepal",
)

CHART = {
    "ascendant": {"sign_name": "Capricorn", "degree": 12.5, "nakshatra_name": "Shravana"},
    "moon_sign": {"sign_name": "Leo", "degree": 3.25, "nakshatra_name": "Magha"},
    "sun_sign": {"sign_name": "Sagittarius", "degree": 16.0, "nakshatra_name": "Purva Ashadha"},
    "charts": [
        {"chart_type": "d1", "chart_name": "Rashi", "positions": [{"planet": "Sun"}] * 9},
        {"chart_type": "d9", "chart_name": "Navamsha", "positions": [{"planet": "Sun"}] * 9},
    ],
    "yogas": [
        {"yoga_name": "Gaja Kesari", "yoga_type": "raja", "strength": 0.9},
        {"yoga_name": "Budha Aditya", "yoga_type": "dhana", "strength": 0.7},
    ],
}
PERIOD = {
    "current_period": {
        "vimshottari": "Venus",
        "antardasha": "Sun",
        "pratyantardasha": "Moon",
        "sookshma_dasha": "Mars",
        "yogini_dasha": "Sankata",
    }
}
ALMANAC = {
    "panchang": {
        "tithi": {"name": "Shukla Panchami"},
        "nakshatra": {"name": "Shravana"},
        "yoga": {"name": "Siddhi"},
        "karana": {"name": "Bava"},
    }
}


class FakeGeocoder:
    """Géocodeur en mémoire: clé = lieu en minuscules."""

    def __init__(self, places: dict[str, ResolvedLocation]):
        self.places = places
        self.calls: list[tuple[str, GeocodeProvider | None]] = []

    async def resolve(self, place: str, provider: GeocodeProvider | None = None):
        self.calls.append((place, provider))
        try:
            return self.places[place.strip().lower()]
        except KeyError as err:
            raise LocationNotFound(f"no results for place: {place}") from err

    async def reverse(self, lat: float, lon: float, provider=None) -> str:
        for loc in self.places.values():
            if abs(loc.lat - lat) < 1e-6 and abs(loc.lon - lon) < 1e-6:
                return loc.display_name
        raise LocationNotFound(f"no results for coordinates: {lat}, {lon}")

    async def aclose(self) -> None:
        return None


class ScriptedProvider(ProviderClient):
    """Fournisseur scriptable: chaque opération renvoie sa charge ou lève l'erreur prévue."""

    def __init__(
        self,
        chart: Any = None,
        period: Any = None,
        almanac: Any = None,
        *,
        healthy: bool = True,
    ):
        self.results = {
            "chart": CHART if chart is None else chart,
            "period": PERIOD if period is None else period,
            "almanac": ALMANAC if almanac is None else almanac,
        }
        self.healthy = healthy
        self.calls: list[str] = []
        self.requests: list[ComputationRequest] = []

    async def _answer(self, operation: str, request: ComputationRequest) -> dict[str, Any]:
        self.calls.append(operation)
        self.requests.append(request)
        result = self.results[operation]
        if isinstance(result, Exception):
            raise result
        return result

    async def get_chart(self, request):
        return await self._answer("chart", request)

    async def get_period(self, request):
        return await self._answer("period", request)

    async def get_almanac(self, request):
        return await self._answer("almanac", request)

    async def ping(self) -> bool:
        return self.healthy


class FakeClock:
    """Horloge monotone simulée: `sleep` avance le temps sans attendre."""

    def __init__(self, start: float = 0.0):
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
