"""Client de géocodage: nom de lieu libre -> coordonnées validées + fuseau IANA.

Objectif du module
------------------
- Encapsuler les appels réseau vers Nominatim (OSM) et le géocodeur commercial (Google).
- Valider strictement les coordonnées reçues (jamais de valeur par défaut ni de bornage).
- Déduire le fuseau IANA des coordonnées (recherche hors-ligne par polygones).

Aucun cache ici: la mise en cache par lieu normalisé est gérée par l'appelant.
"""

from __future__ import annotations

import functools
import math
from typing import Any

import httpx
import structlog
from timezonefinder import TimezoneFinder

from jyotish.app.metrics import GEOCODE_REQUESTS
from jyotish.core.http_constants import DEFAULT_GEOCODE_TIMEOUT
from jyotish.domain.entities import GeocodeProvider, ResolvedLocation
from jyotish.domain.errors import (
    GeocodingUnavailable,
    InvalidCoordinates,
    LocationNotFound,
)

log = structlog.get_logger(__name__)

NOMINATIM_URL = "https://nominatim.openstreetmap.org"
GOOGLE_MAPS_URL = "https://maps.googleapis.com/maps/api/geocode/json"

_CITY_KEYS = ("city", "town", "village", "municipality", "hamlet")


@functools.lru_cache(maxsize=1)
def _tz_finder() -> TimezoneFinder:
    # Chargement des polygones coûteux: une seule instance par processus
    return TimezoneFinder()


def timezone_for(lat: float, lon: float) -> str:
    """Retourne l'identifiant IANA du fuseau couvrant `(lat, lon)`.

    Raises:
        InvalidCoordinates: aucun fuseau trouvé pour ces coordonnées.
    """
    tz_id = _tz_finder().timezone_at(lng=lon, lat=lat)
    if not tz_id:
        raise InvalidCoordinates(f"no timezone for coordinates: {lat}, {lon}")
    return tz_id


def _text(value: Any) -> str:
    """Champ texte d'une réponse externe; tout autre type devient une chaîne vide."""
    return value if isinstance(value, str) else ""


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def parse_coordinate(value: Any, bound: float, axis: str) -> float:
    """Convertit une coordonnée brute en float fini dans `[-bound, bound]`.

    Raises:
        InvalidCoordinates: valeur non numérique, non finie ou hors bornes.
    """
    if isinstance(value, bool):
        raise InvalidCoordinates(f"invalid {axis}: {value!r}")
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError) as err:
        raise InvalidCoordinates(f"invalid {axis}: {value!r}") from err
    if not math.isfinite(number) or abs(number) > bound:
        raise InvalidCoordinates(f"{axis} out of range: {value!r}")
    return number


class GeocodingResolver:
    """Résout un lieu libre via OSM/Nominatim ou le géocodeur commercial."""

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        *,
        default_provider: GeocodeProvider = GeocodeProvider.OSM,
        user_agent: str = "jyotish-compute/1.0",
        timeout_s: float = DEFAULT_GEOCODE_TIMEOUT,
        nominatim_url: str = NOMINATIM_URL,
        google_url: str = GOOGLE_MAPS_URL,
        google_api_key: str | None = None,
    ) -> None:
        """Initialise le client HTTP (réutilisable) et les paramètres des fournisseurs."""
        self.default_provider = GeocodeProvider(default_provider)
        self.nominatim_url = nominatim_url.rstrip("/")
        self.google_url = google_url
        self._google_api_key = google_api_key
        self._client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_s),
            headers={"User-Agent": user_agent, "Accept": "application/json"},
        )

    async def aclose(self) -> None:
        """Ferme le client HTTP sous-jacent."""
        await self._client.aclose()

    # ------------------------------------------------------------------ HTTP

    async def _get_json(self, provider: GeocodeProvider, url: str, params: dict[str, Any]) -> Any:
        try:
            resp = await self._client.get(url, params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as err:
            GEOCODE_REQUESTS.labels(provider=provider.value, outcome="timeout").inc()
            raise GeocodingUnavailable(f"{provider.value} geocoding timeout") from err
        except httpx.HTTPStatusError as err:
            GEOCODE_REQUESTS.labels(provider=provider.value, outcome="http_error").inc()
            raise GeocodingUnavailable(
                f"{provider.value} geocoding http {err.response.status_code}"
            ) from err
        except (httpx.HTTPError, ValueError) as err:
            GEOCODE_REQUESTS.labels(provider=provider.value, outcome="unavailable").inc()
            raise GeocodingUnavailable(f"{provider.value} geocoding failed: {err}") from err
        return data

    def _require_google_key(self) -> str:
        if not self._google_api_key:
            raise GeocodingUnavailable("commercial geocoding is not configured")
        return self._google_api_key

    # --------------------------------------------------------------- resolve

    async def resolve(
        self, place: str, provider: GeocodeProvider | str | None = None
    ) -> ResolvedLocation:
        """Géocode `place` et retourne un `ResolvedLocation` validé.

        Raises:
            LocationNotFound: aucun résultat.
            InvalidCoordinates: coordonnées invalides dans la réponse.
            GeocodingUnavailable: fournisseur injoignable ou en erreur.
        """
        selected = GeocodeProvider(provider) if provider else self.default_provider
        if selected is GeocodeProvider.COMMERCIAL:
            location = await self._resolve_google(place)
        else:
            location = await self._resolve_nominatim(place)
        GEOCODE_REQUESTS.labels(provider=selected.value, outcome="ok").inc()
        log.info(
            "geocode_ok",
            provider=selected.value,
            city=location.city,
            country=location.country,
            tz=location.iana_timezone,
        )
        return location

    async def _resolve_nominatim(self, place: str) -> ResolvedLocation:
        data = await self._get_json(
            GeocodeProvider.OSM,
            f"{self.nominatim_url}/search",
            {"q": place, "format": "json", "limit": 1, "addressdetails": 1},
        )
        if not isinstance(data, list) or not data or not isinstance(data[0], dict):
            GEOCODE_REQUESTS.labels(provider="osm", outcome="not_found").inc()
            raise LocationNotFound(f"no results for place: {place}")
        result = data[0]
        lat = parse_coordinate(result.get("lat"), 90.0, "latitude")
        lon = parse_coordinate(result.get("lon"), 180.0, "longitude")
        address = _mapping(result.get("address"))
        city = next((_text(address.get(k)) for k in _CITY_KEYS if _text(address.get(k))), "")
        return ResolvedLocation(
            lat=lat,
            lon=lon,
            iana_timezone=timezone_for(lat, lon),
            city=city,
            country=_text(address.get("country")),
            display_name=_text(result.get("display_name")) or place,
        )

    async def _resolve_google(self, place: str) -> ResolvedLocation:
        api_key = self._require_google_key()
        data = await self._get_json(
            GeocodeProvider.COMMERCIAL, self.google_url, {"address": place, "key": api_key}
        )
        status = data.get("status") if isinstance(data, dict) else None
        results = data.get("results") if isinstance(data, dict) else None
        if status == "ZERO_RESULTS" or (status == "OK" and not results):
            GEOCODE_REQUESTS.labels(provider="commercial", outcome="not_found").inc()
            raise LocationNotFound(f"no results for place: {place}")
        if status != "OK" or not isinstance(results, list):
            GEOCODE_REQUESTS.labels(provider="commercial", outcome="unavailable").inc()
            raise GeocodingUnavailable(f"commercial geocoding status: {status}")
        result = _mapping(results[0])
        point = _mapping(_mapping(result.get("geometry")).get("location"))
        lat = parse_coordinate(point.get("lat"), 90.0, "latitude")
        lon = parse_coordinate(point.get("lng"), 180.0, "longitude")
        city, country = "", ""
        components = result.get("address_components")
        for component in components if isinstance(components, list) else []:
            component = _mapping(component)
            types = component.get("types")
            if not isinstance(types, list):
                continue
            if "locality" in types or ("administrative_area_level_1" in types and not city):
                city = _text(component.get("long_name"))
            if "country" in types:
                country = _text(component.get("long_name"))
        return ResolvedLocation(
            lat=lat,
            lon=lon,
            iana_timezone=timezone_for(lat, lon),
            city=city,
            country=country,
            display_name=_text(result.get("formatted_address")) or place,
        )

    # --------------------------------------------------------------- reverse

    async def reverse(
        self, lat: float, lon: float, provider: GeocodeProvider | str | None = None
    ) -> str:
        """Retourne le nom affichable du lieu situé en `(lat, lon)`."""
        lat = parse_coordinate(lat, 90.0, "latitude")
        lon = parse_coordinate(lon, 180.0, "longitude")
        selected = GeocodeProvider(provider) if provider else self.default_provider
        fallback = f"{lat}, {lon}"
        if selected is GeocodeProvider.COMMERCIAL:
            data = await self._get_json(
                selected,
                self.google_url,
                {"latlng": f"{lat},{lon}", "key": self._require_google_key()},
            )
            results = data.get("results") if isinstance(data, dict) else None
            if not isinstance(results, list) or not results:
                raise LocationNotFound(f"no results for coordinates: {fallback}")
            return _text(_mapping(results[0]).get("formatted_address")) or fallback
        data = await self._get_json(
            selected,
            f"{self.nominatim_url}/reverse",
            {"lat": lat, "lon": lon, "format": "json", "addressdetails": 1},
        )
        # Nominatim répond 200 avec {"error": ...} quand rien n'est trouvé
        display_name = _text(_mapping(data).get("display_name"))
        if not display_name:
            raise LocationNotFound(f"no results for coordinates: {fallback}")
        return display_name
