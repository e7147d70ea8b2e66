"""
Client HTTP du fournisseur de calcul (API REST de type Prokerala).

Ce module traduit une `ComputationRequest` en appels HTTP, borne chaque appel par son propre délai
et classe les échecs en `ProviderTimeout` / `ProviderUnavailable`. Il ne fait ni retry ni
espacement: l'orchestrateur applique le limiteur de débit avant chaque appel.
"""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from jyotish.core.http_constants import DEFAULT_PROVIDER_TIMEOUT
from jyotish.domain.entities import ComputationRequest
from jyotish.domain.errors import ProviderTimeout, ProviderUnavailable
from jyotish.infra.astro.base import ProviderClient

log = structlog.get_logger(__name__)

# Cartes divisionnaires demandées: D1 (Rashi), D9 (Navamsha), D10, D12
CHART_TYPES = "d1,d9,d10,d12"
PERIOD_TYPES = "vimshottari,antardasha,pratyantardasha,sookshma,yogini"

_STATUS_MESSAGES = {
    400: "invalid request parameters",
    401: "invalid API credentials",
    403: "API access forbidden",
    404: "API endpoint not found",
    429: "API rate limit exceeded",
    500: "provider server error",
    502: "provider service unavailable",
    503: "provider service temporarily unavailable",
}


def _provider_datetime(request: ComputationRequest) -> str:
    # Le fournisseur reçoit l'instant en UTC, sans secondes significatives
    return request.instant.utc.strftime("%Y-%m-%dT%H:%M:00")


class HttpProviderClient(ProviderClient):
    """Client du fournisseur via `httpx.AsyncClient` (authentification Bearer)."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        *,
        timeout_s: float = DEFAULT_PROVIDER_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialise le client HTTP réutilisable.

        Args:
            base_url: URL racine de l'API (ex: https://api.prokerala.com/v2/astrology).
            api_key: jeton Bearer; jamais journalisé.
            timeout_s: délai maximal de chaque appel (connexion + lecture).
            client: client httpx injecté (tests).
        """
        self.timeout_s = timeout_s
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        else:
            log.warning("provider_api_key_missing")
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=httpx.Timeout(timeout_s),
        )

    async def aclose(self) -> None:
        """Ferme le client HTTP sous-jacent."""
        await self._client.aclose()

    async def _call(self, operation: str, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Exécute un appel borné par `timeout_s` et classe les échecs."""
        try:
            resp = await asyncio.wait_for(
                self._client.request(method, path, **kwargs), timeout=self.timeout_s
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.TimeoutException, TimeoutError) as err:
            raise ProviderTimeout(f"{operation}: request timeout") from err
        except httpx.HTTPStatusError as err:
            status = err.response.status_code
            reason = _STATUS_MESSAGES.get(status, f"http {status}")
            raise ProviderUnavailable(f"{operation}: {reason}") from err
        except httpx.HTTPError as err:
            raise ProviderUnavailable(f"{operation}: unable to reach provider") from err
        except ValueError as err:
            raise ProviderUnavailable(f"{operation}: malformed response body") from err
        if not isinstance(data, dict):
            raise ProviderUnavailable(f"{operation}: unexpected payload type")
        return data

    async def get_chart(self, request: ComputationRequest) -> dict[str, Any]:
        """Appelle `POST /kundli`."""
        return await self._call(
            "chart",
            "POST",
            "/kundli",
            json={
                "name": request.name,
                "datetime": _provider_datetime(request),
                "latitude": request.location.lat,
                "longitude": request.location.lon,
                "timezone": "UTC",
                "ayanamsa": int(request.ayanamsa_variant),
                "chart_type": CHART_TYPES,
                "include_yogas": True,
                "include_ascendant": True,
                "include_moon_sign": True,
                "include_sun_sign": True,
            },
        )

    async def get_period(self, request: ComputationRequest) -> dict[str, Any]:
        """Appelle `POST /dasha`."""
        return await self._call(
            "period",
            "POST",
            "/dasha",
            json={
                "datetime": _provider_datetime(request),
                "latitude": request.location.lat,
                "longitude": request.location.lon,
                "timezone": "UTC",
                "ayanamsa": int(request.ayanamsa_variant),
                "dasha_type": PERIOD_TYPES,
                "include_current_period": True,
            },
        )

    async def get_almanac(self, request: ComputationRequest) -> dict[str, Any]:
        """Appelle `GET /panchang` pour la date UTC de naissance."""
        return await self._call(
            "almanac",
            "GET",
            "/panchang",
            params={
                "date": request.instant.utc.strftime("%Y-%m-%d"),
                "latitude": request.location.lat,
                "longitude": request.location.lon,
                "timezone": request.location.iana_timezone,
            },
        )

    async def ping(self) -> bool:
        """Sonde légère: almanach d'une date et d'un lieu fixes."""
        try:
            await self._call(
                "ping",
                "GET",
                "/panchang",
                params={"date": "2024-01-01", "latitude": 27.7172, "longitude": 85.3240},
            )
        except (ProviderTimeout, ProviderUnavailable) as err:
            log.warning("provider_ping_failed", error=str(err))
            return False
        return True
