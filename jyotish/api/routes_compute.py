"""
Routes du calcul d'horoscope.

- `POST /compute`: géocodage, résolution de l'instant, trois appels au fournisseur, résumé et
  persistance de la session.
- `GET /compute`: état agrégé des dépendances (fournisseur, base, géocodage); 503 si l'une
  d'elles est indisponible.
"""

import asyncio
from datetime import UTC, datetime

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from jyotish.api.deps import get_container
from jyotish.api.schemas import ComputeHealthResponse, ComputeRequest, ComputeResponse
from jyotish.core.container import Container
from jyotish.core.http_constants import HTTP_OK, HTTP_SERVICE_UNAVAILABLE
from jyotish.domain.errors import ComputeError

log = structlog.get_logger(__name__)

router = APIRouter(prefix="/compute", tags=["compute"])
container_dep = Depends(get_container)

# Coordonnées de la sonde de géocodage (Katmandou)
PROBE_LAT = 27.7172
PROBE_LON = 85.3240

HEALTHY = "healthy"
UNHEALTHY = "unhealthy"


@router.post("", response_model=ComputeResponse)
async def compute(payload: ComputeRequest, container: Container = container_dep):
    """
    Lance un calcul complet pour une naissance.

    Paramètres:
    - payload: `ComputeRequest` (plat ou imbriqué sous `birthData`).

    Retour:
    - `ComputeResponse` (sessionId, résumé, horodatage du calcul).

    Les erreurs classées (`ComputeError`) sont converties par les gestionnaires d'erreurs.
    """
    birth = payload.to_birth()
    log.info("compute_requested", ayanamsa=int(birth.ayanamsa_variant), lang=birth.lang)
    outcome = await container.orchestrator.run(birth)
    return ComputeResponse(
        sessionId=outcome.session_id,
        summary=outcome.summary,
        computedAt=outcome.computed_at.isoformat(),
    )


async def _provider_status(container: Container) -> str:
    return HEALTHY if await container.provider.ping() else UNHEALTHY


async def _database_status(container: Container) -> str:
    ok = await asyncio.to_thread(container.session_repo.ping)
    return HEALTHY if ok else UNHEALTHY


async def _geocoding_status(container: Container) -> str:
    try:
        name = await container.geocoder.reverse(PROBE_LAT, PROBE_LON)
    except ComputeError as err:
        log.warning("geocoding_probe_failed", code=err.code, detail=err.detail)
        return UNHEALTHY
    return HEALTHY if name else UNHEALTHY


@router.get("", response_model=ComputeHealthResponse)
async def compute_health(container: Container = container_dep):
    """Vérifie les dépendances du calcul; HTTP 503 si l'une est indisponible."""
    provider, database, geocoding = await asyncio.gather(
        _provider_status(container),
        _database_status(container),
        _geocoding_status(container),
    )
    services = {"provider": provider, "database": database, "geocoding": geocoding}
    healthy = all(v == HEALTHY for v in services.values())
    body = ComputeHealthResponse(
        status=HEALTHY if healthy else UNHEALTHY,
        services=services,
        timestamp=datetime.now(UTC).isoformat(),
    )
    return JSONResponse(
        status_code=HTTP_OK if healthy else HTTP_SERVICE_UNAVAILABLE,
        content=body.model_dump(),
    )
