"""
Métriques Prometheus pour l'application.

Ce module définit les métriques du pipeline de calcul (géocodage, appels fournisseur, limiteur de
débit, issues des calculs) ainsi que le middleware HTTP et la route `/metrics`.
Les labels restent à faible cardinalité (pas d'identifiant de session ni de lieu).
"""

import time

from fastapi import APIRouter, Request
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Histogram,
    generate_latest,
)
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

metrics_router = APIRouter()

REQUEST_COUNT = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "route", "status"]
)
REQUEST_LATENCY = Histogram(
    "http_request_duration_seconds", "Latency of HTTP requests", ["route"]
)

# Géocodage
GEOCODE_REQUESTS = Counter(
    "geocode_requests_total",
    "Geocoding lookups by provider and outcome",
    ["provider", "outcome"],
)
GEOCODE_CACHE = Counter(
    "geocode_cache_total",
    "Location cache lookups",
    ["result"],
)

# Fournisseur de calcul
PROVIDER_CALLS = Counter(
    "provider_calls_total",
    "Provider calls by pipeline stage and outcome",
    ["stage", "outcome"],
)
PROVIDER_LATENCY = Histogram(
    "provider_call_duration_seconds",
    "Latency of provider calls",
    ["stage"],
    buckets=[0.1, 0.25, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0],
)
RATE_LIMIT_WAIT = Histogram(
    "provider_rate_limit_wait_seconds",
    "Time spent waiting for the provider spacing limiter",
    buckets=[0.0, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0],
)

# Issues de bout en bout
COMPUTE_OUTCOMES = Counter(
    "compute_outcomes_total",
    "Computation outcomes",
    ["outcome"],
)


@metrics_router.get("/metrics")
def metrics():
    """
    Expose les métriques Prometheus au format texte.

    Returns:
        Response: Réponse HTTP contenant les métriques au format Prometheus.
    """
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Middleware Prometheus pour mesurer les métriques HTTP.

    Collecte les métriques de comptage des requêtes et de latence par route pour l'exposition
    Prometheus. La route est le gabarit FastAPI (ex: `/sessions/{session_id}`) quand il est connu.
    """

    async def dispatch(self, request: Request, call_next):
        """
        Traite une requête HTTP et collecte les métriques.

        Args:
            request: Requête HTTP entrante.
            call_next: Fonction pour appeler le middleware suivant.

        Returns:
            Response: Réponse HTTP avec métriques collectées.
        """
        start = time.perf_counter()
        response: Response = await call_next(request)
        route_obj = request.scope.get("route")
        route = getattr(route_obj, "path", None) or "unmatched"
        REQUEST_COUNT.labels(request.method, route, str(response.status_code)).inc()
        REQUEST_LATENCY.labels(route).observe(time.perf_counter() - start)
        return response
