"""
Application principale FastAPI.

Ce module assemble les composants du service de calcul : middlewares, routes, gestion des erreurs
et métriques.

Responsabilités du module:
- Initialiser le logging structuré
- Construire (ou recevoir) le conteneur et l'attacher à `app.state`
- Ajouter les middlewares (request id, métriques, timing)
- Publier les routes de santé, de calcul, de sessions et de métriques
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from jyotish.api.errors import register_error_handlers
from jyotish.api.routes_compute import router as compute_router
from jyotish.api.routes_health import router as health_router
from jyotish.api.routes_sessions import router as sessions_router
from jyotish.app.metrics import PrometheusMiddleware, metrics_router
from jyotish.core.container import Container
from jyotish.core.logging import setup_logging
from jyotish.core.settings import get_settings
from jyotish.middlewares.request_id import RequestIDMiddleware
from jyotish.middlewares.timing import TimingMiddleware


def create_app(container: Container | None = None) -> FastAPI:
    """
    Construit et retourne l'application FastAPI prête à l'usage.

    Étapes:
    - Configure le logging structuré (structlog)
    - Construit le conteneur depuis les paramètres, sauf s'il est fourni (tests)
    - Ajoute les middlewares utiles au debug/traçabilité
    - Publie les routes
    """
    settings = container.settings if container else get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_JSON)
    container = container or Container(settings)

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        yield
        await container.aclose()

    app = FastAPI(title=settings.APP_NAME, debug=settings.APP_DEBUG, lifespan=lifespan)
    app.state.container = container
    register_error_handlers(app)
    app.add_middleware(TimingMiddleware)
    app.add_middleware(PrometheusMiddleware)
    app.add_middleware(RequestIDMiddleware)
    app.include_router(health_router)
    app.include_router(compute_router)
    app.include_router(sessions_router)
    app.include_router(metrics_router)
    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    _settings = app.state.container.settings
    uvicorn.run(app, host=_settings.APP_HOST, port=_settings.APP_PORT)
