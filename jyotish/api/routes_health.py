"""
Endpoint de santé pour vérifier la disponibilité de l'API.

Expose `/health` (vivacité du processus et backends configurés, sans appel sortant). L'état des
dépendances externes est exposé par `GET /compute`.
"""

from fastapi import APIRouter, Depends

from jyotish.api.deps import get_container
from jyotish.core.container import Container

router = APIRouter(tags=["health"])
container_dep = Depends(get_container)


@router.get("/health")
def health(container: Container = container_dep):
    """Vérifie la disponibilité de l'API et les backends de stockage."""
    return {
        "status": "ok",
        "storage": container.storage_backend,
        "cache": container.cache_backend,
        "provider": container.settings.PROVIDER_BACKEND,
        "redis_url": bool(container.settings.REDIS_URL),
    }
