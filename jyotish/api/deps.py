"""Dépendances partagées pour les routes de l'API.

Le conteneur est construit une seule fois par `create_app` et stocké sur `app.state`; les routes
le reçoivent via `Depends(get_container)`, ce qui permet aux tests d'injecter le leur.
"""

from fastapi import Request

from jyotish.core.container import Container


def get_container(request: Request) -> Container:
    """Retourne le conteneur attaché à l'application."""
    return request.app.state.container
