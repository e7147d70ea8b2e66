"""Lecture des sessions de calcul persistées (`GET /sessions/{session_id}`)."""

import asyncio

from fastapi import APIRouter, Depends

from jyotish.api.deps import get_container
from jyotish.api.schemas import SessionResponse
from jyotish.core.container import Container
from jyotish.domain.errors import SessionNotFound

router = APIRouter(prefix="/sessions", tags=["sessions"])
container_dep = Depends(get_container)


@router.get("/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, container: Container = container_dep):
    """
    Retourne une session (statut, lieu et instant résolus, résumé ou étape d'échec).

    Retour: `SessionResponse`; 404 si la session n'existe pas.
    """
    session = await asyncio.to_thread(container.session_repo.get_session, session_id)
    if session is None:
        raise SessionNotFound(f"session {session_id} not found")
    return SessionResponse.from_session(session)
