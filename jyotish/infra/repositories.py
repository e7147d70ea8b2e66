"""
Repositories pour les sessions de calcul et le cache des lieux résolus.

Ce module fournit les versions en mémoire (dev/tests) du dépôt de sessions et du cache, ainsi que
le cache adossé à Redis. Le dépôt SQL vit dans `jyotish.infra.repo.session_repo`.
"""

import json
import re
import threading
import time
import uuid
from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import redis

from jyotish.domain.entities import (
    BirthDescriptor,
    ResolvedInstant,
    ResolvedLocation,
    Session,
    SessionStatus,
)
from jyotish.domain.errors import PersistenceError

# Champs modifiables via `update_session`
SESSION_FIELDS = frozenset(
    {"status", "location", "instant", "summary", "raw_payload", "failure_stage", "failure_cause"}
)


def check_patch(patch: dict[str, Any]) -> None:
    """Refuse les champs inconnus ou immuables (birth, id, created_at)."""
    unknown = set(patch) - SESSION_FIELDS
    if unknown:
        raise PersistenceError(f"unsupported session fields: {sorted(unknown)}")


class InMemorySessionRepo:
    """
    Dépôt de sessions en mémoire (utilisé pour dev/tests).

    Stocke les sessions dans un dict local, non persistant. Un verrou protège les écritures
    lorsque le dépôt est appelé depuis un thread de travail.
    """

    def __init__(self):
        """Initialise une base mémoire vide."""
        self._db: dict[str, Session] = {}
        self._lock = threading.Lock()

    def create_session(
        self,
        birth: BirthDescriptor,
        location: ResolvedLocation | None = None,
        instant: ResolvedInstant | None = None,
        status: SessionStatus = SessionStatus.CREATED,
    ) -> str:
        """Crée une session et renvoie son identifiant."""
        session = Session(
            id=str(uuid.uuid4()), birth=birth, location=location, instant=instant, status=status
        )
        with self._lock:
            self._db[session.id] = session
        return session.id

    def update_session(self, session_id: str, patch: dict[str, Any]) -> None:
        """Applique un patch partiel; lève `PersistenceError` si la session est absente."""
        check_patch(patch)
        with self._lock:
            current = self._db.get(session_id)
            if current is None:
                raise PersistenceError(f"session {session_id} not found", session_id=session_id)
            self._db[session_id] = current.model_copy(
                update={**patch, "updated_at": datetime.now(UTC)}
            )

    def get_session(self, session_id: str) -> Session | None:
        """Retourne une session par id, ou None si elle est absente."""
        return self._db.get(session_id)

    def ping(self) -> bool:
        """Toujours disponible."""
        return True


# --- Cache des lieux -----------------------------------------------------------------------

_WS = re.compile(r"\s+")


def normalize_location_key(place: str, provider: str) -> str:
    """Clé de cache: `geo:{provider}:{lieu en minuscules, espaces réduits}`."""
    return f"geo:{provider}:{_WS.sub(' ', place.strip().lower())}"


class InMemoryLocationCache:
    """Cache TTL en mémoire des lieux résolus."""

    def __init__(self, ttl_s: int = 86400, clock: Callable[[], float] = time.monotonic):
        """Initialise un cache vide avec une durée de vie par entrée."""
        self.ttl_s = ttl_s
        self._clock = clock
        self._data: dict[str, tuple[float, ResolvedLocation]] = {}

    def get(self, key: str) -> ResolvedLocation | None:
        """Renvoie l'entrée si elle n'a pas expiré."""
        item = self._data.get(key)
        if item is None:
            return None
        expires_at, location = item
        if self._clock() >= expires_at:
            self._data.pop(key, None)
            return None
        return location

    def set(self, key: str, location: ResolvedLocation) -> None:
        """Stocke un lieu résolu pour `ttl_s` secondes."""
        self._data[key] = (self._clock() + self.ttl_s, location)

    def invalidate(self, key: str) -> None:
        """Supprime une entrée (sans erreur si absente)."""
        self._data.pop(key, None)


class RedisLocationCache:
    """Cache des lieux adossé à Redis (JSON + `SETEX`)."""

    def __init__(self, url: str, ttl_s: int = 86400, client: Any | None = None):
        """Crée un client Redis à partir de l'URL fournie."""
        self.ttl_s = ttl_s
        self.client = client or redis.Redis.from_url(url, decode_responses=True)

    def get(self, key: str) -> ResolvedLocation | None:
        """Charge et désérialise le lieu, si présent."""
        raw = self.client.get(key)
        return ResolvedLocation.model_validate(json.loads(raw)) if raw else None

    def set(self, key: str, location: ResolvedLocation) -> None:
        """Sérialise en JSON avec expiration."""
        self.client.setex(key, self.ttl_s, location.model_dump_json())

    def invalidate(self, key: str) -> None:
        """Supprime la clé."""
        self.client.delete(key)
