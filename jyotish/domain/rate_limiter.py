"""Espacement minimal entre appels consécutifs au fournisseur.

Le fournisseur impose une limite globale (et non par utilisateur): toutes les sessions du
processus partagent la même clé. L'instance est créée une fois par le conteneur puis injectée;
les horodatages du dernier appel par clé sont le seul état mutable partagé du pipeline.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable

PROVIDER_KEY = "provider"


class SpacingRateLimiter:
    """Garantit au moins `min_spacing_s` secondes entre deux `throttle(key)` successifs.

    Les appelants concurrents sur une même clé sont sérialisés par un verrou asyncio; aucune
    équité FIFO n'est promise, seulement l'espacement.
    """

    def __init__(
        self,
        min_spacing_s: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialise le limiteur.

        Args:
            min_spacing_s: espacement minimal entre deux appels d'une même clé.
            clock: horloge monotone (injectable pour les tests).
            sleep: fonction d'attente asynchrone (injectable pour les tests).
        """
        if min_spacing_s < 0:
            raise ValueError("min_spacing_s must be >= 0")
        self.min_spacing_s = float(min_spacing_s)
        self._clock = clock
        self._sleep = sleep
        self._last_call: dict[str, float] = {}
        self._locks: dict[str, asyncio.Lock] = {}

    def _lock_for(self, key: str) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = self._locks[key] = asyncio.Lock()
        return lock

    async def throttle(self, key: str = PROVIDER_KEY) -> float:
        """Attend que l'espacement soit respecté puis enregistre l'appel.

        Returns:
            float: durée d'attente effective en secondes (0.0 si aucune).
        """
        async with self._lock_for(key):
            waited = 0.0
            last = self._last_call.get(key)
            if last is not None:
                remaining = self.min_spacing_s - (self._clock() - last)
                if remaining > 0:
                    await self._sleep(remaining)
                    waited = remaining
            self._last_call[key] = self._clock()
            return waited

    def last_call(self, key: str = PROVIDER_KEY) -> float | None:
        """Horodatage (horloge du limiteur) du dernier appel pour `key`."""
        return self._last_call.get(key)

    def reset(self) -> None:
        """Oublie tous les horodatages (tests)."""
        self._last_call.clear()
