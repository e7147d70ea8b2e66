"""
Conteneur d'injection de dépendances.

Instancie une seule fois les composants du pipeline (limiteur de débit, cache, géocodeur,
fournisseur, dépôt de sessions, orchestrateur) à partir des `Settings`. `create_app` stocke
l'instance sur `app.state`; les routes la récupèrent via `jyotish.api.deps.get_container`.
"""

from __future__ import annotations

import structlog

from jyotish.core.settings import Settings, get_settings
from jyotish.domain.entities import GeocodeProvider
from jyotish.domain.orchestrator import ComputationOrchestrator
from jyotish.domain.rate_limiter import SpacingRateLimiter
from jyotish.domain.time_resolver import TimeResolver
from jyotish.infra.astro.base import ProviderClient
from jyotish.infra.astro.fake_deterministic import FakeDeterministicProvider
from jyotish.infra.astro.provider_client import HttpProviderClient
from jyotish.infra.geocoding import GeocodingResolver
from jyotish.infra.repo.db import get_engine
from jyotish.infra.repo.session_repo import SqlSessionRepo
from jyotish.infra.repositories import (
    InMemoryLocationCache,
    InMemorySessionRepo,
    RedisLocationCache,
)

log = structlog.get_logger(__name__)


class Container:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        s = self.settings
        self.geocode_provider = GeocodeProvider(s.GEOCODE_PROVIDER)
        self.rate_limiter = SpacingRateLimiter(min_spacing_s=s.PROVIDER_MIN_SPACING_MS / 1000)
        self.time_resolver = TimeResolver()
        self.geocoder = GeocodingResolver(
            default_provider=self.geocode_provider,
            user_agent=s.GEOCODE_USER_AGENT,
            timeout_s=s.GEOCODE_TIMEOUT_S,
            nominatim_url=s.NOMINATIM_URL,
            google_url=s.GOOGLE_MAPS_URL,
            google_api_key=s.GOOGLE_MAPS_API_KEY,
        )
        self.provider = self._build_provider(s)

        # sessions
        if s.DATABASE_URL:
            engine = get_engine(s.DATABASE_URL)
            # SQLite (dev): schéma créé à la volée; ailleurs via Alembic
            self.session_repo = SqlSessionRepo(
                engine, create_schema=s.DATABASE_URL.startswith("sqlite")
            )
            self.storage_backend = "sql"
        else:
            self.session_repo = InMemorySessionRepo()
            self.storage_backend = "memory"

        # cache des lieux
        if s.REDIS_URL:
            try:
                self.location_cache = RedisLocationCache(s.REDIS_URL, ttl_s=s.GEOCODE_CACHE_TTL_S)
                self.cache_backend = "redis"
            except ValueError as err:
                log.warning("redis_url_invalid", error=str(err))
                self.location_cache = InMemoryLocationCache(ttl_s=s.GEOCODE_CACHE_TTL_S)
                self.cache_backend = "memory-fallback"
        else:
            self.location_cache = InMemoryLocationCache(ttl_s=s.GEOCODE_CACHE_TTL_S)
            self.cache_backend = "memory"

        self.orchestrator = ComputationOrchestrator(
            geocoder=self.geocoder,
            time_resolver=self.time_resolver,
            provider=self.provider,
            rate_limiter=self.rate_limiter,
            repository=self.session_repo,
            cache=self.location_cache,
            geocode_provider=self.geocode_provider,
            call_timeout_s=s.PROVIDER_TIMEOUT_S,
        )
        log.info(
            "container_ready",
            provider_backend=s.PROVIDER_BACKEND,
            storage=self.storage_backend,
            cache=self.cache_backend,
            geocode_provider=self.geocode_provider.value,
        )

    @staticmethod
    def _build_provider(s: Settings) -> ProviderClient:
        if s.PROVIDER_BACKEND == "fake":
            return FakeDeterministicProvider()
        return HttpProviderClient(
            s.PROVIDER_BASE_URL, s.PROVIDER_API_KEY, timeout_s=s.PROVIDER_TIMEOUT_S
        )

    async def aclose(self) -> None:
        """Ferme les clients HTTP sortants."""
        await self.geocoder.aclose()
        await self.provider.aclose()
