"""
Orchestrateur du pipeline de calcul.

Machine à états explicite:

    Created -> Geocoding -> TimeResolving -> PersistedPartial
            -> CallingChart -> CallingPeriod -> CallingAlmanac
            -> Summarizing -> PersistedFinal

ou `Failed` depuis n'importe quel état `Calling*`. Chaque transition est une méthode séparée qui
opère sur un `PipelineRun`; `run()` les enchaîne. Le géocodage et la résolution temporelle ne
sont pas limités en débit; les trois appels au fournisseur sont séquentiels, chacun précédé de
`throttle("provider")` et borné par son propre délai. Le premier échec interrompt le calcul et
les charges utiles partielles sont abandonnées.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

import structlog

from jyotish.app.metrics import (
    COMPUTE_OUTCOMES,
    GEOCODE_CACHE,
    PROVIDER_CALLS,
    PROVIDER_LATENCY,
    RATE_LIMIT_WAIT,
)
from jyotish.core.http_constants import DEFAULT_PROVIDER_TIMEOUT
from jyotish.domain.entities import (
    BirthDescriptor,
    ComputationRequest,
    GeocodeProvider,
    PipelineStage,
    ResolvedInstant,
    ResolvedLocation,
    SessionStatus,
)
from jyotish.domain.errors import (
    ComputeError,
    InternalError,
    PersistenceError,
    ProviderError,
    ProviderTimeout,
)
from jyotish.domain.models import HoroscopeSummary
from jyotish.domain.rate_limiter import PROVIDER_KEY, SpacingRateLimiter
from jyotish.domain.summarizer import summarize
from jyotish.infra.astro.base import ProviderClient
from jyotish.infra.repositories import normalize_location_key

log = structlog.get_logger(__name__)

S = PipelineStage

# Transitions autorisées (état courant -> états suivants)
TRANSITIONS: dict[PipelineStage, frozenset[PipelineStage]] = {
    S.CREATED: frozenset({S.GEOCODING}),
    S.GEOCODING: frozenset({S.TIME_RESOLVING}),
    S.TIME_RESOLVING: frozenset({S.PERSISTED_PARTIAL}),
    S.PERSISTED_PARTIAL: frozenset({S.CALLING_CHART}),
    S.CALLING_CHART: frozenset({S.CALLING_PERIOD, S.FAILED}),
    S.CALLING_PERIOD: frozenset({S.CALLING_ALMANAC, S.FAILED}),
    S.CALLING_ALMANAC: frozenset({S.SUMMARIZING, S.FAILED}),
    S.SUMMARIZING: frozenset({S.PERSISTED_FINAL}),
    S.PERSISTED_FINAL: frozenset(),
    S.FAILED: frozenset(),
}

_PROVIDER_STAGES = (S.CALLING_CHART, S.CALLING_PERIOD, S.CALLING_ALMANAC)


class Geocoder(Protocol):
    async def resolve(
        self, place: str, provider: GeocodeProvider | None = None
    ) -> ResolvedLocation: ...


class InstantResolver(Protocol):
    def resolve_instant(
        self, raw_date: str, raw_time: str, iana_timezone: str
    ) -> ResolvedInstant: ...


class SessionRepository(Protocol):
    def create_session(
        self,
        birth: BirthDescriptor,
        location: ResolvedLocation | None = None,
        instant: ResolvedInstant | None = None,
        status: SessionStatus = SessionStatus.CREATED,
    ) -> str: ...

    def update_session(self, session_id: str, patch: dict[str, Any]) -> None: ...


class LocationCache(Protocol):
    def get(self, key: str) -> ResolvedLocation | None: ...

    def set(self, key: str, location: ResolvedLocation) -> None: ...


@dataclass
class PipelineRun:
    """État d'une exécution du pipeline (une requête de calcul)."""

    birth: BirthDescriptor
    geocode_provider: GeocodeProvider = GeocodeProvider.OSM
    stage: PipelineStage = S.CREATED
    location: ResolvedLocation | None = None
    instant: ResolvedInstant | None = None
    session_id: str | None = None
    payloads: dict[str, dict[str, Any]] = field(default_factory=dict)
    summary: HoroscopeSummary | None = None
    computed_at: datetime | None = None
    failure_stage: PipelineStage | None = None
    failure_cause: str | None = None

    def advance(self, target: PipelineStage) -> None:
        """Passe à `target` si la transition est autorisée."""
        if target not in TRANSITIONS[self.stage]:
            raise InternalError(
                f"illegal transition {self.stage.value} -> {target.value}",
                session_id=self.session_id,
            )
        self.stage = target

    def request(self) -> ComputationRequest:
        """Construit la requête fournisseur (jamais le texte libre du lieu)."""
        if self.location is None or self.instant is None:
            raise InternalError("request built before resolution", session_id=self.session_id)
        return ComputationRequest(
            name=self.birth.name,
            location=self.location,
            instant=self.instant,
            ayanamsa_variant=self.birth.ayanamsa_variant,
        )


@dataclass(frozen=True)
class ComputeOutcome:
    """Résultat d'un calcul réussi."""

    session_id: str
    summary: HoroscopeSummary
    location: ResolvedLocation
    instant: ResolvedInstant
    computed_at: datetime


class ComputationOrchestrator:
    """Seul appelant des composants internes (géocodage, temps, fournisseur, persistance)."""

    def __init__(
        self,
        geocoder: Geocoder,
        time_resolver: InstantResolver,
        provider: ProviderClient,
        rate_limiter: SpacingRateLimiter,
        repository: SessionRepository,
        cache: LocationCache | None = None,
        *,
        geocode_provider: GeocodeProvider = GeocodeProvider.OSM,
        call_timeout_s: float = DEFAULT_PROVIDER_TIMEOUT,
    ) -> None:
        """Injecte les collaborateurs (construits une seule fois par le conteneur)."""
        self.geocoder = geocoder
        self.time_resolver = time_resolver
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.repository = repository
        self.cache = cache
        self.geocode_provider = geocode_provider
        self.call_timeout_s = call_timeout_s

    # --- Points d'entrée ---------------------------------------------------------------------

    def start(
        self, birth: BirthDescriptor, geocode_provider: GeocodeProvider | None = None
    ) -> PipelineRun:
        """Crée une exécution dans l'état `Created`."""
        return PipelineRun(birth=birth, geocode_provider=geocode_provider or self.geocode_provider)

    async def run(
        self, birth: BirthDescriptor, geocode_provider: GeocodeProvider | None = None
    ) -> ComputeOutcome:
        """Exécute le pipeline complet.

        Raises:
            ComputeError: erreur classée; `session_id` est renseigné si la session existe.
        """
        ctx = self.start(birth, geocode_provider)
        try:
            await self.geocode(ctx)
            self.resolve_time(ctx)
            await self.persist_partial(ctx)
            for stage in _PROVIDER_STAGES:
                await self.call_provider(ctx, stage)
            self.summarize(ctx)
            await self.persist_final(ctx)
        except ProviderError as err:
            await self.fail(ctx, err)
            COMPUTE_OUTCOMES.labels("failed").inc()
            raise
        except ComputeError as err:
            err.session_id = err.session_id or ctx.session_id
            COMPUTE_OUTCOMES.labels("rejected" if ctx.session_id is None else "error").inc()
            raise
        except Exception as err:
            log.exception("compute_unexpected_error", stage=ctx.stage.value)
            internal = InternalError(
                f"unexpected error at {ctx.stage.value}: {err.__class__.__name__}",
                session_id=ctx.session_id,
            )
            if ctx.stage in _PROVIDER_STAGES:
                await self.fail(ctx, internal)
                COMPUTE_OUTCOMES.labels("failed").inc()
            else:
                COMPUTE_OUTCOMES.labels("error").inc()
            raise internal from err
        COMPUTE_OUTCOMES.labels("succeeded").inc()
        return ComputeOutcome(
            session_id=ctx.session_id,
            summary=ctx.summary,
            location=ctx.location,
            instant=ctx.instant,
            computed_at=ctx.computed_at,
        )

    # --- Transitions -------------------------------------------------------------------------

    async def geocode(self, ctx: PipelineRun) -> ResolvedLocation:
        """Created -> Geocoding: cache puis fournisseur de géocodage."""
        ctx.advance(S.GEOCODING)
        place = ctx.birth.free_text_location
        provider = ctx.geocode_provider
        key = normalize_location_key(place, provider.value)
        location = await self._cache_get(key)
        if location is None:
            location = await self.geocoder.resolve(place, provider)
            await self._cache_set(key, location)
        ctx.location = location
        return location

    def resolve_time(self, ctx: PipelineRun) -> ResolvedInstant:
        """Geocoding -> TimeResolving: instant UTC selon les règles historiques du fuseau."""
        ctx.advance(S.TIME_RESOLVING)
        ctx.instant = self.time_resolver.resolve_instant(
            ctx.birth.raw_date, ctx.birth.raw_time, ctx.location.iana_timezone
        )
        return ctx.instant

    async def persist_partial(self, ctx: PipelineRun) -> str:
        """TimeResolving -> PersistedPartial: session créée (`resolving`) puis `computing`."""
        ctx.advance(S.PERSISTED_PARTIAL)
        ctx.session_id = await self._persist(
            self.repository.create_session,
            ctx.birth,
            ctx.location,
            ctx.instant,
            SessionStatus.RESOLVING,
        )
        structlog.contextvars.bind_contextvars(session_id=ctx.session_id)
        await self._persist(
            self.repository.update_session,
            ctx.session_id,
            {"status": SessionStatus.COMPUTING},
            session_id=ctx.session_id,
        )
        log.info(
            "session_created",
            session_id=ctx.session_id,
            tz=ctx.location.iana_timezone,
            utc=ctx.instant.utc_iso,
        )
        return ctx.session_id

    async def call_provider(self, ctx: PipelineRun, stage: PipelineStage) -> dict[str, Any]:
        """PersistedPartial/Calling* -> `stage`: appel espacé et borné au fournisseur."""
        ctx.advance(stage)
        fn, name = self._stage_call(stage)
        request = ctx.request()
        waited = await self.rate_limiter.throttle(PROVIDER_KEY)
        RATE_LIMIT_WAIT.observe(waited)
        start = time.perf_counter()
        try:
            payload = await asyncio.wait_for(fn(request), timeout=self.call_timeout_s)
        except TimeoutError as err:
            PROVIDER_CALLS.labels(stage.value, "timeout").inc()
            raise ProviderTimeout(f"{name}: exceeded {self.call_timeout_s}s") from err
        except ProviderError as err:
            PROVIDER_CALLS.labels(stage.value, err.code.lower()).inc()
            raise
        except Exception:
            PROVIDER_CALLS.labels(stage.value, "error").inc()
            raise
        finally:
            PROVIDER_LATENCY.labels(stage.value).observe(time.perf_counter() - start)
        PROVIDER_CALLS.labels(stage.value, "ok").inc()
        ctx.payloads[name] = payload
        return payload

    def summarize(self, ctx: PipelineRun) -> HoroscopeSummary:
        """CallingAlmanac -> Summarizing: résumé pur et total des trois charges utiles."""
        ctx.advance(S.SUMMARIZING)
        ctx.summary = summarize(
            ctx.payloads.get("chart"), ctx.payloads.get("period"), ctx.payloads.get("almanac")
        )
        ctx.computed_at = datetime.now(UTC)
        return ctx.summary

    async def persist_final(self, ctx: PipelineRun) -> None:
        """Summarizing -> PersistedFinal: session `succeeded` avec résumé et charge brute."""
        ctx.advance(S.PERSISTED_FINAL)
        raw_payload = {
            "chart": ctx.payloads.get("chart"),
            "period": ctx.payloads.get("period"),
            "almanac": ctx.payloads.get("almanac"),
            "computedAt": ctx.computed_at.isoformat(),
        }
        await self._persist(
            self.repository.update_session,
            ctx.session_id,
            {
                "status": SessionStatus.SUCCEEDED,
                "summary": ctx.summary,
                "raw_payload": raw_payload,
            },
            session_id=ctx.session_id,
        )
        log.info("compute_succeeded", session_id=ctx.session_id)

    async def fail(self, ctx: PipelineRun, err: ComputeError) -> None:
        """Calling* -> Failed: session `failed`, charges partielles abandonnées.

        `err` est l'erreur du fournisseur, ou une `InternalError` pour toute exception non classée
        levée pendant un appel.
        """
        failed_at = ctx.stage
        ctx.advance(S.FAILED)
        ctx.failure_stage = failed_at
        ctx.failure_cause = err.code
        ctx.payloads.clear()
        err.session_id = ctx.session_id
        log.warning(
            "compute_failed",
            session_id=ctx.session_id,
            stage=failed_at.value,
            cause=err.code,
            detail=err.detail,
        )
        await self._persist(
            self.repository.update_session,
            ctx.session_id,
            {
                "status": SessionStatus.FAILED,
                "failure_stage": failed_at.value,
                "failure_cause": err.code,
            },
            session_id=ctx.session_id,
        )

    # --- Utilitaires -------------------------------------------------------------------------

    def _stage_call(
        self, stage: PipelineStage
    ) -> tuple[Callable[[ComputationRequest], Awaitable[dict[str, Any]]], str]:
        if stage is S.CALLING_CHART:
            return self.provider.get_chart, "chart"
        if stage is S.CALLING_PERIOD:
            return self.provider.get_period, "period"
        if stage is S.CALLING_ALMANAC:
            return self.provider.get_almanac, "almanac"
        raise InternalError(f"not a provider stage: {stage.value}")

    async def _persist(self, fn: Callable[..., Any], *args: Any, session_id: str | None = None):
        """Appelle le dépôt (synchrone) hors de la boucle; erreurs -> `PersistenceError`."""
        try:
            return await asyncio.to_thread(fn, *args)
        except PersistenceError as err:
            err.session_id = err.session_id or session_id
            raise
        except Exception as err:
            raise PersistenceError(
                f"{getattr(fn, '__name__', 'repository')}: {err.__class__.__name__}",
                session_id=session_id,
            ) from err

    async def _cache_get(self, key: str) -> ResolvedLocation | None:
        if self.cache is None:
            return None
        try:
            location = await asyncio.to_thread(self.cache.get, key)
        except Exception as err:
            log.warning("location_cache_get_failed", error=err.__class__.__name__)
            GEOCODE_CACHE.labels("error").inc()
            return None
        GEOCODE_CACHE.labels("hit" if location is not None else "miss").inc()
        return location

    async def _cache_set(self, key: str, location: ResolvedLocation) -> None:
        if self.cache is None:
            return
        try:
            await asyncio.to_thread(self.cache.set, key, location)
        except Exception as err:
            log.warning("location_cache_set_failed", error=err.__class__.__name__)
