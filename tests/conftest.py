"""Configuration de test pour pytest avec gestion des chemins.

Ce module ajoute la racine du projet au sys.path, isole les tests des services externes
(DATABASE_URL/REDIS_URL ignorés, fournisseur factice) et fournit les fixtures communes.
"""

import os
import sys

import pytest

# Ensure project root is on sys.path so that
# imports like `from jyotish...` resolve.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from jyotish.domain.entities import BirthDescriptor  # noqa: E402
from jyotish.domain.orchestrator import ComputationOrchestrator  # noqa: E402
from jyotish.domain.rate_limiter import SpacingRateLimiter  # noqa: E402
from jyotish.domain.time_resolver import TimeResolver  # noqa: E402
from jyotish.infra.repositories import InMemoryLocationCache, InMemorySessionRepo  # noqa: E402
from tests.fakes import KATHMANDU, FakeClock, FakeGeocoder, ScriptedProvider  # noqa: E402


@pytest.fixture(autouse=True)
def isolate_environment(monkeypatch):
    """Pas de base ni de Redis réels; fournisseur factice par défaut."""
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("REDIS_URL", raising=False)
    monkeypatch.setenv("PROVIDER_BACKEND", "fake")


@pytest.fixture
def birth() -> BirthDescriptor:
    return BirthDescriptor(
        name="Test",
        raw_date="1990-01-01",
        raw_time="10:30",
        free_text_location="Kathmandu, Nepal",
    )


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder({"kathmandu, nepal": KATHMANDU})


@pytest.fixture
def provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def repository() -> InMemorySessionRepo:
    return InMemorySessionRepo()


@pytest.fixture
def cache() -> InMemoryLocationCache:
    return InMemoryLocationCache(ttl_s=60)


@pytest.fixture
def orchestrator(geocoder, provider, clock, repository, cache) -> ComputationOrchestrator:
    """Orchestrateur câblé sur des faux (horloge simulée, aucune attente réelle)."""
    return ComputationOrchestrator(
        geocoder=geocoder,
        time_resolver=TimeResolver(),
        provider=provider,
        rate_limiter=SpacingRateLimiter(min_spacing_s=1.0, clock=clock, sleep=clock.sleep),
        repository=repository,
        cache=cache,
    )
