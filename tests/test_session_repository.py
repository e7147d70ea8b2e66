"""Tests des dépôts de sessions (mémoire et SQLAlchemy sur SQLite en mémoire) et du cache."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import Mock

import pytest

from jyotish.domain.entities import ResolvedInstant, SessionStatus
from jyotish.domain.errors import PersistenceError
from jyotish.domain.summarizer import summarize
from jyotish.infra.repo.db import get_engine
from jyotish.infra.repo.session_repo import SqlSessionRepo
from jyotish.infra.repositories import (
    InMemoryLocationCache,
    InMemorySessionRepo,
    RedisLocationCache,
    normalize_location_key,
)
from tests.fakes import ALMANAC, CHART, KATHMANDU, PERIOD

INSTANT = ResolvedInstant(
    utc=datetime(1990, 1, 1, 4, 45, tzinfo=UTC), offset_minutes_at_instant=345
)
TTL = 60


@pytest.fixture(params=["memory", "sql"])
def repo(request):
    if request.param == "memory":
        return InMemorySessionRepo()
    return SqlSessionRepo(get_engine("sqlite+pysqlite:///:memory:"), create_schema=True)


def test_create_then_read(repo, birth):
    sid = repo.create_session(birth, KATHMANDU, INSTANT, SessionStatus.RESOLVING)
    session = repo.get_session(sid)
    assert session.id == sid
    assert session.status is SessionStatus.RESOLVING
    assert session.birth == birth
    assert session.location == KATHMANDU
    assert session.instant.utc == INSTANT.utc
    assert session.instant.offset_minutes_at_instant == INSTANT.offset_minutes_at_instant


def test_update_success_round_trip(repo, birth):
    sid = repo.create_session(birth, KATHMANDU, INSTANT, SessionStatus.COMPUTING)
    summary = summarize(CHART, PERIOD, ALMANAC)
    repo.update_session(
        sid,
        {
            "status": SessionStatus.SUCCEEDED,
            "summary": summary,
            "raw_payload": {"chart": CHART, "period": PERIOD, "almanac": ALMANAC},
        },
    )
    session = repo.get_session(sid)
    assert session.status is SessionStatus.SUCCEEDED
    assert session.summary == summary
    assert session.raw_payload["period"] == PERIOD


def test_update_failure_keeps_resolution(repo, birth):
    sid = repo.create_session(birth, KATHMANDU, INSTANT, SessionStatus.COMPUTING)
    repo.update_session(
        sid,
        {"status": SessionStatus.FAILED, "failure_stage": "CallingPeriod", "failure_cause": "X"},
    )
    session = repo.get_session(sid)
    assert session.failure_stage == "CallingPeriod"
    assert session.location == KATHMANDU
    assert session.summary is None


def test_missing_session(repo):
    assert repo.get_session("nope") is None
    with pytest.raises(PersistenceError):
        repo.update_session("nope", {"status": SessionStatus.FAILED})


def test_immutable_fields_are_rejected(repo, birth):
    sid = repo.create_session(birth, KATHMANDU, INSTANT)
    with pytest.raises(PersistenceError):
        repo.update_session(sid, {"birth": birth})


def test_ping(repo):
    assert repo.ping() is True


def test_normalized_cache_key():
    assert normalize_location_key("  Kathmandu,\tNEPAL ", "osm") == "geo:osm:kathmandu, nepal"
    assert normalize_location_key("Kathmandu", "osm") != normalize_location_key(
        "Kathmandu", "commercial"
    )


def test_memory_cache_expires():
    now = [0.0]
    cache = InMemoryLocationCache(ttl_s=TTL, clock=lambda: now[0])
    cache.set("k", KATHMANDU)
    assert cache.get("k") == KATHMANDU
    now[0] = TTL + 1
    assert cache.get("k") is None


def test_memory_cache_invalidate():
    cache = InMemoryLocationCache(ttl_s=TTL)
    cache.set("k", KATHMANDU)
    cache.invalidate("k")
    assert cache.get("k") is None


def test_redis_cache_uses_setex_and_json():
    client = Mock()
    cache = RedisLocationCache("redis://unused", ttl_s=TTL, client=client)
    cache.set("k", KATHMANDU)
    key, ttl, raw = client.setex.call_args.args
    assert (key, ttl) == ("k", TTL)
    client.get.return_value = raw
    assert cache.get("k") == KATHMANDU
    client.get.return_value = None
    assert cache.get("missing") is None
    cache.invalidate("k")
    client.delete.assert_called_once_with("k")
