"""Tests du client HTTP du fournisseur (forme des requêtes et classement des échecs)."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import httpx
import pytest

from jyotish.domain.entities import (
    AyanamsaVariant,
    ComputationRequest,
    ResolvedInstant,
    ResolvedLocation,
)
from jyotish.domain.errors import ProviderTimeout, ProviderUnavailable
from jyotish.domain.summarizer import summarize
from jyotish.infra.astro.fake_deterministic import FakeDeterministicProvider
from jyotish.infra.astro.provider_client import CHART_TYPES, HttpProviderClient

BASE = "https://provider.test/v2/astrology"

REQUEST = ComputationRequest(
    name="Test",
    location=ResolvedLocation(lat=27.7172, lon=85.324, iana_timezone="Asia/Kathmandu"),
    instant=ResolvedInstant(
        utc=datetime(1990, 1, 1, 4, 45, tzinfo=UTC), offset_minutes_at_instant=345
    ),
    ayanamsa_variant=AyanamsaVariant.RAMAN,
)


def _client(handler) -> HttpProviderClient:
    http = httpx.AsyncClient(base_url=BASE, transport=httpx.MockTransport(handler))
    return HttpProviderClient(BASE, "secret", timeout_s=5, client=http)


@pytest.mark.asyncio
async def test_chart_request_uses_utc_instant_and_coordinates_only():
    """Le fournisseur reçoit l'instant UTC et les coordonnées, jamais le lieu libre."""
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ascendant": {"sign_name": "Leo"}})

    data = await _client(handler).get_chart(REQUEST)
    assert data["ascendant"]["sign_name"] == "Leo"
    req = seen[0]
    assert req.method == "POST"
    assert req.url.path.endswith("/kundli")
    body = json.loads(req.content)
    assert body["datetime"] == "1990-01-01T04:45:00"
    assert body["timezone"] == "UTC"
    assert body["latitude"] == pytest.approx(27.7172)
    assert body["ayanamsa"] == int(AyanamsaVariant.RAMAN)
    assert body["chart_type"] == CHART_TYPES


@pytest.mark.asyncio
async def test_period_and_almanac_endpoints():
    seen: list[httpx.Request] = []

    def handler(request):
        seen.append(request)
        return httpx.Response(200, json={"ok": True})

    client = _client(handler)
    await client.get_period(REQUEST)
    await client.get_almanac(REQUEST)
    assert seen[0].url.path.endswith("/dasha")
    assert json.loads(seen[0].content)["include_current_period"] is True
    assert seen[1].method == "GET"
    assert seen[1].url.path.endswith("/panchang")
    assert seen[1].url.params["date"] == "1990-01-01"
    assert seen[1].url.params["timezone"] == "Asia/Kathmandu"


@pytest.mark.asyncio
async def test_timeout_is_classified():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(ProviderTimeout):
        await _client(handler).get_period(REQUEST)


@pytest.mark.asyncio
@pytest.mark.parametrize("status", [401, 429, 500, 503])
async def test_http_errors_are_unavailable(status):
    with pytest.raises(ProviderUnavailable):
        await _client(lambda r: httpx.Response(status, json={})).get_chart(REQUEST)


@pytest.mark.asyncio
async def test_non_object_body_is_unavailable():
    with pytest.raises(ProviderUnavailable):
        await _client(lambda r: httpx.Response(200, json=[1, 2])).get_almanac(REQUEST)


@pytest.mark.asyncio
async def test_unreadable_body_is_unavailable():
    with pytest.raises(ProviderUnavailable):
        await _client(lambda r: httpx.Response(200, text="<html>")).get_almanac(REQUEST)


@pytest.mark.asyncio
async def test_ping_reports_health():
    assert await _client(lambda r: httpx.Response(200, json={})).ping() is True
    assert await _client(lambda r: httpx.Response(503, json={})).ping() is False


@pytest.mark.asyncio
async def test_fake_provider_is_deterministic_and_summarizable():
    """Le fournisseur factice produit des charges stables, résumables sans sentinelle."""
    fake = FakeDeterministicProvider()
    calls = (fake.get_chart, fake.get_period, fake.get_almanac)
    first = [await call(REQUEST) for call in calls]
    second = [await call(REQUEST) for call in calls]
    assert first == second
    summary = summarize(*first)
    assert summary.ascendant.sign != "unknown"
    assert summary.current_period.yogini_dasha != "unknown"
    assert summary.almanac.karana != "unknown"
