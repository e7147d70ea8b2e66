"""Tests du résumé des charges utiles du fournisseur (fonction pure et totale)."""

import math

import pytest

from jyotish.domain.models import MAX_PATTERNS, UNKNOWN, PeriodChain
from jyotish.domain.summarizer import summarize
from tests.fakes import ALMANAC, CHART, PERIOD

EXPECTED_CHART_COUNT = 2
EXPECTED_PLANETS = 9


def test_full_snake_case_payloads():
    """Charges complètes en snake_case."""
    s = summarize(CHART, PERIOD, ALMANAC)
    assert s.ascendant.sign == "Capricorn"
    assert s.ascendant.degree == pytest.approx(12.5)
    assert s.moon_sign.nakshatra == "Magha"
    assert s.sun_sign.sign == "Sagittarius"
    assert s.current_period.vimshottari == "Venus"
    assert s.current_period.yogini_dasha == "Sankata"
    assert [p.name for p in s.key_patterns] == ["Gaja Kesari", "Budha Aditya"]
    assert len(s.charts) == EXPECTED_CHART_COUNT
    assert s.charts[0].planet_count == EXPECTED_PLANETS
    assert s.almanac.tithi == "Shukla Panchami"
    assert s.almanac.karana == "Bava"


def test_camel_case_payloads_inside_data_envelope():
    """Clés camelCase et enveloppe `data` acceptées."""
    chart = {
        "data": {
            "ascendant": {"signName": "Aries", "degree": "7.5", "nakshatraName": "Ashwini"},
            "moonSign": {"signName": "Taurus"},
            "sunSign": {"signName": "Gemini"},
            "charts": [{"chartType": "d10", "chartName": "Dasamsha", "positions": []}],
            "yogas": [{"yogaName": "Raj", "yogaType": "raja", "strength": 1}],
        }
    }
    period = {"data": {"currentPeriod": {"vimshottari": "Moon", "sookshmaDasha": "Rahu"}}}
    almanac = {"data": {"tithi": {"name": "Purnima"}}}
    s = summarize(chart, period, almanac)
    assert s.ascendant.sign == "Aries"
    assert s.ascendant.degree == pytest.approx(7.5)
    assert s.moon_sign.sign == "Taurus"
    assert s.sun_sign.sign == "Gemini"
    assert s.charts[0].type == "d10"
    assert s.key_patterns[0].type == "raja"
    assert s.current_period.sookshma_dasha == "Rahu"
    assert s.current_period.antardasha == UNKNOWN
    assert s.almanac.tithi == "Purnima"
    assert s.almanac.yoga == UNKNOWN


@pytest.mark.parametrize("garbage", [None, {}, [], "text", 42, {"data": None}])
def test_garbage_never_raises(garbage):
    """Entrées absentes ou mal typées: résumé complet rempli de sentinelles."""
    s = summarize(garbage, garbage, garbage)
    assert s.ascendant.sign == UNKNOWN
    assert s.ascendant.degree is None
    assert s.key_patterns == []
    assert s.charts == []
    assert s.current_period == PeriodChain()
    assert s.almanac.nakshatra == UNKNOWN


def test_wrong_nested_types_resolve_to_unknown():
    chart = {
        "ascendant": "Leo",
        "moon_sign": {"sign_name": ["Leo"], "degree": float("nan"), "nakshatra_name": None},
        "sun_sign": {"sign_name": "  ", "degree": True},
        "charts": ["d1", {"chart_type": None, "positions": "many"}],
        "yogas": "none",
    }
    period = {"current_period": ["Venus"]}
    almanac = {"panchang": {"tithi": "Panchami", "nakshatra": {"name": 5}}}
    s = summarize(chart, period, almanac)
    assert s.ascendant.sign == UNKNOWN
    assert s.moon_sign.sign == UNKNOWN
    assert s.moon_sign.degree is None
    assert s.sun_sign.sign == UNKNOWN
    assert s.sun_sign.degree is None
    assert len(s.charts) == 1
    assert s.charts[0].type == UNKNOWN
    assert s.charts[0].planet_count == 0
    assert s.key_patterns == []
    assert s.current_period.vimshottari == UNKNOWN
    assert s.almanac.tithi == UNKNOWN
    assert s.almanac.nakshatra == "5"


def test_patterns_keep_five_strongest_with_stable_ties():
    """Au plus 5 motifs, force décroissante, ordre d'origine conservé à égalité."""
    yogas = [
        {"yoga_name": "a", "strength": 0.2},
        {"yoga_name": "b", "strength": 0.9},
        {"yoga_name": "c", "strength": 0.5},
        {"yoga_name": "d", "strength": 0.9},
        {"yoga_name": "e", "strength": "bad"},
        {"yoga_name": "f", "strength": 0.5},
        {"yoga_name": "g", "strength": 0.7},
    ]
    s = summarize({"yogas": yogas}, {}, {})
    assert len(s.key_patterns) == MAX_PATTERNS
    assert [p.name for p in s.key_patterns] == ["b", "d", "g", "c", "f"]
    strengths = [p.strength for p in s.key_patterns]
    assert strengths == sorted(strengths, reverse=True)


def test_huge_degree_is_dropped_not_raised():
    s = summarize({"ascendant": {"degree": 10**400}}, {}, {})
    assert s.ascendant.degree is None or math.isfinite(s.ascendant.degree)


def test_summary_is_deterministic():
    assert summarize(CHART, PERIOD, ALMANAC) == summarize(CHART, PERIOD, ALMANAC)
