"""
Projection des réponses brutes du fournisseur vers un `HoroscopeSummary` de forme fixe.

Fonction pure, déterministe et totale: quelle que soit la profondeur des champs manquants ou leur
type, `summarize` ne lève jamais et renvoie un résumé complet. Toutes les valeurs par défaut sont
résolues ici, une seule fois, plutôt que dispersées dans les appelants.

Les clés du fournisseur sont acceptées en snake_case comme en camelCase, et une enveloppe
`{"data": {...}}` est dépliée si présente.
"""

from __future__ import annotations

import math
from typing import Any

from jyotish.domain.models import (
    MAX_PATTERNS,
    UNKNOWN,
    Almanac,
    ChartInfo,
    HoroscopeSummary,
    Pattern,
    PeriodChain,
    Placement,
)


def _unwrap(payload: Any) -> dict[str, Any]:
    if not isinstance(payload, dict):
        return {}
    inner = payload.get("data")
    if isinstance(inner, dict):
        return inner
    return payload


def _get(obj: Any, *keys: str) -> Any:
    """Première valeur non nulle parmi `keys` dans `obj` (si `obj` est un dict)."""
    if not isinstance(obj, dict):
        return None
    for key in keys:
        value = obj.get(key)
        if value is not None:
            return value
    return None


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value.strip() or UNKNOWN
    if isinstance(value, int | float) and not isinstance(value, bool):
        return str(value)
    return UNKNOWN


def _number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, int | float | str):
        return None
    try:
        number = float(value)
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def _list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def _placement(node: Any) -> Placement:
    return Placement(
        sign=_text(_get(node, "sign_name", "signName", "sign")),
        degree=_number(_get(node, "degree")),
        nakshatra=_text(_get(node, "nakshatra_name", "nakshatraName", "nakshatra")),
    )


def _patterns(chart: dict[str, Any]) -> list[Pattern]:
    patterns = [
        Pattern(
            name=_text(_get(item, "yoga_name", "yogaName", "name")),
            type=_text(_get(item, "yoga_type", "yogaType", "type")),
            strength=_number(_get(item, "strength")) or 0.0,
        )
        for item in _list(_get(chart, "yogas", "patterns"))
        if isinstance(item, dict)
    ]
    # sorted() est stable: à force égale, l'ordre du fournisseur est conservé
    return sorted(patterns, key=lambda p: -p.strength)[:MAX_PATTERNS]


def _charts(chart: dict[str, Any]) -> list[ChartInfo]:
    return [
        ChartInfo(
            type=_text(_get(item, "chart_type", "chartType", "type")),
            name=_text(_get(item, "chart_name", "chartName", "name")),
            planet_count=len(_list(_get(item, "positions"))),
        )
        for item in _list(_get(chart, "charts"))
        if isinstance(item, dict)
    ]


def _period_chain(period: dict[str, Any]) -> PeriodChain:
    current = _get(period, "current_period", "currentPeriod")
    return PeriodChain(
        vimshottari=_text(_get(current, "vimshottari")),
        antardasha=_text(_get(current, "antardasha")),
        pratyantardasha=_text(_get(current, "pratyantardasha")),
        sookshma_dasha=_text(_get(current, "sookshma_dasha", "sookshmaDasha")),
        yogini_dasha=_text(_get(current, "yogini_dasha", "yoginiDasha")),
    )


def _almanac(almanac: dict[str, Any]) -> Almanac:
    # Les membres peuvent être imbriqués sous `panchang` ou à la racine
    root = _get(almanac, "panchang")
    if not isinstance(root, dict):
        root = almanac

    def member(name: str) -> str:
        return _text(_get(_get(root, name), "name"))

    return Almanac(
        tithi=member("tithi"),
        nakshatra=member("nakshatra"),
        yoga=member("yoga"),
        karana=member("karana"),
    )


def summarize(chart: Any, period: Any, almanac: Any) -> HoroscopeSummary:
    """Construit le résumé à partir des trois charges utiles brutes.

    Args:
        chart: réponse brute du calcul de carte natale.
        period: réponse brute du calcul des périodes.
        almanac: réponse brute de l'almanach du jour.

    Returns:
        HoroscopeSummary: résumé complet, les champs absents valant `"unknown"`.
    """
    chart_d = _unwrap(chart)
    period_d = _unwrap(period)
    almanac_d = _unwrap(almanac)
    return HoroscopeSummary(
        ascendant=_placement(_get(chart_d, "ascendant")),
        moon_sign=_placement(_get(chart_d, "moon_sign", "moonSign")),
        sun_sign=_placement(_get(chart_d, "sun_sign", "sunSign")),
        current_period=_period_chain(period_d),
        key_patterns=_patterns(chart_d),
        charts=_charts(chart_d),
        almanac=_almanac(almanac_d),
    )
