"""Conversion d'une date/heure locale en instant UTC selon les règles historiques du fuseau.

Le décalage retenu est celui que la base IANA attribue au fuseau *à la date de naissance*
(et non le décalage courant). Les heures ambiguës (retour à l'heure d'hiver) prennent la première
occurrence; les heures inexistantes (passage à l'heure d'été) sont interprétées avec le décalage
d'avant la transition (`fold=0`, PEP 495).
"""

from __future__ import annotations

import re
from datetime import UTC, datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import structlog

from jyotish.domain.entities import ResolvedInstant
from jyotish.domain.errors import InvalidCalendarValue

log = structlog.get_logger(__name__)

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_TIME_RE = re.compile(r"^\d{2}:\d{2}$")


def _zone(iana_timezone: str) -> ZoneInfo:
    try:
        return ZoneInfo(iana_timezone)
    except (ZoneInfoNotFoundError, ValueError) as err:
        raise InvalidCalendarValue(f"unknown timezone: {iana_timezone!r}") from err


def parse_local(raw_date: str, raw_time: str) -> datetime:
    """Analyse `YYYY-MM-DD` + `HH:MM` en datetime naïf (heure murale locale).

    Raises:
        InvalidCalendarValue: format invalide ou valeur calendaire impossible (ex: 30 février).
    """
    if not isinstance(raw_date, str) or not _DATE_RE.match(raw_date):
        raise InvalidCalendarValue(f"invalid date: {raw_date!r}")
    if not isinstance(raw_time, str) or not _TIME_RE.match(raw_time):
        raise InvalidCalendarValue(f"invalid time: {raw_time!r}")
    try:
        return datetime.strptime(f"{raw_date} {raw_time}", "%Y-%m-%d %H:%M")
    except ValueError as err:
        raise InvalidCalendarValue(f"invalid calendar value: {raw_date} {raw_time}") from err


def resolve_instant(raw_date: str, raw_time: str, iana_timezone: str) -> ResolvedInstant:
    """Résout l'instant UTC d'une heure murale locale dans `iana_timezone`.

    Args:
        raw_date: date locale `YYYY-MM-DD`.
        raw_time: heure locale `HH:MM`.
        iana_timezone: identifiant IANA (ex: `Asia/Kathmandu`).

    Returns:
        ResolvedInstant: instant UTC et décalage (minutes) valable à cet instant.

    Raises:
        InvalidCalendarValue: date/heure illisible ou fuseau inconnu.
    """
    naive = parse_local(raw_date, raw_time)
    tz = _zone(iana_timezone)
    local = naive.replace(tzinfo=tz, fold=0)
    offset = local.utcoffset()
    if offset is None:
        raise InvalidCalendarValue(f"no offset for {iana_timezone!r} at {naive.isoformat()}")
    utc = local.astimezone(UTC)
    # Décalages historiques à la seconde près (LMT): arrondi à la minute la plus proche
    offset_minutes = round(offset.total_seconds() / 60)
    log.debug(
        "instant_resolved",
        local=naive.isoformat(),
        tz=iana_timezone,
        utc=utc.isoformat(),
        offset_minutes=offset_minutes,
    )
    return ResolvedInstant(utc=utc, offset_minutes_at_instant=offset_minutes)


class TimeResolver:
    """Adaptateur objet de `resolve_instant` pour l'injection dans l'orchestrateur."""

    def resolve_instant(
        self, raw_date: str, raw_time: str, iana_timezone: str
    ) -> ResolvedInstant:
        """Voir `resolve_instant`."""
        return resolve_instant(raw_date, raw_time, iana_timezone)
