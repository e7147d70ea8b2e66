"""Tests de la résolution date/heure locale -> instant UTC (règles historiques des fuseaux)."""

from datetime import UTC, datetime

import pytest

from jyotish.domain.errors import InvalidCalendarValue
from jyotish.domain.time_resolver import TimeResolver, parse_local, resolve_instant

NEPAL_OFFSET = 345  # +05:45
NEPAL_OFFSET_BEFORE_1986 = 330  # +05:30
INDIA_OFFSET = 330
NEW_YORK_WINTER = -300
NEW_YORK_SUMMER = -240


def test_kathmandu_1990_resolves_to_quarter_hour_offset():
    """Katmandou 1990-01-01 10:30 -> 04:45Z avec un décalage de +345 minutes."""
    inst = resolve_instant("1990-01-01", "10:30", "Asia/Kathmandu")
    assert inst.utc == datetime(1990, 1, 1, 4, 45, tzinfo=UTC)
    assert inst.utc_iso == "1990-01-01T04:45:00Z"
    assert inst.offset_minutes_at_instant == NEPAL_OFFSET


def test_offset_follows_rules_in_force_at_birth_date():
    """Le Népal était à +05:30 avant 1986: le décalage courant n'est pas appliqué."""
    inst = resolve_instant("1980-01-01", "10:30", "Asia/Kathmandu")
    assert inst.offset_minutes_at_instant == NEPAL_OFFSET_BEFORE_1986
    assert inst.utc_iso == "1980-01-01T05:00:00Z"


def test_fixed_zone_same_offset_a_decade_apart():
    """Un fuseau sans heure d'été garde le même décalage à dix ans d'écart."""
    a = resolve_instant("2000-06-15", "12:00", "Asia/Kolkata")
    b = resolve_instant("2010-06-15", "12:00", "Asia/Kolkata")
    assert a.offset_minutes_at_instant == b.offset_minutes_at_instant == INDIA_OFFSET


def test_dst_zone_winter_and_summer_offsets_differ():
    """New York: -5h en hiver, -4h en été."""
    winter = resolve_instant("2021-01-15", "12:00", "America/New_York")
    summer = resolve_instant("2021-07-15", "12:00", "America/New_York")
    assert winter.offset_minutes_at_instant == NEW_YORK_WINTER
    assert summer.offset_minutes_at_instant == NEW_YORK_SUMMER
    assert winter.utc_iso == "2021-01-15T17:00:00Z"
    assert summer.utc_iso == "2021-07-15T16:00:00Z"


def test_ambiguous_time_takes_first_occurrence():
    """01:30 le jour du retour à l'heure d'hiver: première occurrence (heure d'été)."""
    inst = resolve_instant("2021-11-07", "01:30", "America/New_York")
    assert inst.offset_minutes_at_instant == NEW_YORK_SUMMER
    assert inst.utc_iso == "2021-11-07T05:30:00Z"


def test_nonexistent_time_uses_offset_before_transition():
    """02:30 le jour du passage à l'heure d'été n'existe pas: décalage d'avant la transition."""
    inst = resolve_instant("2021-03-14", "02:30", "America/New_York")
    assert inst.offset_minutes_at_instant == NEW_YORK_WINTER
    assert inst.utc_iso == "2021-03-14T07:30:00Z"


def test_resolution_is_deterministic():
    """Deux résolutions identiques donnent le même instant."""
    resolver = TimeResolver()
    first = resolver.resolve_instant("1995-05-20", "06:15", "Asia/Kathmandu")
    second = resolver.resolve_instant("1995-05-20", "06:15", "Asia/Kathmandu")
    assert first == second


@pytest.mark.parametrize(
    ("raw_date", "raw_time"),
    [
        ("2023-02-30", "10:00"),
        ("1990/01/01", "10:00"),
        ("1990-01-01", "25:00"),
        ("1990-01-01", "10h30"),
        ("", ""),
    ],
)
def test_invalid_calendar_values_are_rejected(raw_date, raw_time):
    """Date ou heure illisible -> InvalidCalendarValue."""
    with pytest.raises(InvalidCalendarValue):
        resolve_instant(raw_date, raw_time, "Asia/Kathmandu")


def test_unknown_timezone_is_rejected():
    """Fuseau inconnu -> InvalidCalendarValue."""
    with pytest.raises(InvalidCalendarValue):
        resolve_instant("1990-01-01", "10:30", "Mars/Olympus_Mons")


def test_parse_local_returns_naive_wall_clock():
    """parse_local ne choisit aucun fuseau."""
    naive = parse_local("1990-01-01", "10:30")
    assert naive.tzinfo is None
    assert (naive.hour, naive.minute) == (10, 30)
