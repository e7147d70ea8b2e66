"""SQLAlchemy models for persistence layer (computation sessions)."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
)
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Classe de base pour tous les modèles SQLAlchemy."""

    metadata = MetaData()


def _now() -> datetime:
    return datetime.now(UTC)


class SessionORM(Base):
    """Modèle ORM d'une session de calcul (entrée, résolution, résultat ou échec)."""

    __tablename__ = "sessions"

    id = Column(String(36), primary_key=True)
    # Saisie brute
    name = Column(String(100), nullable=False)
    raw_date = Column(String(10), nullable=False)
    raw_time = Column(String(5), nullable=False)
    location_text = Column(String(200), nullable=False)
    ayanamsa = Column(Integer, nullable=False, default=1)
    lang = Column(String(2), nullable=False, default="ne")
    # Résolution
    lat = Column(Float, nullable=True)
    lon = Column(Float, nullable=True)
    tz_id = Column(String(64), nullable=True)
    city = Column(String(255), nullable=True)
    country = Column(String(255), nullable=True)
    display_name = Column(String(512), nullable=True)
    utc_instant = Column(DateTime(timezone=True), nullable=True)
    tz_offset_minutes = Column(Integer, nullable=True)
    # Résultat
    status = Column(String(16), nullable=False, index=True)
    summary = Column(JSON, nullable=True)
    raw_payload = Column(JSON, nullable=True)
    failure_stage = Column(String(32), nullable=True)
    failure_cause = Column(String(64), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_now)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_now, onupdate=_now)
