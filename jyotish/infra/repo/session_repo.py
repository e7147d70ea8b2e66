# ============================================================
# Module : jyotish/infra/repo/session_repo.py
# Objet  : Accès SQL pour les sessions de calcul (create/update/get).
# Notes  : toute erreur SQLAlchemy est convertie en PersistenceError.
# ============================================================

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import select, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from jyotish.domain.entities import (
    BirthDescriptor,
    ResolvedInstant,
    ResolvedLocation,
    Session,
    SessionStatus,
)
from jyotish.domain.errors import PersistenceError
from jyotish.domain.models import HoroscopeSummary
from jyotish.infra.repo.db import get_session_factory, session_scope
from jyotish.infra.repo.models import Base, SessionORM
from jyotish.infra.repositories import check_patch


def _aware(value: datetime | None) -> datetime | None:
    # SQLite renvoie des datetimes naïfs: ils sont stockés en UTC
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def _columns(patch: dict[str, Any]) -> dict[str, Any]:
    """Traduit un patch de domaine en colonnes SQL."""
    cols: dict[str, Any] = {}
    for key, value in patch.items():
        if key == "location":
            loc: ResolvedLocation | None = value
            cols.update(
                lat=loc.lat if loc else None,
                lon=loc.lon if loc else None,
                tz_id=loc.iana_timezone if loc else None,
                city=loc.city if loc else None,
                country=loc.country if loc else None,
                display_name=loc.display_name if loc else None,
            )
        elif key == "instant":
            inst: ResolvedInstant | None = value
            cols.update(
                utc_instant=inst.utc if inst else None,
                tz_offset_minutes=inst.offset_minutes_at_instant if inst else None,
            )
        elif key == "status":
            cols["status"] = SessionStatus(value).value
        elif key == "summary":
            cols["summary"] = (
                value.model_dump(mode="json", by_alias=True) if value is not None else None
            )
        else:
            cols[key] = value
    return cols


def _to_domain(row: SessionORM) -> Session:
    location = None
    if row.lat is not None and row.lon is not None and row.tz_id:
        location = ResolvedLocation(
            lat=row.lat,
            lon=row.lon,
            iana_timezone=row.tz_id,
            city=row.city or "",
            country=row.country or "",
            display_name=row.display_name or "",
        )
    instant = None
    if row.utc_instant is not None and row.tz_offset_minutes is not None:
        instant = ResolvedInstant(
            utc=_aware(row.utc_instant), offset_minutes_at_instant=row.tz_offset_minutes
        )
    return Session(
        id=row.id,
        birth=BirthDescriptor(
            name=row.name,
            raw_date=row.raw_date,
            raw_time=row.raw_time,
            free_text_location=row.location_text,
            ayanamsa_variant=row.ayanamsa,
            lang=row.lang,
        ),
        location=location,
        instant=instant,
        status=SessionStatus(row.status),
        summary=HoroscopeSummary.model_validate(row.summary) if row.summary else None,
        raw_payload=row.raw_payload,
        failure_stage=row.failure_stage,
        failure_cause=row.failure_cause,
        created_at=_aware(row.created_at),
        updated_at=_aware(row.updated_at),
    )


class SqlSessionRepo:
    """Dépôt de sessions SQLAlchemy (une transaction par opération)."""

    def __init__(self, engine: Engine, *, create_schema: bool = False) -> None:
        """Construit le repo sur un moteur; `create_schema` crée les tables (dev/tests)."""
        self._engine = engine
        self._factory = get_session_factory(engine)
        if create_schema:
            Base.metadata.create_all(engine)

    def create_session(
        self,
        birth: BirthDescriptor,
        location: ResolvedLocation | None = None,
        instant: ResolvedInstant | None = None,
        status: SessionStatus = SessionStatus.CREATED,
    ) -> str:
        """Insère une session et renvoie son identifiant."""
        session_id = str(uuid.uuid4())
        row = SessionORM(
            id=session_id,
            name=birth.name,
            raw_date=birth.raw_date,
            raw_time=birth.raw_time,
            location_text=birth.free_text_location,
            ayanamsa=int(birth.ayanamsa_variant),
            lang=birth.lang,
            **_columns({"location": location, "instant": instant, "status": status}),
        )
        try:
            with session_scope(self._factory) as db:
                db.add(row)
        except SQLAlchemyError as err:
            raise PersistenceError(f"create failed: {err.__class__.__name__}") from err
        return session_id

    def update_session(self, session_id: str, patch: dict[str, Any]) -> None:
        """Applique un patch partiel; lève `PersistenceError` si la session est absente."""
        check_patch(patch)
        try:
            with session_scope(self._factory) as db:
                row = db.get(SessionORM, session_id)
                if row is None:
                    raise PersistenceError(
                        f"session {session_id} not found", session_id=session_id
                    )
                for column, value in _columns(patch).items():
                    setattr(row, column, value)
        except SQLAlchemyError as err:
            raise PersistenceError(
                f"update failed: {err.__class__.__name__}", session_id=session_id
            ) from err

    def get_session(self, session_id: str) -> Session | None:
        """Retourne une session par id, ou None si elle est absente."""
        try:
            with session_scope(self._factory) as db:
                row = db.execute(
                    select(SessionORM).where(SessionORM.id == session_id)
                ).scalars().first()
                return _to_domain(row) if row else None
        except SQLAlchemyError as err:
            raise PersistenceError(f"read failed: {err.__class__.__name__}") from err

    def ping(self) -> bool:
        """Vérifie la connexion (`SELECT 1`)."""
        try:
            with self._engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            return False
        return True
