# mypy: ignore-errors
"""
Migration Alembic pour créer la table sessions.

Une ligne par tentative de calcul: saisie brute, lieu et instant résolus, statut, résumé et
charge brute du fournisseur, ou étape et cause d'échec.
"""

from __future__ import annotations

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Crée la table sessions et l'index sur le statut."""
    op.create_table(
        "sessions",
        sa.Column("id", sa.String(length=36), primary_key=True),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("raw_date", sa.String(length=10), nullable=False),
        sa.Column("raw_time", sa.String(length=5), nullable=False),
        sa.Column("location_text", sa.String(length=200), nullable=False),
        sa.Column("ayanamsa", sa.Integer(), nullable=False),
        sa.Column("lang", sa.String(length=2), nullable=False),
        sa.Column("lat", sa.Float(), nullable=True),
        sa.Column("lon", sa.Float(), nullable=True),
        sa.Column("tz_id", sa.String(length=64), nullable=True),
        sa.Column("city", sa.String(length=255), nullable=True),
        sa.Column("country", sa.String(length=255), nullable=True),
        sa.Column("display_name", sa.String(length=512), nullable=True),
        sa.Column("utc_instant", sa.DateTime(timezone=True), nullable=True),
        sa.Column("tz_offset_minutes", sa.Integer(), nullable=True),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("summary", sa.JSON(), nullable=True),
        sa.Column("raw_payload", sa.JSON(), nullable=True),
        sa.Column("failure_stage", sa.String(length=32), nullable=True),
        sa.Column("failure_cause", sa.String(length=64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index("ix_sessions_status", "sessions", ["status"])


def downgrade() -> None:
    """Supprime la table sessions."""
    op.drop_index("ix_sessions_status", table_name="sessions")
    op.drop_table("sessions")
