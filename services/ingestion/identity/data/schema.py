"""SQLAlchemy table definitions owned by Identity Service."""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    LargeBinary,
    MetaData,
    PrimaryKeyConstraint,
    String,
    Table,
    func,
)

from services.ingestion.identity.domain import SALT_LENGTH_BYTES

metadata = MetaData()

app_salts = Table(
    "app_salts",
    metadata,
    Column("app_id", String(64), nullable=False),
    Column("date", String(10), nullable=False),
    Column("salt", LargeBinary(SALT_LENGTH_BYTES), nullable=False),
    Column(
        "created_at",
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    ),
    PrimaryKeyConstraint("app_id", "date", name="pk_app_salts"),
    CheckConstraint(
        f"octet_length(salt) = {SALT_LENGTH_BYTES}", name="ck_app_salts_salt_len"
    ),
)
