"""create identity app salts table"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision = "20261018_0001"
down_revision = None
branch_labels = None
depends_on = None


def _schema() -> str:
    """Resolve the Identity-owned schema chosen by the migration environment."""
    return op.get_context().version_table_schema


def upgrade() -> None:
    """Create the per-app daily salt table."""
    op.create_table(
        "app_salts",
        sa.Column("app_id", sa.String(length=64), nullable=False),
        sa.Column("date", sa.String(length=10), nullable=False),
        sa.Column("salt", sa.LargeBinary(length=16), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.PrimaryKeyConstraint("app_id", "date", name="pk_app_salts"),
        sa.CheckConstraint("octet_length(salt) = 16", name="ck_app_salts_salt_len"),
        schema=_schema(),
    )


def downgrade() -> None:
    """Drop the per-app daily salt table."""
    op.drop_table("app_salts", schema=_schema())
