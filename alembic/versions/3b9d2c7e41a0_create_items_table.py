"""create items table

Revision ID: 3b9d2c7e41a0
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

from collections.abc import Sequence

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3b9d2c7e41a0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "items",
        sa.Column("pk", sa.String(length=512), nullable=False),
        sa.Column("sk", sa.String(length=512), nullable=False),
        sa.Column("gsi1pk", sa.String(length=512), nullable=True),
        sa.Column("gsi1sk", sa.String(length=512), nullable=True),
        sa.Column("gsi2pk", sa.String(length=512), nullable=True),
        sa.Column("gsi2sk", sa.String(length=512), nullable=True),
        sa.Column(
            "data",
            postgresql.JSONB(astext_type=sa.Text()),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.PrimaryKeyConstraint("pk", "sk"),
    )
    op.create_index("ix_items_gsi1", "items", ["gsi1pk", "gsi1sk"])
    op.create_index("ix_items_gsi2", "items", ["gsi2pk", "gsi2sk"])


def downgrade() -> None:
    op.drop_index("ix_items_gsi2", table_name="items")
    op.drop_index("ix_items_gsi1", table_name="items")
    op.drop_table("items")
