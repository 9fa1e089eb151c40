"""SQLAlchemy table definitions.

The service stores every entity (lessons, progress, aggregates, notes,
chat, activity) in a single ``items`` table shaped like a document store:
composite primary key (pk, sk), the item's attributes in a JSONB column,
and the secondary-index keys lifted into their own indexed columns so
index queries stay range scans.  PgDocumentStore converts between rows
and plain item dicts.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from app.db.engine import Base


class ItemRow(Base):
    __tablename__ = "items"

    pk: Mapped[str] = mapped_column(String(512), primary_key=True)
    sk: Mapped[str] = mapped_column(String(512), primary_key=True)
    gsi1pk: Mapped[str | None] = mapped_column(String(512), nullable=True)
    gsi1sk: Mapped[str | None] = mapped_column(String(512), nullable=True)
    gsi2pk: Mapped[str | None] = mapped_column(String(512), nullable=True)
    gsi2sk: Mapped[str | None] = mapped_column(String(512), nullable=True)
    data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    __table_args__ = (
        Index("ix_items_gsi1", "gsi1pk", "gsi1sk"),
        Index("ix_items_gsi2", "gsi2pk", "gsi2sk"),
    )
