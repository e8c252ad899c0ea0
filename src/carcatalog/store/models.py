"""SQLAlchemy 2.0 ORM model for persisted catalogs.

Models:
    CatalogRow -- One extraction run: source label, raw outputs, structured
                  rows (JSON), optional summary, and preview references.
"""

import datetime
from typing import Optional

from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class CatalogRow(Base):
    """A stored catalog.

    AUTOINCREMENT guarantees ids are never reused after a delete.
    """

    __tablename__ = "catalogs"
    __table_args__ = {"sqlite_autoincrement": True}

    id: Mapped[int] = mapped_column(primary_key=True)
    file_name: Mapped[str] = mapped_column(String(1000))
    created_at: Mapped[datetime.datetime] = mapped_column(index=True)

    # Structured rows as a list of camelCase dicts
    extracted_data: Mapped[list] = mapped_column(JSON, default=list)
    raw_json: Mapped[str] = mapped_column(Text, default="")
    raw_text: Mapped[str] = mapped_column(Text, default="")
    summary: Mapped[Optional[str]] = mapped_column(Text, default=None)

    # Preview references (paths), never image bytes
    images: Mapped[Optional[list]] = mapped_column(JSON, default=None)

    def __repr__(self) -> str:
        return f"<CatalogRow(id={self.id}, file_name={self.file_name!r})>"
