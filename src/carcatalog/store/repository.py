"""Catalog store: CRUD persistence for catalog records.

Provides the operations the pipeline and the session need:
    create -- Insert a new catalog (id assigned here) and offload previews.
    list_all -- All catalogs, newest first.
    get -- One catalog by id.
    update -- Full replace of an existing catalog; the id is immutable.
    delete -- Remove a catalog and its previews.

Every mutation calls session.commit() explicitly -- SQLAlchemy does NOT
auto-commit when the session closes, so changes would be silently lost
without it. Database failures surface as PersistenceError; missing targets
as NotFoundError.
"""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from carcatalog.errors import NotFoundError, PersistenceError
from carcatalog.models import CarSpecification, CatalogRecord
from carcatalog.store.keys import encode_key
from carcatalog.store.models import CatalogRow
from carcatalog.store.previews import PreviewStore

logger = logging.getLogger(__name__)


class CatalogStore:
    """SQLite-backed catalog persistence.

    Args:
        session_factory: Factory producing SQLAlchemy sessions.
        previews: Blob store for page preview images.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        previews: PreviewStore,
    ) -> None:
        self._session_factory = session_factory
        self._previews = previews

    def create(
        self,
        record: CatalogRecord,
        page_images: Sequence[bytes] | None = None,
    ) -> CatalogRecord:
        """Persist a new catalog and return it with its assigned id.

        Args:
            record: The catalog to store; ``record.id`` must be None.
            page_images: Optional page previews to offload to blob storage.
                Their references replace ``record.images`` on the stored copy.

        Raises:
            ValueError: If the record already carries an id.
            PersistenceError: If the database or preview write fails.
        """
        if record.id is not None:
            raise ValueError(f"record already has id {record.id}; use update()")

        preview_key = None
        try:
            with self._session_factory() as session:
                row = CatalogRow(**_row_values(record))
                session.add(row)
                session.flush()  # assigns row.id

                if page_images:
                    preview_key = encode_key(row.id)
                    try:
                        row.images = self._previews.save(preview_key, page_images)
                    except OSError:
                        self._previews.delete(preview_key)
                        raise

                session.commit()
                saved = _to_record(row)
        except SQLAlchemyError as e:
            logger.error("Failed to create catalog %r: %s", record.file_name, e)
            # A rolled-back id can be allocated again; its previews must not linger
            if preview_key is not None:
                try:
                    self._previews.delete(preview_key)
                except OSError as cleanup_error:
                    logger.warning(
                        "Stale previews left for %s: %s", preview_key, cleanup_error
                    )
            raise PersistenceError(detail=str(e)) from e
        except OSError as e:
            logger.error("Failed to store previews for %r: %s", record.file_name, e)
            raise PersistenceError(detail=str(e)) from e

        logger.info(
            "Created catalog %d (%s, %d records)",
            saved.id,
            saved.file_name,
            len(saved.extracted_data),
        )
        return saved

    def list_all(self) -> list[CatalogRecord]:
        """Return every catalog ordered by creation time, newest first."""
        stmt = select(CatalogRow).order_by(
            CatalogRow.created_at.desc(), CatalogRow.id.desc()
        )
        try:
            with self._session_factory() as session:
                return [_to_record(row) for row in session.scalars(stmt)]
        except SQLAlchemyError as e:
            logger.error("Failed to list catalogs: %s", e)
            raise PersistenceError("Could not load saved catalogs.", detail=str(e)) from e

    def get(self, record_id: int) -> CatalogRecord:
        """Return the catalog with *record_id*.

        Raises:
            NotFoundError: If no such catalog exists.
        """
        try:
            with self._session_factory() as session:
                row = session.get(CatalogRow, record_id)
                if row is None:
                    raise NotFoundError(record_id)
                return _to_record(row)
        except SQLAlchemyError as e:
            logger.error("Failed to load catalog %s: %s", record_id, e)
            raise PersistenceError("Could not load the catalog.", detail=str(e)) from e

    def update(self, record: CatalogRecord) -> CatalogRecord:
        """Replace every field of an existing catalog.

        Raises:
            ValueError: If the record has no id.
            NotFoundError: If the catalog was deleted in the meantime.
            PersistenceError: If the database write fails.
        """
        if record.id is None:
            raise ValueError("cannot update a record without an id")

        try:
            with self._session_factory() as session:
                row = session.get(CatalogRow, record.id)
                if row is None:
                    raise NotFoundError(record.id)
                for name, value in _row_values(record).items():
                    setattr(row, name, value)
                session.commit()
                saved = _to_record(row)
        except SQLAlchemyError as e:
            logger.error("Failed to update catalog %d: %s", record.id, e)
            raise PersistenceError("The catalog could not be saved.", detail=str(e)) from e

        logger.debug("Updated catalog %d", saved.id)
        return saved

    def delete(self, record_id: int) -> None:
        """Delete a catalog and its previews, irreversibly.

        Raises:
            NotFoundError: If no such catalog exists.
            PersistenceError: If the database write fails.
        """
        try:
            with self._session_factory() as session:
                row = session.get(CatalogRow, record_id)
                if row is None:
                    raise NotFoundError(record_id)
                session.delete(row)
                session.commit()
        except SQLAlchemyError as e:
            logger.error("Failed to delete catalog %d: %s", record_id, e)
            raise PersistenceError("The catalog could not be deleted.", detail=str(e)) from e

        # Row is gone; leftover preview files are only wasted disk
        try:
            self._previews.delete(encode_key(record_id))
        except OSError:
            logger.warning(
                "Catalog %d deleted but its previews could not be removed",
                record_id,
                exc_info=True,
            )

        logger.info("Deleted catalog %d", record_id)


def _row_values(record: CatalogRecord) -> dict:
    """Column values for *record*, excluding the id."""
    return {
        "file_name": record.file_name,
        "created_at": record.created_at,
        "extracted_data": [
            spec.model_dump(by_alias=True, mode="json")
            for spec in record.extracted_data
        ],
        "raw_json": record.raw_json,
        "raw_text": record.raw_text,
        "summary": record.summary,
        "images": list(record.images) if record.images is not None else None,
    }


def _to_record(row: CatalogRow) -> CatalogRecord:
    return CatalogRecord(
        id=row.id,
        file_name=row.file_name,
        created_at=row.created_at,
        extracted_data=[
            CarSpecification.model_validate(item) for item in row.extracted_data or []
        ],
        raw_json=row.raw_json,
        raw_text=row.raw_text,
        summary=row.summary,
        images=list(row.images) if row.images is not None else None,
    )
