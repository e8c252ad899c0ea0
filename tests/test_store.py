"""Catalog store: CRUD, ordering, id allocation, previews and key codec."""

from __future__ import annotations

import datetime
from pathlib import Path

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from carcatalog.errors import NotFoundError, PersistenceError
from carcatalog.models import CatalogRecord
from carcatalog.store import (
    CatalogStore,
    decode_key,
    encode_key,
    get_engine,
    get_session_factory,
    init_db,
)
from carcatalog.store.engine import MEMORY_DB
from tests.helpers import make_spec


def _record(name: str = "catalog.pdf", **overrides) -> CatalogRecord:
    values = {
        "file_name": name,
        "extracted_data": [make_spec(0), make_spec(1, options=None, price=None)],
        "raw_json": '[{"manufacturer": "Toyota"}]',
        "raw_text": "Page1 Page2",
    }
    values.update(overrides)
    return CatalogRecord(**values)


class TestCreateAndGet:
    def test_create_assigns_id_and_round_trips(self, store):
        saved = store.create(_record(summary="Summary."))

        assert saved.id is not None
        loaded = store.get(saved.id)
        assert loaded == saved
        assert loaded.extracted_data[1].price is None
        assert loaded.extracted_data[1].options is None
        assert loaded.summary == "Summary."
        assert loaded.images is None

    def test_empty_branches_are_stored_as_empty_strings(self, store):
        saved = store.create(_record(raw_json="", extracted_data=[]))

        loaded = store.get(saved.id)
        assert loaded.raw_json == ""
        assert loaded.extracted_data == []
        assert loaded.raw_text == "Page1 Page2"

    def test_create_rejects_record_with_id(self, store):
        with pytest.raises(ValueError):
            store.create(_record(id=5))

    def test_get_missing_raises_not_found(self, store):
        with pytest.raises(NotFoundError) as exc_info:
            store.get(999)
        assert exc_info.value.record_id == 999

    def test_ids_are_never_reused(self, store):
        first = store.create(_record("a.pdf"))
        second = store.create(_record("b.pdf"))
        store.delete(second.id)

        third = store.create(_record("c.pdf"))

        assert first.id < second.id < third.id


class TestListAll:
    def test_newest_first(self, store):
        base = datetime.datetime(2024, 1, 1, 12, 0, 0)
        store.create(_record("old.pdf", created_at=base))
        store.create(_record("new.pdf", created_at=base + datetime.timedelta(hours=1)))
        store.create(_record("mid.pdf", created_at=base + datetime.timedelta(minutes=5)))

        names = [r.file_name for r in store.list_all()]

        assert names == ["new.pdf", "mid.pdf", "old.pdf"]

    def test_repeated_listing_is_stable(self, store):
        store.create(_record("a.pdf"))
        store.create(_record("b.pdf"))

        assert store.list_all() == store.list_all()

    def test_empty_store(self, store):
        assert store.list_all() == []


class TestUpdate:
    def test_full_replace(self, store):
        saved = store.create(_record())
        edited_spec = saved.extracted_data[0].model_copy(update={"grade": "Z"})
        edited = saved.model_copy(
            update={"extracted_data": [edited_spec], "summary": "New summary."}
        )

        store.update(edited)

        loaded = store.get(saved.id)
        assert [s.grade for s in loaded.extracted_data] == ["Z"]
        assert loaded.summary == "New summary."
        assert loaded.created_at == saved.created_at

    def test_update_without_id_is_rejected(self, store):
        with pytest.raises(ValueError):
            store.update(_record())

    def test_update_deleted_record_raises_not_found(self, store):
        saved = store.create(_record())
        store.delete(saved.id)

        with pytest.raises(NotFoundError):
            store.update(saved.model_copy(update={"summary": "late"}))


class TestDelete:
    def test_delete_removes_record(self, store):
        saved = store.create(_record())

        store.delete(saved.id)

        assert store.list_all() == []
        with pytest.raises(NotFoundError):
            store.get(saved.id)

    def test_delete_missing_raises_not_found(self, store):
        with pytest.raises(NotFoundError):
            store.delete(42)


class TestPreviews:
    def test_previews_are_offloaded_and_referenced(self, store, previews):
        saved = store.create(_record(), page_images=[b"jpeg-1", b"jpeg-2"])

        assert saved.images is not None
        assert len(saved.images) == 2
        paths = [Path(ref) for ref in saved.images]
        assert [p.read_bytes() for p in paths] == [b"jpeg-1", b"jpeg-2"]
        assert paths[0].parent == previews.root / encode_key(saved.id)
        assert store.get(saved.id).images == saved.images

    def test_delete_removes_previews(self, store, previews):
        saved = store.create(_record(), page_images=[b"jpeg"])
        catalog_dir = previews.root / encode_key(saved.id)
        assert catalog_dir.exists()

        store.delete(saved.id)

        assert not catalog_dir.exists()

    def test_preview_write_failure_becomes_persistence_error(
        self, store, previews, monkeypatch
    ):
        def fail(key, images):
            raise OSError("disk full")

        monkeypatch.setattr(previews, "save", fail)

        with pytest.raises(PersistenceError) as exc_info:
            store.create(_record(), page_images=[b"jpeg"])

        assert "not saved" in exc_info.value.user_message
        assert store.list_all() == []

    def test_commit_failure_removes_written_previews(self, store, previews, monkeypatch):
        def fail(self):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(Session, "commit", fail)

        with pytest.raises(PersistenceError):
            store.create(_record(), page_images=[b"jpeg-1", b"jpeg-2"])

        monkeypatch.undo()
        assert store.list_all() == []
        assert not previews.root.exists() or not any(previews.root.iterdir())


class TestKeys:
    @pytest.mark.parametrize("record_id", [0, 1, 42, 10**12 - 1])
    def test_round_trip(self, record_id):
        assert decode_key(encode_key(record_id)) == record_id

    def test_string_order_matches_numeric_order(self):
        ids = [1, 9, 10, 99, 100, 12345]
        keys = [encode_key(i) for i in ids]

        assert sorted(keys) == keys

    @pytest.mark.parametrize("bad", [-1, 10**12, True, 1.5, "7"])
    def test_encode_rejects_invalid_ids(self, bad):
        with pytest.raises(ValueError):
            encode_key(bad)

    @pytest.mark.parametrize("bad", ["", "12", "00000000000a", "0000000000001", "-00000000001"])
    def test_decode_rejects_malformed_keys(self, bad):
        with pytest.raises(ValueError):
            decode_key(bad)


class TestEngine:
    def test_in_memory_database_keeps_rows_across_sessions(self, previews):
        engine = get_engine(MEMORY_DB)
        init_db(engine)
        store = CatalogStore(get_session_factory(engine), previews)

        saved = store.create(_record())

        assert store.get(saved.id).file_name == "catalog.pdf"
        engine.dispose()

    def test_file_database_directory_is_created(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "catalogs.db"

        engine = get_engine(str(db_path))
        init_db(engine)
        engine.dispose()

        assert db_path.exists()
