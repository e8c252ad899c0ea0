"""Application session: browsing, chat, in-place edits and teardown."""

from __future__ import annotations

import pytest

from carcatalog.errors import GatewayError, NotFoundError
from carcatalog.export import FilterCriteria
from carcatalog.models import CatalogRecord
from carcatalog.session import AppSession
from tests.helpers import make_spec


@pytest.fixture
def app(source_settings, gateway_settings, pipeline_settings, fake_gateway):
    return AppSession.open(
        source_settings, gateway_settings, pipeline_settings, gateway=fake_gateway
    )


def _store_catalog(app, **overrides) -> CatalogRecord:
    values = {
        "file_name": "prius.pdf",
        "raw_text": "Prius catalog text",
        "extracted_data": [make_spec(0), make_spec(1, manufacturer="Honda")],
    }
    values.update(overrides)
    return app.context.store.create(CatalogRecord(**values))


class TestBrowsing:
    @pytest.mark.asyncio
    async def test_refresh_lists_catalogs(self, app):
        async with app:
            first = _store_catalog(app, file_name="a.pdf")
            second = _store_catalog(app, file_name="b.pdf")

            catalogs = app.refresh()

        assert {c.id for c in catalogs} == {first.id, second.id}
        assert app.context.catalogs == catalogs

    @pytest.mark.asyncio
    async def test_select_seeds_chat_and_fills_summary(self, app, fake_gateway):
        async with app:
            saved = _store_catalog(app)

            record = await app.select(saved.id)

            assert record.summary == "A short summary."
            assert app.context.current == record
            assert app.context.chat is not None
            assert app.context.store.get(saved.id).summary == "A short summary."

    @pytest.mark.asyncio
    async def test_select_can_skip_summary(self, app, fake_gateway):
        async with app:
            saved = _store_catalog(app)

            record = await app.select(saved.id, summarize=False)

            assert record.summary is None
            assert app.context.current == record
            assert app.context.chat is not None
            fake_gateway.summarize.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_select_without_records_has_no_chat(self, app):
        async with app:
            saved = _store_catalog(app, extracted_data=[])

            await app.select(saved.id)

            assert app.context.chat is None
            with pytest.raises(RuntimeError):
                await app.ask("Anything?")

    @pytest.mark.asyncio
    async def test_select_missing(self, app):
        async with app:
            with pytest.raises(NotFoundError):
                await app.select(404)

    @pytest.mark.asyncio
    async def test_delete_selected_clears_view(self, app):
        async with app:
            saved = _store_catalog(app)
            app.refresh()
            await app.select(saved.id)

            app.delete(saved.id)

            assert app.context.current is None
            assert app.context.chat is None
            assert app.context.catalogs == []
            with pytest.raises(NotFoundError):
                app.delete(saved.id)


class TestChat:
    @pytest.mark.asyncio
    async def test_ask_uses_seeded_session(self, app, fake_gateway):
        async with app:
            saved = _store_catalog(app)
            await app.select(saved.id)

            answer = await app.ask("Which grade is cheapest?")

            assert answer == "The G0 grade is cheapest."
            assert len(app.context.chat.history) == 2
            system = fake_gateway.complete.await_args.kwargs["system"]
            assert "Prius" in system

    @pytest.mark.asyncio
    async def test_failed_question_can_be_retried(self, app, fake_gateway):
        async with app:
            saved = _store_catalog(app)
            await app.select(saved.id)
            fake_gateway.complete.side_effect = GatewayError()

            with pytest.raises(GatewayError):
                await app.ask("Which grade is cheapest?")

            assert app.context.chat.history == []


class TestEditing:
    @pytest.mark.asyncio
    async def test_edit_is_local_until_saved(self, app):
        async with app:
            saved = _store_catalog(app)
            await app.select(saved.id)
            spec_id = saved.extracted_data[0].id

            app.edit_cell(spec_id, "grade", "Z")

            assert app.context.dirty
            assert app.context.current.find_spec(spec_id).grade == "Z"
            assert app.context.store.get(saved.id).extracted_data[0].grade == "G0"

            app.save_edits()

            assert not app.context.dirty
            assert app.context.store.get(saved.id).extracted_data[0].grade == "Z"

    @pytest.mark.asyncio
    async def test_value_coercion(self, app):
        async with app:
            saved = _store_catalog(app)
            await app.select(saved.id)
            spec_id = saved.extracted_data[0].id

            assert app.edit_cell(spec_id, "price", "3,450,000").price == 3450000.0
            assert app.edit_cell(spec_id, "price", "").price is None
            assert app.edit_cell(spec_id, "options", "ETC, Sunroof ,").options == ["ETC", "Sunroof"]
            assert app.edit_cell(spec_id, "engine_type", " ").engine_type is None

    @pytest.mark.asyncio
    async def test_invalid_edits(self, app):
        async with app:
            saved = _store_catalog(app)
            await app.select(saved.id)
            spec_id = saved.extracted_data[0].id

            with pytest.raises(ValueError):
                app.edit_cell(spec_id, "id", "x")
            with pytest.raises(ValueError):
                app.edit_cell(spec_id, "price", "cheap")
            with pytest.raises(KeyError):
                app.edit_cell("no-such-row", "grade", "Z")
            assert not app.context.dirty

    @pytest.mark.asyncio
    async def test_save_after_delete_raises_not_found(self, app):
        async with app:
            saved = _store_catalog(app)
            await app.select(saved.id)
            app.edit_cell(saved.extracted_data[0].id, "grade", "Z")
            app.context.store.delete(saved.id)

            with pytest.raises(NotFoundError):
                app.save_edits()

            assert app.context.dirty

    def test_edit_without_selection(self, app):
        with pytest.raises(RuntimeError):
            app.edit_cell("x", "grade", "Z")


class TestFilteredSpecs:
    @pytest.mark.asyncio
    async def test_filters_current_catalog(self, app):
        async with app:
            saved = _store_catalog(app)
            await app.select(saved.id)

            assert len(app.filtered_specs()) == 2
            honda = app.filtered_specs(FilterCriteria(manufacturer="Honda"))
            assert [s.manufacturer for s in honda] == ["Honda"]

    def test_nothing_selected(self, app):
        assert app.filtered_specs(FilterCriteria(manufacturer="Honda")) == []


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_close_releases_gateway(self, app, fake_gateway):
        async with app:
            pass

        fake_gateway.close.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_end_to_end_pdf_run(self, app, three_page_pdf):
        async with app:
            result = await app.orchestrator.process_pdf_bytes(three_page_pdf, "prius.pdf")

            assert result.success
            assert [c.id for c in app.context.catalogs] == [result.record.id]
