"""Application session: wiring plus the browse, chat and edit operations.

AppSession owns every long-lived resource (database engine, model client,
pending timers) and the AppContext holding per-session state. Presentation
code talks to the session only; it never reaches into module globals.

Usage:
    async with AppSession.open(source, gateway, pipeline) as app:
        result = await app.orchestrator.process_pdf(Path("catalog.pdf"))
        await app.select(result.record.id)
        answer = await app.ask("Which grade is cheapest?")
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import anthropic
import httpx
from sqlalchemy import Engine

from carcatalog.config import GatewaySettings, PipelineSettings, SourceSettings
from carcatalog.export import FilterCriteria, filter_specs
from carcatalog.gateway import ExtractionGateway
from carcatalog.models import SPEC_FIELDS, CarSpecification, CatalogRecord
from carcatalog.pipeline import AppContext, PipelineOrchestrator
from carcatalog.source import WebFetcher
from carcatalog.store import (
    CatalogStore,
    PreviewStore,
    get_engine,
    get_session_factory,
    init_db,
)

logger = logging.getLogger(__name__)


class AppSession:
    """One running instance of the catalog application."""

    def __init__(
        self,
        context: AppContext,
        orchestrator: PipelineOrchestrator,
        gateway: ExtractionGateway,
        engine: Engine,
    ) -> None:
        self.context = context
        self.orchestrator = orchestrator
        self.gateway = gateway
        self._engine = engine

    @classmethod
    def open(
        cls,
        source_settings: SourceSettings,
        gateway_settings: GatewaySettings,
        pipeline_settings: PipelineSettings,
        *,
        client: anthropic.AsyncAnthropic | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        gateway: ExtractionGateway | None = None,
    ) -> AppSession:
        """Build the store, gateway, fetcher and orchestrator for a session.

        Args:
            client: Optional model client handed to a new gateway.
            transport: Optional httpx transport for the web fetcher.
            gateway: Optional ready-made gateway; ``client`` is ignored if given.
        """
        engine = get_engine(pipeline_settings.db_path)
        init_db(engine)
        store = CatalogStore(
            get_session_factory(engine), PreviewStore(pipeline_settings.preview_dir)
        )

        gateway = gateway or ExtractionGateway(gateway_settings, client=client)
        fetcher = WebFetcher(source_settings, transport=transport)
        context = AppContext(store=store)
        orchestrator = PipelineOrchestrator(
            context, gateway, fetcher, source_settings, pipeline_settings
        )

        logger.info("Session opened (database %s)", pipeline_settings.db_path)
        return cls(context, orchestrator, gateway, engine)

    async def close(self) -> None:
        """Cancel pending timers and release the model client and engine."""
        self.orchestrator.cancel_pending()
        try:
            await self.gateway.close()
        finally:
            self._engine.dispose()
        logger.info("Session closed")

    async def __aenter__(self) -> AppSession:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Browsing
    # ------------------------------------------------------------------

    def refresh(self) -> list[CatalogRecord]:
        """Reload the catalog list from the store, newest first."""
        return self.context.refresh_catalogs()

    async def select(self, record_id: int, summarize: bool = True) -> CatalogRecord:
        """Load a stored catalog into view.

        Seeds the chat session when the catalog has records and, unless
        *summarize* is False, fills in a missing summary. Pending edits on
        the previous selection are dropped.

        Raises:
            NotFoundError: If the catalog does not exist.
        """
        record = self.context.store.get(record_id)
        self.context.current = record
        self.context.dirty = False
        self.context.chat = (
            self.gateway.create_chat_session(record.extracted_data)
            if record.extracted_data
            else None
        )

        if not summarize:
            return record

        record = await self.orchestrator.ensure_summary(record)
        # The view may have moved on while the summary was generated
        if self.context.current is not None and self.context.current.id == record_id:
            self.context.current = record
        return record

    def delete(self, record_id: int) -> None:
        """Delete a stored catalog, clearing the view if it was shown.

        Raises:
            NotFoundError: If the catalog does not exist.
        """
        self.context.store.delete(record_id)
        current = self.context.current
        if current is not None and current.id == record_id:
            self.context.current = None
            self.context.chat = None
            self.context.dirty = False
        self.context.catalogs = [c for c in self.context.catalogs if c.id != record_id]

    async def ask(self, question: str) -> str:
        """Ask the chat session about the catalog in view.

        Raises:
            RuntimeError: If the current catalog has no records to discuss.
            GatewayError: If the model call fails; history is left unchanged.
        """
        if self.context.chat is None:
            raise RuntimeError("no catalog with extracted records is selected")
        return await self.context.chat.send(question)

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def edit_cell(self, spec_id: str, field_name: str, value: Any) -> CarSpecification:
        """Change one field of one row on the working copy.

        The stored catalog is untouched until ``save_edits`` is called.
        ``options`` accepts a comma-separated string; ``price`` accepts a
        numeric string, with an empty value clearing it.

        Raises:
            RuntimeError: If no catalog is selected.
            KeyError: If *spec_id* is not a row of the current catalog.
            ValueError: If *field_name* is not editable or *value* is invalid.
        """
        current = self.context.current
        if current is None:
            raise RuntimeError("no catalog is selected")
        if field_name not in SPEC_FIELDS:
            raise ValueError(f"{field_name!r} is not an editable field")

        spec = current.find_spec(spec_id)
        if spec is None:
            raise KeyError(spec_id)

        edited = spec.model_copy(update={field_name: _coerce(field_name, value)})
        self.context.current = current.model_copy(
            update={
                "extracted_data": [
                    edited if s.id == spec_id else s for s in current.extracted_data
                ]
            }
        )
        self.context.dirty = True
        return edited

    def save_edits(self) -> CatalogRecord:
        """Persist the working copy's edits.

        Raises:
            RuntimeError: If no stored catalog is selected.
            NotFoundError: If the catalog was deleted meanwhile.
            PersistenceError: If the write fails; edits stay on the working copy.
        """
        current = self.context.current
        if current is None or current.id is None:
            raise RuntimeError("no stored catalog is selected")
        if not self.context.dirty:
            return current

        saved = self.context.store.update(current)
        self.context.current = saved
        self.context.dirty = False
        if saved.extracted_data:
            self.context.chat = self.gateway.create_chat_session(saved.extracted_data)
        logger.info("Saved edits to catalog %d", saved.id)
        return saved

    def filtered_specs(self, criteria: FilterCriteria | None = None) -> list[CarSpecification]:
        """Rows of the current catalog matching *criteria*."""
        current = self.context.current
        if current is None:
            return []
        if criteria is None:
            return list(current.extracted_data)
        return filter_specs(current.extracted_data, criteria)


def _coerce(field_name: str, value: Any) -> Optional[Any]:
    if value is None:
        return None
    if field_name == "price":
        if isinstance(value, (int, float)) and not isinstance(value, bool):
            return float(value)
        text = str(value).strip().replace(",", "")
        if not text:
            return None
        try:
            return float(text)
        except ValueError:
            raise ValueError(f"price must be numeric, got {value!r}") from None
    if field_name == "options":
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return [str(item) for item in value]
    text = str(value)
    return text if text.strip() else None
