"""Extraction pipeline orchestrator with branch-level failure tolerance.

Turns a PDF or a web page into a stored catalog:

    reading -> converting -> extracting_text + extracting_json -> saving -> done

The two extraction branches (raw text, structured records) run concurrently
and are joined with an all-settled gather, so one branch failing never
discards the other's result. The run fails only when both branches fail,
when neither produced any content, or when the source cannot be read. A
narrative summary is requested once text extraction has succeeded; its
failure is logged and ignored.

Errors from the source adapters and the gateway stop here: they become the
progress ERROR state with a user-facing message and are never raised to the
caller. A failed save keeps the extracted draft on the context so the save
can be retried without re-running extraction.

Public API:
    PipelineOrchestrator(context, gateway, fetcher, source_settings, pipeline_settings)
        .process_pdf(path) -> PipelineResult
        .process_pdf_bytes(data, file_name) -> PipelineResult
        .process_url(url) -> PipelineResult
        .retry_save() -> PipelineResult
        .ensure_summary(record) -> CatalogRecord
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Awaitable, TypeVar

from carcatalog.config.settings import PipelineSettings, SourceSettings
from carcatalog.errors import (
    CatalogError,
    DocumentReadError,
    ExtractionEmptyError,
    GatewayError,
    InvalidUrlError,
    NetworkFetchError,
    NotFoundError,
    PersistenceError,
)
from carcatalog.gateway.service import ExtractionGateway
from carcatalog.models import CatalogRecord, SourceKind
from carcatalog.pipeline.context import AppContext, UnsavedRun
from carcatalog.pipeline.progress import EXTRACTION_STAGES, ProgressState, Stage
from carcatalog.source.pdf_renderer import read_pdf, render_pdf_pages
from carcatalog.source.types import SourceDocument
from carcatalog.source.web_fetcher import WebFetcher, validate_url

logger = logging.getLogger(__name__)

__all__ = ["PipelineOrchestrator", "PipelineResult"]

T = TypeVar("T")


@dataclass
class PipelineResult:
    """Outcome of one pipeline run."""

    success: bool = False
    record: CatalogRecord | None = None
    text_succeeded: bool = False
    records_succeeded: bool = False
    summary_succeeded: bool = False
    errors: list[str] = field(default_factory=list)


class PipelineOrchestrator:
    """Drives extraction runs and owns every progress transition."""

    def __init__(
        self,
        context: AppContext,
        gateway: ExtractionGateway,
        fetcher: WebFetcher,
        source_settings: SourceSettings,
        pipeline_settings: PipelineSettings,
    ) -> None:
        self.context = context
        self.gateway = gateway
        self.fetcher = fetcher
        self.source_settings = source_settings
        self.pipeline_settings = pipeline_settings
        self._reset_handle: asyncio.TimerHandle | None = None

    # ------------------------------------------------------------------
    # Entry points
    # ------------------------------------------------------------------

    async def process_pdf(self, pdf_path: Path) -> PipelineResult:
        """Run the full pipeline for a PDF file on disk."""
        self._begin()
        return await self._guarded(self._process_pdf_file(pdf_path))

    async def process_pdf_bytes(self, data: bytes, file_name: str) -> PipelineResult:
        """Run the full pipeline for PDF bytes already in memory."""
        self._begin()
        return await self._guarded(self._process_pdf_data(data, file_name))

    async def process_url(self, url: str) -> PipelineResult:
        """Run the pipeline for a web page; the converting stage is skipped."""
        self._begin()
        return await self._guarded(self._process_url(url))

    async def retry_save(self) -> PipelineResult:
        """Save the draft left behind by a run whose save failed.

        Raises:
            RuntimeError: If there is nothing to save or a run is in flight.
        """
        unsaved = self.context.unsaved
        if unsaved is None:
            raise RuntimeError("no unsaved extraction to retry")
        if self.context.progress.is_busy:
            raise RuntimeError("an extraction run is already in progress")

        result = PipelineResult(
            text_succeeded=bool(unsaved.record.raw_text),
            records_succeeded=bool(unsaved.record.raw_json),
            summary_succeeded=unsaved.record.summary is not None,
        )
        logger.info("Retrying save of %s", unsaved.record.file_name)
        return self._save(result)

    async def ensure_summary(self, record: CatalogRecord) -> CatalogRecord:
        """Generate and persist a summary for a stored record lacking one.

        Returns the record with its summary when one was produced, otherwise
        *record* unchanged. A record deleted in the meantime is tolerated.
        """
        if record.summary is not None or not record.raw_text.strip():
            return record

        summary = await self._try_summary(record.raw_text)
        if summary is None:
            return record

        updated = record.model_copy(update={"summary": summary})
        if record.id is None:
            return updated

        try:
            # Re-read so a concurrent edit or delete is not overwritten blindly
            stored = self.context.store.get(record.id)
            updated = self.context.store.update(
                stored.model_copy(update={"summary": summary})
            )
        except NotFoundError:
            logger.info(
                "Catalog %d was deleted before its summary could be saved", record.id
            )
        except PersistenceError as e:
            logger.warning("Summary for catalog %d not saved: %s", record.id, e.detail)
        return updated

    def cancel_pending(self) -> None:
        """Cancel the pending done -> idle revert, if any."""
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    async def _guarded(self, work: Awaitable[PipelineResult]) -> PipelineResult:
        """Await a run, turning any unexpected exception into the ERROR state."""
        try:
            return await work
        except Exception as e:
            logger.error("Extraction run raised unexpectedly", exc_info=e)
            message = f"Unexpected error during extraction: {e}"
            return self._fail(PipelineResult(errors=[message]), message)

    async def _process_pdf_file(self, pdf_path: Path) -> PipelineResult:
        try:
            data = await asyncio.to_thread(read_pdf, pdf_path)
        except DocumentReadError as e:
            return self._fail(PipelineResult(errors=[e.user_message]), e.user_message)
        return await self._process_pdf_data(data, pdf_path.name)

    async def _process_url(self, url: str) -> PipelineResult:
        result = PipelineResult()

        try:
            label = validate_url(url)
        except InvalidUrlError as e:
            logger.warning("Rejected URL %r", url)
            result.errors.append(e.user_message)
            return self._fail(result, e.user_message)

        try:
            text = await self.fetcher.fetch(url)
        except (InvalidUrlError, NetworkFetchError) as e:
            result.errors.append(e.user_message)
            return self._fail(result, e.user_message)

        self._complete_stage(Stage.READING)
        document = SourceDocument(kind=SourceKind.URL, label=label, text=text)
        return await self._extract_and_save(document, result)

    async def _process_pdf_data(self, data: bytes, file_name: str) -> PipelineResult:
        result = PipelineResult()
        self._complete_stage(Stage.READING, next_stage=Stage.CONVERTING)

        try:
            pages = await asyncio.to_thread(
                render_pdf_pages, data, self.source_settings, file_name
            )
        except DocumentReadError as e:
            result.errors.append(e.user_message)
            return self._fail(result, e.user_message)

        self._complete_stage(Stage.CONVERTING)
        document = SourceDocument(kind=SourceKind.PDF, label=file_name, pages=pages)
        return await self._extract_and_save(document, result)

    async def _extract_and_save(
        self, document: SourceDocument, result: PipelineResult
    ) -> PipelineResult:
        self._update(stage=Stage.EXTRACTING_TEXT, active=EXTRACTION_STAGES)

        text_outcome, records_outcome = await asyncio.gather(
            self._run_branch(Stage.EXTRACTING_TEXT, self.gateway.extract_text(document)),
            self._run_branch(
                Stage.EXTRACTING_JSON, self.gateway.extract_records(document)
            ),
            return_exceptions=True,
        )

        raw_text = ""
        if isinstance(text_outcome, BaseException):
            result.errors.append(_branch_message("text", text_outcome))
        else:
            raw_text = text_outcome
            result.text_succeeded = True

        specs, raw_json = [], ""
        if isinstance(records_outcome, BaseException):
            result.errors.append(_branch_message("records", records_outcome))
        else:
            specs, raw_json = records_outcome
            result.records_succeeded = True

        if not (result.text_succeeded or result.records_succeeded):
            return self._fail(result, "\n".join(result.errors))

        draft = CatalogRecord(
            file_name=document.label,
            extracted_data=specs,
            raw_json=raw_json,
            raw_text=raw_text,
        )
        if not draft.has_content:
            message = ExtractionEmptyError().user_message
            result.errors.append(message)
            return self._fail(result, message)

        if specs:
            self.context.chat = self.gateway.create_chat_session(specs)

        summary = None
        if raw_text.strip():
            summary = await self._try_summary(raw_text)
            result.summary_succeeded = summary is not None

        record = draft.model_copy(update={"summary": summary})
        page_images = [page.data for page in document.pages] or None
        self.context.unsaved = UnsavedRun(record=record, page_images=page_images)
        self.context.current = record
        self.context.dirty = False

        logger.info(
            "Extraction finished for %s: text=%s, records=%d, summary=%s",
            document.label,
            result.text_succeeded,
            len(specs),
            result.summary_succeeded,
        )
        return self._save(result)

    def _save(self, result: PipelineResult) -> PipelineResult:
        unsaved = self.context.unsaved
        self._update(stage=Stage.SAVING, active=frozenset({Stage.SAVING}), error=None)

        try:
            saved = self.context.store.create(unsaved.record, unsaved.page_images)
        except PersistenceError as e:
            result.errors.append(e.user_message)
            return self._fail(result, e.user_message)
        except Exception as e:
            # The draft stays on the context for retry_save
            logger.error("Saving %s raised unexpectedly", unsaved.record.file_name, exc_info=e)
            message = f"The catalog was not saved: {e}"
            result.errors.append(message)
            return self._fail(result, message)

        self.context.unsaved = None
        self.context.current = saved
        try:
            self.context.refresh_catalogs()
        except PersistenceError as e:
            logger.warning("Saved catalog %d but could not reload list: %s", saved.id, e.detail)

        result.success = True
        result.record = saved
        self._complete_stage(Stage.SAVING, next_stage=Stage.DONE)
        self._schedule_reset()
        return result

    async def _run_branch(self, stage: Stage, work: Awaitable[T]) -> T:
        """Await one extraction branch, updating progress as it settles."""
        try:
            outcome = await work
        except BaseException:
            self._leave_branch(stage, succeeded=False)
            raise
        self._leave_branch(stage, succeeded=True)
        return outcome

    async def _try_summary(self, text: str) -> str | None:
        try:
            return await self.gateway.summarize(text)
        except GatewayError as e:
            logger.warning("Summary generation failed (%s): %s", e.kind.value, e.user_message)
            return None
        except Exception as e:
            logger.error("Summary generation raised unexpectedly", exc_info=e)
            return None

    # ------------------------------------------------------------------
    # Progress transitions
    # ------------------------------------------------------------------

    def _begin(self) -> None:
        if self.context.progress.is_busy:
            raise RuntimeError("an extraction run is already in progress")

        self.cancel_pending()
        self.context.unsaved = None
        self.context.current = None
        self.context.chat = None
        self.context.dirty = False
        self.context.set_progress(
            ProgressState(stage=Stage.READING, active=frozenset({Stage.READING}))
        )

    def _update(self, **changes) -> None:
        self.context.set_progress(replace(self.context.progress, **changes))

    def _complete_stage(self, stage: Stage, next_stage: Stage | None = None) -> None:
        progress = self.context.progress
        changes: dict = {
            "completed": progress.completed | {stage},
            "active": progress.active - {stage},
        }
        if next_stage is not None:
            changes["stage"] = next_stage
            if next_stage not in (Stage.DONE, Stage.IDLE):
                changes["active"] = changes["active"] | {next_stage}
        self._update(**changes)

    def _leave_branch(self, stage: Stage, succeeded: bool) -> None:
        progress = self.context.progress
        active = progress.active - {stage}
        completed = progress.completed | {stage} if succeeded else progress.completed

        canonical = progress.stage
        if canonical not in active and active:
            # The other branch is still running; show it as the current stage
            canonical = next(iter(active & EXTRACTION_STAGES), canonical)
        self._update(stage=canonical, active=active, completed=completed)

    def _fail(self, result: PipelineResult, message: str) -> PipelineResult:
        logger.error("Pipeline run failed: %s", message.replace("\n", " | "))
        result.success = False
        self._update(stage=Stage.ERROR, active=frozenset(), error=message)
        return result

    def _schedule_reset(self) -> None:
        delay = self.pipeline_settings.done_reset_seconds
        if delay <= 0:
            return
        self._reset_handle = asyncio.get_running_loop().call_later(
            delay, self._reset_if_done
        )

    def _reset_if_done(self) -> None:
        self._reset_handle = None
        if self.context.progress.stage is Stage.DONE:
            self.context.set_progress(ProgressState.initial())


def _branch_message(branch: str, error: BaseException) -> str:
    """User-facing message for a failed branch; re-raises non-Exception errors."""
    if isinstance(error, CatalogError):
        logger.warning("%s branch failed (%s): %s", branch, error.kind.value, error.user_message)
        return error.user_message
    if not isinstance(error, Exception):
        raise error
    logger.error("%s branch raised unexpectedly", branch, exc_info=error)
    return f"Unexpected error during {branch} extraction: {error}"
