"""Shared fixtures: isolated settings, a temp-dir store and a scripted gateway."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from carcatalog.config import GatewaySettings, PipelineSettings, SourceSettings
from carcatalog.pipeline import AppContext, PipelineOrchestrator
from carcatalog.source import WebFetcher
from carcatalog.store import (
    CatalogStore,
    PreviewStore,
    get_engine,
    get_session_factory,
    init_db,
)
from tests.helpers import FakeGateway, make_pdf, text_message


@pytest.fixture
def source_settings() -> SourceSettings:
    return SourceSettings(
        render_scale=0.5,
        jpeg_quality=60,
        max_pages=10,
        fetch_timeout_seconds=5,
        fetch_proxy_url="",
        strip_markup=True,
    )


@pytest.fixture
def gateway_settings() -> GatewaySettings:
    return GatewaySettings(
        api_key="test-key",
        model="test-model",
        extraction_timeout_seconds=5,
        summary_timeout_seconds=5,
        chat_timeout_seconds=5,
        rate_limit_retries=0,
    )


@pytest.fixture
def pipeline_settings(tmp_path: Path) -> PipelineSettings:
    return PipelineSettings(
        db_path=str(tmp_path / "catalogs.db"),
        preview_dir=str(tmp_path / "previews"),
        log_dir=str(tmp_path / "logs"),
        done_reset_seconds=0,
    )


@pytest.fixture
def engine(pipeline_settings):
    engine = get_engine(pipeline_settings.db_path)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def previews(pipeline_settings) -> PreviewStore:
    return PreviewStore(pipeline_settings.preview_dir)


@pytest.fixture
def store(engine, previews) -> CatalogStore:
    return CatalogStore(get_session_factory(engine), previews)


@pytest.fixture
def mock_client() -> MagicMock:
    """AsyncAnthropic double; ``messages.create`` is an AsyncMock."""
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=text_message("ok"))
    client.close = AsyncMock()
    return client


@pytest.fixture
def fake_gateway(gateway_settings) -> FakeGateway:
    return FakeGateway(gateway_settings)


@pytest.fixture
def fetcher(source_settings) -> WebFetcher:
    # Network is never reached: URL tests swap in a MockTransport fetcher
    return WebFetcher(source_settings)


@pytest.fixture
def context(store) -> AppContext:
    return AppContext(store=store)


@pytest.fixture
def orchestrator(context, fake_gateway, fetcher, source_settings, pipeline_settings):
    return PipelineOrchestrator(
        context, fake_gateway, fetcher, source_settings, pipeline_settings
    )


@pytest.fixture
def three_page_pdf() -> bytes:
    return make_pdf(["Page1", "Page2", "Page3"])
