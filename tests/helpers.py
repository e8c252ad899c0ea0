"""Test helpers: in-memory PDFs, sample records and a scripted gateway."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pymupdf

from carcatalog.config import GatewaySettings
from carcatalog.gateway.chat import ChatSession
from carcatalog.gateway.prompt import build_chat_system_prompt
from carcatalog.models import CarSpecification


def make_pdf(page_texts: list[str]) -> bytes:
    """Build a PDF in memory with one line of text per page."""
    doc = pymupdf.open()
    for text in page_texts:
        page = doc.new_page()
        page.insert_text((72, 72), text)
    data = doc.tobytes()
    doc.close()
    return data


def make_spec(index: int = 0, **overrides) -> CarSpecification:
    values = {
        "id": f"1700000000000-{index}",
        "manufacturer": "Toyota",
        "model_name": "Prius",
        "grade": f"G{index}",
        "price": 3_200_000.0 + index,
        "issue_date": "2023-01",
        "options": ["Sunroof", "Navigation"],
    }
    values.update(overrides)
    return CarSpecification(**values)


def text_message(text: str) -> SimpleNamespace:
    """Stand-in for an anthropic Message with a single text block."""
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=text)])


class FakeGateway:
    """Gateway double with scripted per-task outcomes.

    Each task attribute is an AsyncMock, so tests set ``return_value`` or
    ``side_effect`` and inspect calls directly.
    """

    def __init__(self, settings: GatewaySettings) -> None:
        self.settings = settings
        self.extract_text = AsyncMock(return_value="Page1 Page2 Page3")
        self.extract_records = AsyncMock(
            return_value=([make_spec(0)], '[{"manufacturer": "Toyota"}]')
        )
        self.summarize = AsyncMock(return_value="A short summary.")
        self.complete = AsyncMock(return_value="The G0 grade is cheapest.")
        self.close = AsyncMock()

    def create_chat_session(self, records):
        return ChatSession(self, build_chat_system_prompt(records))
