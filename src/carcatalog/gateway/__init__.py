"""Extraction gateway -- the model calls behind the pipeline.

Public API:
    ExtractionGateway(settings)
        .extract_text(document) -> str
        .extract_records(document) -> (records, raw_json)
        .summarize(text) -> str
        .create_chat_session(records) -> ChatSession
"""

from .chat import ChatSession
from .service import ExtractionGateway, parse_records, strip_code_fences, translate_api_error

__all__ = [
    "ChatSession",
    "ExtractionGateway",
    "parse_records",
    "strip_code_fences",
    "translate_api_error",
]
