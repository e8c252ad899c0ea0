"""Document source adapters -- turn a PDF file or a URL into page units.

Public API:
    read_pdf(path) -> bytes
    render_pdf_pages(data, settings) -> list[PageImage]
    validate_url(url) -> host label
    WebFetcher(settings).fetch(url) -> page text
"""

from .pdf_renderer import read_pdf, render_pdf_pages
from .types import PageImage, SourceDocument
from .web_fetcher import WebFetcher, html_to_text, validate_url

__all__ = [
    "PageImage",
    "SourceDocument",
    "WebFetcher",
    "html_to_text",
    "read_pdf",
    "render_pdf_pages",
    "validate_url",
]
