"""Shared types for document sources.

Defines PageImage and SourceDocument, the page-unit bundle handed from the
source adapters to the extraction gateway.
"""

from dataclasses import dataclass, field

from carcatalog.models import SourceKind


@dataclass
class PageImage:
    """One rendered PDF page.

    Attributes:
        page_number: 1-based page index in the source document.
        data: Encoded image bytes.
        media_type: MIME type of ``data``.
    """

    page_number: int
    data: bytes
    media_type: str = "image/jpeg"


@dataclass
class SourceDocument:
    """Page units for one catalog: images for PDFs, one text blob for URLs.

    Attributes:
        kind: Which adapter produced the document.
        label: File name, or the host for URL sources.
        pages: Rendered page images in page order (empty for URLs).
        text: Fetched page text (None for PDFs).
    """

    kind: SourceKind
    label: str
    pages: list[PageImage] = field(default_factory=list)
    text: str | None = None

    @property
    def page_count(self) -> int:
        return len(self.pages)
