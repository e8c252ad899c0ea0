"""PDF reading and page rendering with PyMuPDF.

Reading pulls the raw bytes off disk; rendering rasterises each page in
order to a compact JPEG at fixed scale and quality. Both raise
DocumentReadError on input that is not a usable PDF.

Edge cases handled:
- Unreadable files: OSError on read becomes DocumentReadError.
- Corrupt or non-PDF bytes: rejected when PyMuPDF cannot open them.
- Encrypted PDFs: rejected, pages cannot be rendered without a password.
- Empty and oversized PDFs: zero pages or more than max_pages are rejected.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pymupdf

from carcatalog.config.settings import SourceSettings
from carcatalog.errors import DocumentReadError
from carcatalog.source.types import PageImage

logger = logging.getLogger(__name__)


def read_pdf(pdf_path: Path) -> bytes:
    """Read the raw bytes of a PDF file.

    Args:
        pdf_path: Path to the PDF file on disk.

    Returns:
        The file contents.

    Raises:
        DocumentReadError: If the file cannot be read.
    """
    try:
        data = pdf_path.read_bytes()
    except OSError as e:
        logger.error("Cannot read PDF %s: %s", pdf_path, e)
        raise DocumentReadError(
            f"Could not read {pdf_path.name}.", detail=str(e)
        ) from e

    logger.info("Read %d bytes from %s", len(data), pdf_path.name)
    return data


def render_pdf_pages(
    data: bytes,
    settings: SourceSettings,
    label: str = "document",
) -> list[PageImage]:
    """Render every page of a PDF to a JPEG image, in page order.

    Args:
        data: Raw PDF bytes.
        settings: Source configuration (render_scale, jpeg_quality, max_pages).
        label: Name used in log messages.

    Returns:
        One PageImage per page.

    Raises:
        DocumentReadError: If the bytes are not a renderable PDF.
    """
    try:
        doc = pymupdf.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        # FileDataError and EmptyFileError both derive from RuntimeError
        logger.error("Cannot open PDF %s: %s", label, e)
        raise DocumentReadError(detail=str(e)) from e

    try:
        if doc.needs_pass:
            logger.warning("Encrypted PDF rejected: %s", label)
            raise DocumentReadError(
                "The PDF is password protected and cannot be processed."
            )

        page_count = len(doc)
        if page_count == 0:
            raise DocumentReadError("The PDF has no pages.")
        if page_count > settings.max_pages:
            logger.warning(
                "Oversized PDF rejected (%d pages > %d max): %s",
                page_count,
                settings.max_pages,
                label,
            )
            raise DocumentReadError(
                f"The PDF has {page_count} pages; at most "
                f"{settings.max_pages} can be processed."
            )

        matrix = pymupdf.Matrix(settings.render_scale, settings.render_scale)
        pages: list[PageImage] = []

        for page_num in range(page_count):
            pix = doc[page_num].get_pixmap(matrix=matrix, alpha=False)
            pages.append(
                PageImage(
                    page_number=page_num + 1,
                    data=pix.tobytes("jpeg", jpg_quality=settings.jpeg_quality),
                )
            )
            logger.debug("Rendered page %d/%d of %s", page_num + 1, page_count, label)
    except RuntimeError as e:
        logger.error("Rendering failed for %s: %s", label, e)
        raise DocumentReadError(detail=str(e)) from e
    finally:
        doc.close()

    logger.info(
        "Rendered %d pages of %s (scale=%.2f, quality=%d, %d bytes total)",
        len(pages),
        label,
        settings.render_scale,
        settings.jpeg_quality,
        sum(len(p.data) for p in pages),
    )
    return pages
