"""Blob storage for catalog page previews.

Page images are written as files under ``<root>/<key>/page-0001.jpg`` and
records keep only the path references, so stored catalog rows stay small.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import Sequence

logger = logging.getLogger(__name__)


class PreviewStore:
    """Filesystem-backed preview blobs keyed by catalog key."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root).resolve()

    def save(self, key: str, images: Sequence[bytes]) -> list[str]:
        """Write *images* for catalog *key* and return their references.

        Uses a ``.tmp`` suffix and renames on completion so a crash never
        leaves a half-written image behind a valid reference.
        """
        catalog_dir = self.root / key
        catalog_dir.mkdir(parents=True, exist_ok=True)

        refs: list[str] = []
        for index, data in enumerate(images, start=1):
            dest = catalog_dir / f"page-{index:04d}.jpg"
            tmp = dest.with_suffix(".jpg.tmp")
            tmp.write_bytes(data)
            tmp.replace(dest)
            refs.append(str(dest))

        logger.debug("Saved %d previews for catalog %s", len(refs), key)
        return refs

    def delete(self, key: str) -> None:
        """Remove every preview stored for catalog *key* (no-op if none)."""
        catalog_dir = self.root / key
        if catalog_dir.exists():
            shutil.rmtree(catalog_dir)
            logger.debug("Deleted previews for catalog %s", key)
