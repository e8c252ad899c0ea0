"""Per-application context shared by the orchestrator and the session.

Holds the progress state, the loaded catalog list and the catalog on screen
as explicit fields instead of module-level globals. One context is built per
application session and discarded on shutdown.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, Optional

from carcatalog.gateway.chat import ChatSession
from carcatalog.models import CatalogRecord
from carcatalog.pipeline.progress import ProgressState
from carcatalog.store.repository import CatalogStore

logger = logging.getLogger(__name__)

ProgressListener = Callable[[ProgressState], None]


@dataclass
class UnsavedRun:
    """A run whose extraction finished but whose save failed."""

    record: CatalogRecord
    page_images: Optional[list[bytes]] = None


@dataclass
class AppContext:
    """Mutable application state.

    Attributes:
        store: The catalog store client.
        progress: Current run progress; replaced only by the orchestrator.
        catalogs: Stored catalogs as last loaded, newest first.
        current: The catalog being viewed or just extracted (working copy).
        chat: Chat session seeded with ``current``'s records, if any.
        unsaved: Extraction output awaiting a successful save.
        dirty: True when ``current`` holds edits not yet saved.
        listeners: Callbacks invoked with every new progress state.
    """

    store: CatalogStore
    progress: ProgressState = field(default_factory=ProgressState.initial)
    catalogs: list[CatalogRecord] = field(default_factory=list)
    current: Optional[CatalogRecord] = None
    chat: Optional[ChatSession] = None
    unsaved: Optional[UnsavedRun] = None
    dirty: bool = False
    listeners: list[ProgressListener] = field(default_factory=list)

    def set_progress(self, state: ProgressState) -> None:
        """Replace the progress state and notify listeners."""
        self.progress = state
        for listener in self.listeners:
            listener(state)

    def refresh_catalogs(self) -> list[CatalogRecord]:
        """Reload ``catalogs`` from the store."""
        self.catalogs = self.store.list_all()
        logger.debug("Loaded %d catalogs", len(self.catalogs))
        return self.catalogs
