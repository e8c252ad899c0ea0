"""Progress state for an extraction run.

ProgressState is pure data: it is read by the presentation layer and
replaced wholesale by the orchestrator, which owns every transition rule.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class Stage(Enum):
    """Named points in the extraction state machine."""

    IDLE = "idle"
    READING = "reading"
    CONVERTING = "converting"
    EXTRACTING_TEXT = "extracting_text"
    EXTRACTING_JSON = "extracting_json"
    SAVING = "saving"
    DONE = "done"
    ERROR = "error"


# Stages a run walks through, in display order
RUN_STAGES: tuple[Stage, ...] = (
    Stage.READING,
    Stage.CONVERTING,
    Stage.EXTRACTING_TEXT,
    Stage.EXTRACTING_JSON,
    Stage.SAVING,
)

EXTRACTION_STAGES = frozenset({Stage.EXTRACTING_TEXT, Stage.EXTRACTING_JSON})


@dataclass(frozen=True)
class ProgressState:
    """Snapshot of one run's progress.

    Attributes:
        stage: The canonical current stage.
        completed: Stages fully completed in this run; grows monotonically
            and starts empty on each new run.
        active: Stages currently executing. Both extraction stages appear
            here together while the two branches run concurrently.
        error: User-facing message when ``stage`` is ERROR.
    """

    stage: Stage = Stage.IDLE
    completed: frozenset[Stage] = field(default_factory=frozenset)
    active: frozenset[Stage] = field(default_factory=frozenset)
    error: str | None = None

    @classmethod
    def initial(cls) -> ProgressState:
        return cls()

    @property
    def is_busy(self) -> bool:
        """True while a run is in flight (new runs must be refused)."""
        return self.stage not in (Stage.IDLE, Stage.DONE, Stage.ERROR)

    @property
    def is_at_rest(self) -> bool:
        return self.stage in (Stage.IDLE, Stage.DONE)

    def status_of(self, stage: Stage) -> str:
        """Return ``"completed"``, ``"in_progress"`` or ``"pending"`` for display."""
        if stage in self.completed:
            return "completed"
        if stage in self.active or stage is self.stage:
            return "in_progress"
        return "pending"
