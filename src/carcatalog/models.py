"""Pydantic models for extracted car specifications and stored catalogs.

CarSpecification is one product variant row extracted from a catalog.
CatalogRecord is one persisted extraction run and everything derived from it.

JSON serialisation uses camelCase aliases (``modelName``, ``rawJson``, ...)
so exported files and model prompts share one vocabulary, while Python code
works with snake_case attributes.
"""

import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# Editable specification fields, in CSV column order
SPEC_FIELDS: tuple[str, ...] = (
    "manufacturer",
    "model_name",
    "grade",
    "price",
    "issue_date",
    "engine_type",
    "displacement",
    "max_power",
    "max_torque",
    "fuel_economy",
    "options",
)

# Fields the extraction contract requires on every item
REQUIRED_SPEC_FIELDS: tuple[str, ...] = ("manufacturer", "model_name", "grade", "price")


class SourceKind(Enum):
    """Where a catalog came from."""

    PDF = "pdf"
    URL = "url"


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CarSpecification(_CamelModel):
    """One extracted product variant (a model/grade combination).

    Every descriptive field is independently nullable: absent means the
    source document did not state it, never a guess.
    """

    id: str
    manufacturer: Optional[str] = None
    model_name: Optional[str] = None
    grade: Optional[str] = None
    price: Optional[float] = None
    issue_date: Optional[str] = None
    engine_type: Optional[str] = None
    displacement: Optional[str] = None
    max_power: Optional[str] = None
    max_torque: Optional[str] = None
    fuel_economy: Optional[str] = None
    options: Optional[list[str]] = None


class CatalogRecord(_CamelModel):
    """A persisted extraction run.

    ``id`` is None until the store assigns one on creation. ``raw_json`` and
    ``raw_text`` default to the empty string (a failed branch), which is
    distinct from ``summary`` and ``images`` being absent.
    """

    id: Optional[int] = None
    file_name: str
    created_at: datetime.datetime = Field(default_factory=datetime.datetime.now)
    extracted_data: list[CarSpecification] = Field(default_factory=list)
    raw_json: str = ""
    raw_text: str = ""
    summary: Optional[str] = None
    images: Optional[list[str]] = None

    @property
    def has_content(self) -> bool:
        """Return True if either extraction branch produced something."""
        return bool(self.raw_text.strip()) or len(self.extracted_data) > 0

    def find_spec(self, spec_id: str) -> CarSpecification | None:
        """Return the specification row with *spec_id*, or None."""
        for spec in self.extracted_data:
            if spec.id == spec_id:
                return spec
        return None


class ChatMessage(BaseModel):
    """One turn of a catalog chat conversation."""

    role: str  # "user" or "assistant"
    content: str
