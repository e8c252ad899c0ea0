"""Pydantic v2 model for validating structured extraction output.

ExtractedSpecification is the contract between the model's JSON response
and the stored CarSpecification rows. The four required fields must be
present and non-null; every other field must be an explicit value or null.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator
from pydantic.alias_generators import to_camel


class ExtractedSpecification(BaseModel):
    """One item of the model's record array, before an id is assigned."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    manufacturer: str
    model_name: str
    grade: str
    price: float
    issue_date: Optional[str] = None
    engine_type: Optional[str] = None
    displacement: Optional[str] = None
    max_power: Optional[str] = None
    max_torque: Optional[str] = None
    fuel_economy: Optional[str] = None
    options: Optional[list[str]] = None

    @field_validator("manufacturer", "model_name", "grade")
    @classmethod
    def required_text_must_not_be_blank(cls, v: str) -> str:
        """Reject empty strings for required text fields."""
        if not v.strip():
            raise ValueError("required field must be a non-empty string")
        return v
