"""Filtering of specification rows for display and export.

Manufacturer, model name and issue date match exactly when set; the option
keyword is a case-insensitive substring match against any option. An unset
criterion (None or empty string) matches everything.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional

from carcatalog.models import CarSpecification


@dataclass(frozen=True)
class FilterCriteria:
    manufacturer: Optional[str] = None
    model_name: Optional[str] = None
    issue_date: Optional[str] = None
    option: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not (self.manufacturer or self.model_name or self.issue_date or self.option)


@dataclass(frozen=True)
class FilterChoices:
    """Distinct values offered for each exact-match criterion, sorted."""

    manufacturers: list[str]
    model_names: list[str]
    issue_dates: list[str]


def matches(spec: CarSpecification, criteria: FilterCriteria) -> bool:
    if criteria.manufacturer and spec.manufacturer != criteria.manufacturer:
        return False
    if criteria.model_name and spec.model_name != criteria.model_name:
        return False
    if criteria.issue_date and spec.issue_date != criteria.issue_date:
        return False
    if criteria.option:
        keyword = criteria.option.lower()
        if not any(keyword in opt.lower() for opt in spec.options or []):
            return False
    return True


def filter_specs(
    specs: Iterable[CarSpecification], criteria: FilterCriteria
) -> list[CarSpecification]:
    """Return the rows of *specs* matching *criteria*, order preserved."""
    return [spec for spec in specs if matches(spec, criteria)]


def filter_choices(
    specs: Iterable[CarSpecification], manufacturer: Optional[str] = None
) -> FilterChoices:
    """Collect the selectable values for the exact-match filters.

    Model names are narrowed to *manufacturer* when one is chosen, so the
    model list never offers a name that cannot match.
    """
    specs = list(specs)
    narrowed = (
        [s for s in specs if s.manufacturer == manufacturer] if manufacturer else specs
    )
    return FilterChoices(
        manufacturers=_distinct(s.manufacturer for s in specs),
        model_names=_distinct(s.model_name for s in narrowed),
        issue_dates=_distinct(s.issue_date for s in specs),
    )


def _distinct(values: Iterable[Optional[str]]) -> list[str]:
    return sorted({v for v in values if v})
