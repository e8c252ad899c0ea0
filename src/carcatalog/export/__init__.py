"""Export and filtering side channels for extracted specifications."""

from carcatalog.export.filters import (
    FilterChoices,
    FilterCriteria,
    filter_choices,
    filter_specs,
)
from carcatalog.export.formats import CSV_HEADERS, to_csv, to_json

__all__ = [
    "CSV_HEADERS",
    "FilterChoices",
    "FilterCriteria",
    "filter_choices",
    "filter_specs",
    "to_csv",
    "to_json",
]
