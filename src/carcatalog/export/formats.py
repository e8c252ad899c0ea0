"""JSON and CSV renderings of specification rows.

Both formats work on the rows as currently filtered. JSON uses the camelCase
field names shared with the extraction prompt; CSV uses a fixed, human
readable header row in ``SPEC_FIELDS`` order.
"""

from __future__ import annotations

import csv
import io
import json
from typing import Any, Iterable

from carcatalog.models import SPEC_FIELDS, CarSpecification

CSV_HEADERS: dict[str, str] = {
    "manufacturer": "Manufacturer",
    "model_name": "Model Name",
    "grade": "Grade",
    "price": "Price",
    "issue_date": "Issue Date",
    "engine_type": "Engine Type",
    "displacement": "Displacement",
    "max_power": "Max Power",
    "max_torque": "Max Torque",
    "fuel_economy": "Fuel Economy",
    "options": "Options",
}


def to_json(specs: Iterable[CarSpecification]) -> str:
    """Render *specs* as an indented JSON array."""
    data = [spec.model_dump(by_alias=True, mode="json") for spec in specs]
    return json.dumps(data, ensure_ascii=False, indent=2)


def to_csv(specs: Iterable[CarSpecification]) -> str:
    """Render *specs* as CSV with a header row.

    Cells containing a comma, quote or newline are quoted with embedded
    quotes doubled. Missing values are empty cells and rows are separated
    by ``"\\n"`` with no trailing newline.
    """
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADERS[name] for name in SPEC_FIELDS)
    for spec in specs:
        writer.writerow(_cell(getattr(spec, name)) for name in SPEC_FIELDS)
    return buffer.getvalue().removesuffix("\n")


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, list):
        return ",".join(str(item) for item in value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
