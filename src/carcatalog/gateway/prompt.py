"""Prompt text for the extraction gateway.

Builds the instructions for the three extraction tasks and the chat system
prompt, plus a human-readable description of the record JSON contract that
mirrors the ExtractedSpecification schema field for field.
"""

from __future__ import annotations

import json
from typing import Sequence

from carcatalog.models import CarSpecification

TEXT_EXTRACTION_PROMPT = """\
Transcribe all of the text printed in the catalog provided.
Preserve the reading order and, as far as possible, the layout of each page,
including headers, footers, footnotes and table cells.
Concatenate the pages into one continuous block of text and output only
the transcription, with no commentary."""

SUMMARY_PROMPT_TEMPLATE = """\
Below is the full text of a car catalog. Write a short narrative summary
(3-5 sentences) covering the manufacturer, the models and grades offered,
the powertrains, and any notable prices or options. Use only facts present
in the text.

<catalog_text>
{text}
</catalog_text>"""

CHAT_SYSTEM_TEMPLATE = """\
You are an expert on the car catalog data below, which was extracted from a
catalog the user uploaded. Answer the user's questions using only this data.
If the data does not contain the requested information, say that it cannot
be determined from the catalog data rather than guessing.

Data:
{data}"""


def get_json_schema_description() -> str:
    """Return a readable JSON description of the record array contract.

    Formatted as an annotated example rather than formal JSON Schema --
    optimised for model consumption.
    """
    return """\
[
  {
    "manufacturer": "Manufacturer name, e.g. \\"Toyota\\" (REQUIRED)",
    "modelName": "Model name, e.g. \\"Prius\\" (REQUIRED)",
    "grade": "Grade / trim, e.g. \\"G\\" (REQUIRED)",
    "price": 3200000,
    "issueDate": "Catalog issue date, e.g. \\"January 2023\\", or null",
    "engineType": "Engine type, e.g. \\"1.8L 2ZR-FXE\\", or null",
    "displacement": "Total displacement, e.g. \\"1.797L\\", or null",
    "maxPower": "Maximum power, e.g. \\"72kW(98PS)/5,200rpm\\", or null",
    "maxTorque": "Maximum torque, e.g. \\"142N-m/3,600rpm\\", or null",
    "fuelEconomy": "Fuel economy (WLTC mode, km/L), or null",
    "options": ["Main factory or package options selectable for this grade"]
  }
]

"price" is the base vehicle price as a number (REQUIRED).
"options" is a list of strings, or null when the catalog lists none."""


def build_records_prompt() -> str:
    """Return the instruction for structured record extraction."""
    return f"""\
You are an automotive data analyst. From the car catalog provided, extract
the manufacturer, the catalog issue date, the specifications of every model
and grade, and the main selectable options (factory options, packages).
The issue date is often printed on the front or back cover or in a corner
of the specification table.

Analyse every page and list every model/grade variation you can find.
Use null for any field the catalog does not state -- never invent values.

Respond with ONLY a JSON array matching this structure:

{get_json_schema_description()}"""


def build_summary_prompt(text: str) -> str:
    """Fill the summary template with previously extracted text."""
    return SUMMARY_PROMPT_TEMPLATE.format(text=text)


def build_chat_system_prompt(records: Sequence[CarSpecification]) -> str:
    """Embed the full record set as indented JSON in the chat system prompt."""
    data = json.dumps(
        [r.model_dump(by_alias=True, mode="json") for r in records],
        ensure_ascii=False,
        indent=2,
    )
    return CHAT_SYSTEM_TEMPLATE.format(data=data)
