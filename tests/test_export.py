"""Filtering and JSON/CSV export of specification rows."""

from __future__ import annotations

import json

from carcatalog.export import (
    FilterCriteria,
    filter_choices,
    filter_specs,
    to_csv,
    to_json,
)
from tests.helpers import make_spec

SPECS = [
    make_spec(0, manufacturer="Toyota", model_name="Prius", issue_date="2023-01",
              options=["Sunroof", "Navigation"]),
    make_spec(1, manufacturer="Toyota", model_name="Aqua", issue_date="2023-04",
              options=["Heated seats"]),
    make_spec(2, manufacturer="Honda", model_name="Fit", issue_date="2023-01",
              options=None),
]


class TestFilterSpecs:
    def test_empty_criteria_keeps_everything(self):
        assert filter_specs(SPECS, FilterCriteria()) == SPECS
        assert FilterCriteria().is_empty

    def test_exact_manufacturer_match(self):
        result = filter_specs(SPECS, FilterCriteria(manufacturer="Toyota"))
        assert [s.model_name for s in result] == ["Prius", "Aqua"]

    def test_manufacturer_match_is_not_substring(self):
        assert filter_specs(SPECS, FilterCriteria(manufacturer="Toy")) == []

    def test_combined_criteria(self):
        criteria = FilterCriteria(manufacturer="Toyota", issue_date="2023-01")
        assert [s.model_name for s in filter_specs(SPECS, criteria)] == ["Prius"]

    def test_option_keyword_is_case_insensitive_substring(self):
        result = filter_specs(SPECS, FilterCriteria(option="SEAT"))
        assert [s.model_name for s in result] == ["Aqua"]

    def test_option_keyword_skips_rows_without_options(self):
        result = filter_specs(SPECS, FilterCriteria(option="a"))
        assert "Fit" not in [s.model_name for s in result]


class TestFilterChoices:
    def test_distinct_sorted_values(self):
        choices = filter_choices(SPECS)

        assert choices.manufacturers == ["Honda", "Toyota"]
        assert choices.model_names == ["Aqua", "Fit", "Prius"]
        assert choices.issue_dates == ["2023-01", "2023-04"]

    def test_model_names_narrowed_by_manufacturer(self):
        choices = filter_choices(SPECS, manufacturer="Honda")

        assert choices.model_names == ["Fit"]
        assert choices.manufacturers == ["Honda", "Toyota"]

    def test_blank_values_are_not_offered(self):
        choices = filter_choices([make_spec(0, issue_date=None, model_name="")])

        assert choices.issue_dates == []
        assert choices.model_names == []


class TestToJson:
    def test_camel_case_array(self):
        data = json.loads(to_json(SPECS[:1]))

        assert data == [
            {
                "id": "1700000000000-0",
                "manufacturer": "Toyota",
                "modelName": "Prius",
                "grade": "G0",
                "price": 3200000.0,
                "issueDate": "2023-01",
                "engineType": None,
                "displacement": None,
                "maxPower": None,
                "maxTorque": None,
                "fuelEconomy": None,
                "options": ["Sunroof", "Navigation"],
            }
        ]

    def test_is_indented(self):
        assert to_json(SPECS[:1]).startswith("[\n  {")

    def test_empty(self):
        assert to_json([]) == "[]"


class TestToCsv:
    def test_header_order(self):
        header = to_csv([]).split("\n")[0]

        assert header == (
            "Manufacturer,Model Name,Grade,Price,Issue Date,Engine Type,"
            "Displacement,Max Power,Max Torque,Fuel Economy,Options"
        )

    def test_rows_and_option_joining(self):
        lines = to_csv(SPECS).split("\n")

        assert len(lines) == 4
        assert lines[1] == 'Toyota,Prius,G0,3200000,2023-01,,,,,,"Sunroof,Navigation"'
        assert lines[3] == "Honda,Fit,G2,3200002,2023-01,,,,,,"

    def test_quotes_are_doubled(self):
        spec = make_spec(0, grade='G "Touring"', options=None, price=None)

        row = to_csv([spec]).split("\n")[1]

        assert row == 'Toyota,Prius,"G ""Touring""",,2023-01,,,,,,'

    def test_embedded_newline_is_quoted(self):
        spec = make_spec(0, engine_type="1.8L\nhybrid", options=None)

        output = to_csv([spec])

        assert '"1.8L\nhybrid"' in output

    def test_fractional_price_kept(self):
        spec = make_spec(0, price=1234.5, options=None)

        assert ",1234.5," in to_csv([spec])
