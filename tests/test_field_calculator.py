#!/usr/bin/env python
"""Tests for converting telemetry values into typed variables."""

import os
import sys

import pytest

# Add the source directory to the Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from tasmota_manager.calculator.field_calculator import FieldCalculator
from tasmota_manager.models.field import Field, FieldKind


def make_field(name, kind):
    return Field(name, name, kind, "cmd")


@pytest.mark.parametrize("value, kind, expected", [
    ("42", FieldKind.NUMBER, 42),
    ("-3", FieldKind.NUMBER, -3),
    ("0.238", FieldKind.NUMBER, 0.238),
    ("17.0", FieldKind.NUMBER, 17.0),
    ("1e3", FieldKind.NUMBER, 1000.0),
    ("true", FieldKind.BOOLEAN, True),
    ("false", FieldKind.BOOLEAN, False),
    ("ON", FieldKind.STRING, "ON"),
])
def test_convert(value, kind, expected):
    result = FieldCalculator().convert(value, make_field("x", kind))
    assert result == expected
    assert type(result) is type(expected)


def test_unconvertible_value_is_kept():
    assert FieldCalculator().convert("n/a", make_field("x", FieldKind.NUMBER)) == "n/a"
    assert FieldCalculator().convert("maybe", make_field("x", FieldKind.BOOLEAN)) == "maybe"


def test_calculate_writes_present_fields_only():
    fields = [
        make_field("StatusSTS_POWER1", FieldKind.STRING),
        make_field("StatusSNS_ENERGY_Power", FieldKind.NUMBER),
        make_field("StatusSTS_POWER2", FieldKind.STRING),
    ]
    variables = {"other": 1}
    written = FieldCalculator().calculate(
        {"StatusSTS_POWER1": "ON", "StatusSNS_ENERGY_Power": "42", "Unknown": "x"}, fields, variables
    )
    assert written == 2
    assert variables == {"other": 1, "StatusSTS_POWER1": "ON", "StatusSNS_ENERGY_Power": 42}


def test_variables_are_keyed_by_field_name():
    field = Field("ENERGY_Total_Today", "ENERGY Total-Today", FieldKind.NUMBER, "cmd")
    variables = {}
    FieldCalculator().calculate({"ENERGY Total-Today": "0.5"}, [field], variables)
    assert variables == {"ENERGY_Total_Today": 0.5}
