from __future__ import annotations
from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from supplydash.core.v1.dialog import EditDialog
from supplydash.core.v1.records import Record, Shape


def test_supplier_dialog_exposes_one_input_per_field():
    rec = Record.from_row({"id": "1", "part_number": "A1", "description": None, "total_cost": None, "country": "US"})
    dlg = EditDialog(rec)
    assert dlg.title == "Edit Item"
    assert [(f.name, f.label, f.value, f.input_type) for f in dlg.fields] == [
        ("part_number", "Part Number", "A1", "text"),
        ("description", "Description", "", "text"),
        ("total_cost", "Total Cost", "0", "number"),
        ("country", "Country", "US", "text"),
    ]


def test_inventory_and_wheel_motor_dialog_fields():
    inv = EditDialog(Record.blank(Shape.INVENTORY_ITEM))
    assert inv.title == "Add Item"
    assert [f.label for f in inv.fields] == ["Item Code", "Description"]

    wm = EditDialog(Record.blank(Shape.WHEEL_MOTOR))
    assert [f.name for f in wm.fields] == ["manufacturer", "part_number", "description"]


def test_change_replaces_record_with_new_copy_and_accepts_any_string():
    original = Record.blank(Shape.SUPPLIER_PART)
    dlg = EditDialog(original)
    dlg.change("total_cost", "twelve-ish")
    dlg.change("part_number", "A")
    dlg.change("part_number", "A1")
    assert dlg.record is not original
    assert original.get("part_number") == ""
    assert dlg.record.get("part_number") == "A1"
    # No validation: non-numeric cost text is kept as typed
    assert dlg.record.get("total_cost") == "twelve-ish"
    assert dlg.save_enabled is True


def test_change_unknown_field_raises():
    dlg = EditDialog(Record.blank(Shape.INVENTORY_ITEM))
    with pytest.raises(KeyError):
        dlg.change("total_cost", "1")
