from __future__ import annotations
from dataclasses import dataclass
from typing import List

from .records import LABELS, Record


@dataclass(frozen=True)
class DialogField:
    name: str
    label: str
    value: str
    input_type: str = "text"


class EditDialog:
    """Modal editor bound to a single record.

    Every change replaces the bound record with a new copy; nothing is
    validated here, any string is accepted and forwarded on save.
    """

    def __init__(self, record: Record):
        self.record = record

    @property
    def is_new(self) -> bool:
        return self.record.is_new

    @property
    def title(self) -> str:
        return "Add Item" if self.record.is_new else "Edit Item"

    @property
    def save_enabled(self) -> bool:
        return self.record is not None

    @property
    def fields(self) -> List[DialogField]:
        out = []
        for name in self.record.fields:
            value = self.record.get(name)
            if name == "total_cost":
                out.append(DialogField(name, LABELS[name], value if value else "0", "number"))
            else:
                out.append(DialogField(name, LABELS.get(name, name), value or ""))
        return out

    def change(self, name: str, value: str) -> Record:
        self.record = self.record.with_field(name, value)
        return self.record
