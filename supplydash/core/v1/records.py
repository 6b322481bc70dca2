from __future__ import annotations
from dataclasses import dataclass, field, replace
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, localcontext
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Tuple


class Shape(Enum):
    """Record variant. The value is the name of the backing collection."""

    SUPPLIER_PART = "suppliers"
    INVENTORY_ITEM = "inventory"
    WHEEL_MOTOR = "wheelmotor"

    @property
    def collection(self) -> str:
        return self.value


SHAPE_FOR_COLLECTION: Dict[str, Shape] = {s.collection: s for s in Shape}

# Editable fields per shape, in display order. `id` is never editable.
FIELDS: Dict[Shape, Tuple[str, ...]] = {
    Shape.SUPPLIER_PART: ("part_number", "description", "total_cost", "country"),
    Shape.INVENTORY_ITEM: ("itemcode", "itemdescription"),
    Shape.WHEEL_MOTOR: ("manufacturer", "part_number", "description"),
}

# Column name in the backing table for each normalized field. Only the
# wheel-motor table deviates from the normalized names.
_WRITE_COLUMNS: Dict[Shape, Dict[str, str]] = {
    Shape.SUPPLIER_PART: {},
    Shape.INVENTORY_ITEM: {},
    Shape.WHEEL_MOTOR: {"manufacturer": "MFG", "part_number": "PN#", "description": "Description"},
}

# Accepted raw column names per normalized field, first match wins.
_READ_ALIASES: Dict[Shape, Dict[str, Tuple[str, ...]]] = {
    Shape.SUPPLIER_PART: {},
    Shape.INVENTORY_ITEM: {},
    Shape.WHEEL_MOTOR: {
        "manufacturer": ("MFG", "manufacturer"),
        "part_number": ("PN#", "part_number"),
        "description": ("Description", "description"),
    },
}

# Table header schema: (header label, field)
COLUMNS: Dict[Shape, List[Tuple[str, str]]] = {
    Shape.SUPPLIER_PART: [
        ("Part Number", "part_number"),
        ("Description", "description"),
        ("Total Cost", "total_cost"),
        ("Country", "country"),
    ],
    Shape.INVENTORY_ITEM: [
        ("Item Code", "itemcode"),
        ("Description", "itemdescription"),
    ],
    Shape.WHEEL_MOTOR: [
        ("MFG", "manufacturer"),
        ("PN#", "part_number"),
        ("Description", "description"),
    ],
}

# Edit dialog labels
LABELS: Dict[str, str] = {
    "part_number": "Part Number",
    "description": "Description",
    "total_cost": "Total Cost",
    "country": "Country",
    "itemcode": "Item Code",
    "itemdescription": "Description",
    "manufacturer": "Manufacturer",
}

# Identifying-code and description field per shape (search targets)
_CODE_FIELD = {
    Shape.SUPPLIER_PART: "part_number",
    Shape.INVENTORY_ITEM: "itemcode",
    Shape.WHEEL_MOTOR: "part_number",
}
_TEXT_FIELD = {
    Shape.SUPPLIER_PART: "description",
    Shape.INVENTORY_ITEM: "itemdescription",
    Shape.WHEEL_MOTOR: "description",
}


def detect_shape(row: Mapping) -> Shape:
    """Infer the shape of a raw row from field presence.

    Order matters: inventory, then wheel-motor, then supplier.
    """
    if "itemcode" in row:
        return Shape.INVENTORY_ITEM
    if "MFG" in row or "manufacturer" in row:
        return Shape.WHEEL_MOTOR
    return Shape.SUPPLIER_PART


def shape_for_collection(collection: str) -> Shape:
    try:
        return SHAPE_FOR_COLLECTION[collection]
    except KeyError:
        raise ValueError(f"Unknown collection '{collection}'") from None


def _text(value) -> Optional[str]:
    # Numeric columns come back as JSON numbers; keep them as decimal text.
    if value is None:
        return None
    return str(value)


def format_cost(value) -> str:
    """Format nullable decimal text as a two-decimal string.

    None, empty and non-numeric input all render as "0.00".
    """
    if value is None:
        return "0.00"
    try:
        num = Decimal(str(value).strip())
        if not num.is_finite():
            return "0.00"
        with localcontext() as ctx:
            # Room for every integer digit plus the two decimals
            ctx.prec = max(ctx.prec, num.adjusted() + 3)
            return str(num.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))
    except InvalidOperation:
        return "0.00"


@dataclass(frozen=True)
class Record:
    """One row of a backing collection, tagged with its shape.

    `id` is "" for a record that has not been persisted yet. `key` holds the
    natural key captured when the row was loaded so that updates still address
    the stored row after its key fields were edited.
    """

    shape: Shape
    id: str = ""
    values: Mapping[str, Optional[str]] = field(default_factory=dict)
    key: Tuple[Tuple[str, str], ...] = ()

    def __post_init__(self):
        # Read-only view over a private copy; edits go through with_field
        object.__setattr__(self, "values", MappingProxyType(dict(self.values)))
        object.__setattr__(self, "key", tuple(tuple(k) for k in self.key))

    def __hash__(self):
        return hash((self.shape, self.id, tuple(sorted(self.values.items())), self.key))

    @classmethod
    def from_row(cls, row: Mapping, shape: Optional[Shape] = None) -> "Record":
        if shape is None:
            shape = detect_shape(row)
        aliases = _READ_ALIASES[shape]
        values: Dict[str, Optional[str]] = {}
        for f in FIELDS[shape]:
            raw = None
            for col in aliases.get(f, (f,)):
                if col in row:
                    raw = row.get(col)
                    break
            values[f] = _text(raw)

        if shape is Shape.INVENTORY_ITEM:
            # Inventory rows are addressed by the itemcode they were loaded with
            rid = values.get("itemcode")
        else:
            rid = row.get("id")
            if (rid is None or str(rid) == "") and shape is Shape.WHEEL_MOTOR:
                rid = values.get("part_number")
        rid = "" if rid is None else str(rid)

        rec = cls(shape=shape, id=rid, values=values)
        if rid:
            rec = replace(rec, key=tuple(rec._current_key()))
        return rec

    @classmethod
    def blank(cls, shape: Shape) -> "Record":
        return cls(shape=shape, id="", values={f: "" for f in FIELDS[shape]})

    # -------------------------------
    # Accessors
    # -------------------------------
    @property
    def collection(self) -> str:
        return self.shape.collection

    @property
    def is_new(self) -> bool:
        return self.id == ""

    @property
    def fields(self) -> Tuple[str, ...]:
        return FIELDS[self.shape]

    def get(self, name: str) -> Optional[str]:
        return self.values.get(name)

    @property
    def code(self) -> str:
        return self.values.get(_CODE_FIELD[self.shape]) or ""

    @property
    def text(self) -> str:
        return self.values.get(_TEXT_FIELD[self.shape]) or ""

    @property
    def country(self) -> Optional[str]:
        if self.shape is not Shape.SUPPLIER_PART:
            return None
        return self.values.get("country")

    def cells(self) -> List[str]:
        """Display strings for this record's own column schema."""
        out = []
        for _label, f in COLUMNS[self.shape]:
            if f == "total_cost":
                out.append(f"${format_cost(self.values.get(f))}")
            else:
                out.append(self.values.get(f) or "")
        return out

    # -------------------------------
    # Mutation (copy-on-write)
    # -------------------------------
    def with_field(self, name: str, value: str) -> "Record":
        if name not in FIELDS[self.shape]:
            raise KeyError(f"'{name}' is not a field of {self.shape.name}")
        values = dict(self.values)
        values[name] = value
        return replace(self, values=values)

    # -------------------------------
    # Persistence helpers
    # -------------------------------
    def payload(self) -> Dict[str, Optional[str]]:
        """Shape-relevant fields keyed by backing column name, without id."""
        cols = _WRITE_COLUMNS[self.shape]
        return {cols.get(f, f): self.values.get(f) for f in FIELDS[self.shape]}

    def _current_key(self) -> List[Tuple[str, str]]:
        if self.shape is Shape.INVENTORY_ITEM:
            return [("itemcode", self.id)]
        if self.shape is Shape.WHEEL_MOTOR:
            # Part number within manufacturer scope; rows without MFG by PN# alone
            mfg = self.values.get("manufacturer")
            pn = ("PN#", self.values.get("part_number") or "")
            return [("MFG", mfg), pn] if mfg else [pn]
        return [("id", self.id)]

    def natural_key(self) -> List[Tuple[str, str]]:
        """(column, value) pairs addressing the stored row for update/delete."""
        if self.key:
            return list(self.key)
        return self._current_key()
