from __future__ import annotations
from dataclasses import dataclass
import logging
from typing import Callable, List, Optional, Sequence, Tuple

from .dialog import EditDialog
from .filters import ALL_COUNTRIES, SearchBar, filter_records
from .records import COLUMNS, Record, Shape

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notification:
    title: str
    description: str
    destructive: bool = False


Notifier = Callable[[Notification], None]


class RowSetEditor:
    """Filterable, editable view over a list of records.

    The host supplies the records (fetch is its job), a store adapter with
    insert/update/delete, and a notify callable used for all user feedback.
    Every store failure is reported through notify and otherwise swallowed;
    the in-memory state is left exactly as before the attempt.
    """

    def __init__(self, records: Sequence[Record], store, notify: Notifier, default_shape: Optional[Shape] = None):
        self.records: List[Record] = list(records)
        self.store = store
        self.notify = notify
        self.default_shape = default_shape
        self.search_term = ""
        self.selected_country = ALL_COUNTRIES
        self.dialog: Optional[EditDialog] = None

    def reload(self, records: Sequence[Record]) -> None:
        self.records = list(records)

    # -------------------------------
    # Filtering and schema
    # -------------------------------
    def search_bar(self) -> SearchBar:
        return SearchBar.build(
            self.records,
            search_term=self.search_term,
            selected_country=self.selected_country,
            shape=self.schema_shape(),
        )

    def filtered(self) -> List[Record]:
        bar = self.search_bar()
        return filter_records(self.records, bar.search_term, bar.selected_country)

    def schema_shape(self) -> Shape:
        """Shape used for the table header and for new records.

        Rows always render by their own tag; only the header falls back to
        the first record's shape when the list is mixed.
        """
        if not self.records:
            return self.default_shape or Shape.SUPPLIER_PART
        return self.records[0].shape

    @property
    def is_mixed(self) -> bool:
        return len({r.shape for r in self.records}) > 1

    def header(self) -> List[str]:
        return [label for label, _f in COLUMNS[self.schema_shape()]]

    def rows(self) -> List[Tuple[Record, List[str]]]:
        return [(rec, rec.cells()) for rec in self.filtered()]

    # -------------------------------
    # Dialog lifecycle
    # -------------------------------
    def add(self) -> EditDialog:
        self.dialog = EditDialog(Record.blank(self.schema_shape()))
        return self.dialog

    def edit(self, record: Record) -> EditDialog:
        self.dialog = EditDialog(record)
        return self.dialog

    def close(self) -> None:
        self.dialog = None

    def change_field(self, name: str, value: str) -> None:
        if self.dialog is None:
            return
        self.dialog.change(name, value)

    @property
    def can_save(self) -> bool:
        return self.dialog is not None and self.dialog.save_enabled

    # -------------------------------
    # Persistence
    # -------------------------------
    def _error(self, exc: Exception) -> None:
        message = getattr(exc, "message", None) or str(exc)
        self.notify(Notification("Error", message, destructive=True))

    def delete(self, record: Record) -> bool:
        key = record.natural_key()
        try:
            self.store.delete(record.collection, key)
        except Exception as e:
            log.info("delete on %s failed: %s", record.collection, e)
            self._error(e)
            return False
        self.records = [r for r in self.records if (r.shape, r.id) != (record.shape, record.id)]
        self.notify(Notification("Success", "Item deleted successfully"))
        return True

    def save(self, record: Optional[Record] = None) -> bool:
        """Insert or update the open dialog's record.

        On failure the dialog stays open with the edited record so the user
        can retry or cancel.
        """
        if not self.can_save:
            return False
        if record is None:
            record = self.dialog.record
        else:
            self.dialog.record = record
        try:
            if record.is_new:
                self.store.insert(record.collection, record.payload())
            else:
                self.store.update(record.collection, record.natural_key(), record.payload())
        except Exception as e:
            log.info("save on %s failed: %s", record.collection, e)
            self._error(e)
            return False
        self.dialog = None
        self.notify(Notification(
            "Success",
            "Item added successfully" if record.is_new else "Item updated successfully",
        ))
        return True
