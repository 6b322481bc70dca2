from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Optional

from .records import Record, Shape

# Country selector value that disables the country predicate
ALL_COUNTRIES = "all"


def _matches_search(rec: Record, term: str) -> bool:
    if not term:
        return True
    return term in rec.code.lower() or term in rec.text.lower()


def filter_records(records: Iterable[Record], search_term: str = "", country: str = ALL_COUNTRIES) -> List[Record]:
    """Keep records matching the search term and country selector, in order.

    The search term is matched case-insensitively against the record's
    identifying code and its description. An empty term matches everything;
    whitespace is part of the term.
    """
    term = (search_term or "").lower()
    selected = country or ALL_COUNTRIES
    out = []
    for rec in records:
        if not _matches_search(rec, term):
            continue
        if selected != ALL_COUNTRIES and rec.country != selected:
            continue
        out.append(rec)
    return out


def unique_countries(records: Iterable[Record]) -> List[str]:
    """Distinct non-empty country values in first-seen order."""
    seen = []
    for rec in records:
        c = rec.country
        if c and c not in seen:
            seen.append(c)
    return seen


def country_options(records: Iterable[Record]) -> List[str]:
    return [ALL_COUNTRIES] + unique_countries(records)


@dataclass(frozen=True)
class SearchBar:
    """View-model for the search input and country dropdown."""

    search_term: str
    selected_country: str
    options: List[str]
    show_country_filter: bool

    @classmethod
    def build(
        cls,
        records: List[Record],
        search_term: str = "",
        selected_country: str = ALL_COUNTRIES,
        shape: Optional[Shape] = None,
    ) -> "SearchBar":
        options = country_options(records)
        if selected_country not in options:
            selected_country = ALL_COUNTRIES
        show = shape is Shape.SUPPLIER_PART or len(options) > 1
        return cls(
            search_term=search_term or "",
            selected_country=selected_country,
            options=options,
            show_country_filter=show,
        )
