from __future__ import annotations
from pathlib import Path
import sys

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from supplydash.core.v1.filters import (
    ALL_COUNTRIES,
    SearchBar,
    country_options,
    filter_records,
    unique_countries,
)
from supplydash.core.v1.records import Record, Shape


def _suppliers():
    rows = [
        {"id": "1", "part_number": "A1", "description": "Widget", "total_cost": "10", "country": "US"},
        {"id": "2", "part_number": "B2", "description": "Gear housing", "total_cost": None, "country": "DE"},
        {"id": "3", "part_number": "WID-3", "description": None, "total_cost": "4.2", "country": "US"},
        {"id": "4", "part_number": "C4", "description": "Bearing", "total_cost": "1", "country": None},
        {"id": "5", "part_number": "D5", "description": "Spring", "total_cost": "2", "country": "CN"},
    ]
    return [Record.from_row(r) for r in rows]


def test_empty_search_and_all_country_returns_everything_in_order():
    recs = _suppliers()
    out = filter_records(recs, "", ALL_COUNTRIES)
    assert out == recs


def test_single_record_scenario():
    recs = [Record.from_row({"part_number": "A1", "description": "Widget", "total_cost": "10", "country": "US"})]
    assert filter_records(recs, "widget") == recs
    assert filter_records(recs, "zzz") == []


def test_every_match_contains_term_in_code_or_description():
    recs = _suppliers()
    for term in ("wid", "A", "e", "GEAR", "5"):
        out = filter_records(recs, term)
        low = term.lower()
        for r in out:
            assert low in r.code.lower() or low in r.text.lower()
        # Nothing lacking the term in both fields is returned, nothing with it is dropped
        expected = [r for r in recs if low in r.code.lower() or low in r.text.lower()]
        assert out == expected


def test_search_matches_code_or_description_case_insensitively():
    recs = _suppliers()
    ids = [r.id for r in filter_records(recs, "WID")]
    assert ids == ["1", "3"]


def test_country_selector_combines_with_search():
    recs = _suppliers()
    assert [r.id for r in filter_records(recs, "", "US")] == ["1", "3"]
    assert [r.id for r in filter_records(recs, "widget", "DE")] == []
    assert [r.id for r in filter_records(recs, "gear", "DE")] == ["2"]


def test_inventory_rows_search_itemcode_and_itemdescription():
    recs = [
        Record.from_row({"itemcode": "IC-100", "itemdescription": "Hex bolt"}),
        Record.from_row({"itemcode": "IC-200", "itemdescription": None}),
    ]
    assert [r.id for r in filter_records(recs, "hex")] == ["IC-100"]
    assert [r.id for r in filter_records(recs, "ic-2")] == ["IC-200"]
    # Inventory rows have no country; any specific country excludes them
    assert filter_records(recs, "", "US") == []


def test_unique_countries_first_seen_order_without_empties():
    recs = _suppliers()
    assert unique_countries(recs) == ["US", "DE", "CN"]
    assert country_options(recs) == ["all", "US", "DE", "CN"]


def test_search_bar_falls_back_to_all_for_unknown_country():
    recs = _suppliers()
    bar = SearchBar.build(recs, search_term="gear", selected_country="FR", shape=Shape.SUPPLIER_PART)
    assert bar.selected_country == ALL_COUNTRIES
    assert bar.options[0] == ALL_COUNTRIES
    assert bar.show_country_filter is True


def test_search_bar_hides_country_filter_for_inventory():
    recs = [Record.from_row({"itemcode": "IC-1", "itemdescription": "x"})]
    bar = SearchBar.build(recs, shape=Shape.INVENTORY_ITEM)
    assert bar.options == [ALL_COUNTRIES]
    assert bar.show_country_filter is False


@pytest.mark.parametrize("term", ["   ", " wid", "wid ", "gear housing "])
def test_whitespace_is_part_of_the_search_term(term):
    recs = _suppliers()
    out = filter_records(recs, term)
    for r in out:
        assert term.lower() in r.code.lower() or term.lower() in r.text.lower()
    assert filter_records(recs, "   ") == []
    assert [r.id for r in filter_records(recs, " housing")] == ["2"]
