import csv
import io
import json
from pathlib import Path

from conftest import open_tab, shirt_entry
from openpyxl import load_workbook

from libas.services.export_service import CSV_HEADER
from libas.services.search_service import SearchFilters


def _seed(tab):
    tab.records.add_stock_entry(shirt_entry(description='Says "hello" on front', addedBy="staff"))
    tab.records.add_stock_entry(shirt_entry(name="Jeans", quantity=3, purchasePrice=None, date="2024-01-15", addedBy="admin"))
    tab.records.add_stock_entry(
        {"name": "Mug", "quantity": 6, "group": "Kitchen", "purchasePrice": 40, "sellingPrice": 90,
         "date": "2024-02-01", "description": "Ceramic, shirt print", "addedBy": "staff"}
    )


def test_csv_export_header_escaping_and_price_defaults(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    _seed(tab)

    text = tab.exports.stock_entries_csv()
    rows = list(csv.reader(io.StringIO(text)))

    assert text.splitlines()[0] == ",".join(CSV_HEADER)
    assert len(rows) == 4
    shirt = rows[1]
    assert shirt[0] == "Shirt"
    assert shirt[3] == "100"
    assert shirt[4] == "0"
    assert shirt[7] == 'Says "hello" on front'
    assert '"Says ""hello"" on front"' in text
    jeans = rows[2]
    assert jeans[3] == "0"
    assert rows[3][8]


def test_json_export_respects_inclusive_date_range(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    _seed(tab)

    payload = json.loads(tab.exports.stock_entries_json(("2024-01-01", "2024-01-15")))

    assert payload["totalEntries"] == 2
    assert {e["name"] for e in payload["data"]} == {"Shirt", "Jeans"}
    assert payload["exportDate"]


def test_export_files_are_written(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    _seed(tab)

    csv_path = tab.exports.write_csv(tmp_path / "out")
    json_path = tab.exports.write_json(tmp_path / "out", ("2024-02-01", "2024-02-01"))

    assert csv_path.name.startswith("libas_export_") and csv_path.suffix == ".csv"
    assert json.loads(json_path.read_text(encoding="utf-8"))["totalEntries"] == 1


def test_excel_stock_report(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    _seed(tab)

    path = tab.reporting.export_stock_report_excel(tmp_path / "reports" / "stock.xlsx")

    wb = load_workbook(path)
    assert wb.sheetnames == ["Summary", "Stock Entries"]
    assert wb["Summary"]["B3"].value == 3
    assert wb["Summary"]["B6"].value == 1000 + 240
    assert wb["Stock Entries"].max_row == 4
    assert wb["Stock Entries"]["A2"].value == "Mug"


def test_search_matches_name_group_or_description(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    _seed(tab)

    assert {e.name for e in tab.search.search("SHIRT")} == {"Shirt", "Mug"}
    assert {e.name for e in tab.search.search("apparel")} == {"Shirt", "Jeans"}
    assert len(tab.search.search("")) == 3


def test_search_filters_narrow_results(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    _seed(tab)

    assert [e.name for e in tab.search.search(filters=SearchFilters(group="Kitchen"))] == ["Mug"]
    assert [e.name for e in tab.search.search(filters=SearchFilters(added_by="admin"))] == ["Jeans"]
    in_january = tab.search.search(filters=SearchFilters(start="2024-01-01", end="2024-01-31"))
    assert {e.name for e in in_january} == {"Shirt", "Jeans"}
    assert tab.search.search("shirt", SearchFilters(group="Apparel", start="2024-01-01", end="2024-01-01"))[0].name == "Shirt"


def test_unique_groups_sorted(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    _seed(tab)
    tab.records.add_stock_entry({"name": "Loose", "group": "", "date": "2024-01-01"})

    assert tab.search.unique_groups() == ["Apparel", "Kitchen"]


def test_json_export_keeps_stored_records_verbatim(tmp_path: Path):
    tab = open_tab(tmp_path / "inv.db")
    tab.records.add_stock_entry(shirt_entry(description=None, color="navy"))

    exported = json.loads(tab.exports.stock_entries_json())["data"]

    assert exported == tab.store.load()["stockEntries"]
    assert exported[0]["description"] is None
    assert exported[0]["color"] == "navy"
