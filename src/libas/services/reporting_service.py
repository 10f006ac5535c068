from __future__ import annotations

import logging
from pathlib import Path

from openpyxl import Workbook
from openpyxl.styles import Font
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo

from libas.services.record_service import as_number

log = logging.getLogger(__name__)


class ReportingService:
    def __init__(self, records):
        self.records = records

    def export_stock_report_excel(self, path: Path | str) -> Path:
        wb = Workbook()

        def money(cell):
            cell.number_format = "#,##0.00"

        def bold_row(ws, r):
            for c in ws[r]:
                c.font = Font(bold=True)

        def set_widths(ws, widths: dict[str, int]):
            for col, w in widths.items():
                ws.column_dimensions[col].width = w

        def add_table(ws, name: str, start_row: int, start_col: int, end_row: int, end_col: int):
            ref = f"{get_column_letter(start_col)}{start_row}:{get_column_letter(end_col)}{end_row}"
            tab = Table(displayName=name, ref=ref)
            tab.tableStyleInfo = TableStyleInfo(
                name="TableStyleMedium9",
                showRowStripes=True,
                showColumnStripes=False,
            )
            ws.add_table(tab)

        stats = self.records.get_stats()
        entries = self.records.get_all_stock_entries()

        # -------- 1) Summary --------
        ws = wb.active
        ws.title = "Summary"
        ws["A1"] = "Libas Inventory - Stock Report"
        ws["A1"].font = Font(bold=True, size=14)

        rows = [
            ("Stock entries", stats.total_products, "int"),
            ("Staff entries", stats.staff_entries, "int"),
            ("Admin entries", stats.admin_entries, "int"),
            ("Total stock value", float(stats.total_value), "money"),
            ("Bills uploaded", stats.total_bills, "int"),
            ("Last updated", stats.last_updated or "", "text"),
        ]

        start_row = 3
        for i, (label, val, kind) in enumerate(rows):
            r = start_row + i
            ws[f"A{r}"] = label
            ws[f"B{r}"] = val
            if kind == "money":
                money(ws[f"B{r}"])

        set_widths(ws, {"A": 24, "B": 30})

        # -------- 2) Stock Entries --------
        ws2 = wb.create_sheet("Stock Entries")
        ws2.append([
            "Item Name", "Quantity", "Group",
            "Purchase Price", "Selling Price", "Line Value",
            "Date", "Added By", "Description", "Timestamp",
        ])
        bold_row(ws2, 1)

        out_row = 2
        for e in entries:
            qty = as_number(e.quantity, integral=True)
            price = as_number(e.purchase_price)
            ws2.append([
                e.name, qty, e.group,
                price, as_number(e.selling_price), price * qty,
                e.date, e.added_by, e.description or "", e.timestamp,
            ])
            money(ws2[f"D{out_row}"])
            money(ws2[f"E{out_row}"])
            money(ws2[f"F{out_row}"])
            out_row += 1

        ws2.freeze_panes = "A2"
        set_widths(ws2, {
            "A": 28, "B": 10, "C": 18,
            "D": 16, "E": 16, "F": 16,
            "G": 12, "H": 14, "I": 34, "J": 28,
        })
        if ws2.max_row >= 2:
            add_table(ws2, "StockEntries", 1, 1, ws2.max_row, 10)

        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        wb.save(target)
        log.info("stock_report_exported path=%s entries=%s", target, len(entries))
        return target
