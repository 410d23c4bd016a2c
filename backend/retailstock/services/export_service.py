# Overview: Spreadsheet (.xlsx) rendering of the sales and stock reports.

from __future__ import annotations

from decimal import Decimal
from io import BytesIO

from openpyxl import Workbook
from openpyxl.styles import Font

from .reporting_service import sales_detail, stock_report

XLSX_MIMETYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


def _amount(cents: int) -> Decimal:
    return Decimal(cents) / 100


def _write_sheet(title: str, columns: list[tuple[str, int]], rows: list[list], summary: list) -> bytes:
    wb = Workbook()
    ws = wb.active
    ws.title = title

    ws.append([header for header, _ in columns])
    for cell in ws[1]:
        cell.font = Font(bold=True)
    for idx, (_, width) in enumerate(columns, start=1):
        ws.column_dimensions[ws.cell(row=1, column=idx).column_letter].width = width

    for row in rows:
        ws.append(row)

    ws.append(summary)
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)

    buffer = BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def sales_workbook(*, department_id: int | None, start: str | None, end: str | None) -> bytes:
    sales = sales_detail(department_id=department_id, start=start, end=end)
    rows = [
        [
            sale.created_at.date().isoformat(),
            sale.product.name if sale.product else "",
            sale.quantity,
            _amount(sale.unit_price_cents),
            _amount(sale.total_price_cents),
        ]
        for sale in sales
    ]
    total = sum(sale.total_price_cents for sale in sales)
    return _write_sheet(
        "Sales Report",
        [("Date", 15), ("Product", 30), ("Quantity", 10), ("Price", 10), ("Total", 15)],
        rows,
        ["Total", "", sum(sale.quantity for sale in sales), "", _amount(total)],
    )


def stock_workbook(*, department_id: int | None) -> bytes:
    report = stock_report(department_id=department_id)
    rows = [
        [
            row["product"],
            row["code"],
            row["quantity"],
            Decimal(row["price"]),
            Decimal(row["totalValue"]),
        ]
        for row in report["rows"]
    ]
    return _write_sheet(
        "Stock Report",
        [("Product", 30), ("Code", 12), ("Quantity", 10), ("Price", 10), ("Total Value", 15)],
        rows,
        ["Total Value", "", "", "", Decimal(report["totalValue"])],
    )
