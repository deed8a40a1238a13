"""Excel export of a year's dashboard (openpyxl)."""
from io import BytesIO
from datetime import date
from typing import List, Tuple

from openpyxl import Workbook
from openpyxl.styles import Font, Alignment, Border, Side, PatternFill
from openpyxl.utils import get_column_letter

from bapp.schemas import ContractWithProgress, CustomerWithAreas
from bapp.services.periods import MONTH_NAMES, is_half_month_period, parse_period_to_number

HEADERS = ["NO", "CUSTOMER", "NAMA KONTRAK", "AREA", "PERIODE", *MONTH_NAMES]
FIRST_MONTH_COLUMN = 6
EMPTY = "-"

_THIN = Side(style="thin")
_BORDER = Border(top=_THIN, left=_THIN, right=_THIN, bottom=_THIN)
_CENTER = Alignment(horizontal="center", vertical="center", wrap_text=True)


def _style_header(ws):
    fill = PatternFill("solid", fgColor="DDEBF7")
    for row in ws.iter_rows(min_row=1, max_row=1):
        for cell in row:
            cell.font = Font(bold=True)
            cell.alignment = _CENTER
            cell.border = _BORDER
            cell.fill = fill


def month_cells(contract: ContractWithProgress) -> Tuple[List[object], List[Tuple[int, int]]]:
    """
    12 cell values plus the (start, end) month spans to merge.
    Standard cadences: each period's percentage (stored at its end month) goes to its start month.
    Half-month: "a% / b%" per month, no merging.
    """
    values: List[object] = [EMPTY] * 12
    spans: List[Tuple[int, int]] = []
    if is_half_month_period(contract.period):
        by_key = {(p.month, p.sub_period): p.percentage for p in contract.monthly_progress}
        for month in range(1, 13):
            first, second = by_key.get((month, 1)), by_key.get((month, 2))
            if first is not None or second is not None:
                values[month - 1] = f"{first or 0}% / {second or 0}%"
        return values, spans
    step = int(parse_period_to_number(contract.period))
    by_month = {p.month: p.percentage for p in contract.monthly_progress if p.sub_period == 1}
    for start in range(1, 13, step):
        end = min(start + step - 1, 12)
        if end in by_month:
            values[start - 1] = by_month[end]
        if end > start:
            spans.append((start, end))
    return values, spans


def build_dashboard_workbook(tree: List[CustomerWithAreas], year: int) -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = f"BAPP {year}"
    ws.append(HEADERS)
    row_idx = 1
    number = 0
    for customer in tree:
        customer_first_row = row_idx + 1
        for area in customer.areas:
            for contract in area.contracts:
                number += 1
                row_idx += 1
                values, spans = month_cells(contract)
                ws.append([
                    number,
                    customer.name,
                    f"{contract.name} - {contract.total_signatures} tanda tangan",
                    area.name,
                    contract.period,
                    *values,
                ])
                for start, end in spans:
                    ws.merge_cells(
                        start_row=row_idx,
                        start_column=FIRST_MONTH_COLUMN + start - 1,
                        end_row=row_idx,
                        end_column=FIRST_MONTH_COLUMN + end - 1,
                    )
        if row_idx > customer_first_row:
            ws.merge_cells(start_row=customer_first_row, start_column=2, end_row=row_idx, end_column=2)
    _style_header(ws)
    for row in ws.iter_rows(min_row=2, max_row=row_idx):
        for cell in row:
            cell.border = _BORDER
            if cell.column == 2 or cell.column >= FIRST_MONTH_COLUMN:
                cell.alignment = _CENTER
    widths = {1: 6, 2: 24, 3: 40, 4: 18, 5: 16}
    for col in range(1, len(HEADERS) + 1):
        ws.column_dimensions[get_column_letter(col)].width = widths.get(col, 11)
    ws.freeze_panes = "F2"
    return wb


def build_dashboard_export(tree: List[CustomerWithAreas], year: int) -> Tuple[BytesIO, str]:
    """(xlsx buffer, filename)"""
    wb = build_dashboard_workbook(tree, year)
    buf = BytesIO()
    wb.save(buf)
    buf.seek(0)
    today = date.today()
    return buf, f"BAPP_Progress_{year}_{today.strftime('%d%m%Y')}.xlsx"
