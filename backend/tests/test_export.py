"""
Excel export (openpyxl): header, period value at the start month with merged cells, half-month "a% / b%".
"""
from bapp.schemas import AreaWithContracts, ContractWithProgress, CustomerWithAreas, MonthlyProgressDetail
from bapp.services.export import HEADERS, build_dashboard_export, build_dashboard_workbook, month_cells


def _contract(id, name, period, entries):
    """entries: {(month, sub_period): percentage}"""
    subs = (1, 2) if "1/2" in period else (1,)
    return ContractWithProgress(
        id=id, customer_id=1, area_id=1, name=name, period=period, invoice_type="Pusat", year=2025,
        total_signatures=2, signatures=[], yearly_status="in_progress",
        monthly_progress=[
            MonthlyProgressDetail(month=m, year=2025, sub_period=s, percentage=entries.get((m, s), 0))
            for m in range(1, 13)
            for s in subs
        ],
    )


def test_quarterly_values_sit_at_start_month_with_spans():
    values, spans = month_cells(_contract(1, "A", "Per 3 Bulan", {(3, 1): 50, (6, 1): 100}))
    assert values[0] == 50
    assert values[3] == 100
    assert values[1] == "-"
    assert spans == [(1, 3), (4, 6), (7, 9), (10, 12)]


def test_monthly_has_no_spans():
    values, spans = month_cells(_contract(1, "A", "Per 1 Bulan", {(2, 1): 33}))
    assert values[1] == 33
    assert spans == []


def test_half_month_shows_both_sub_periods():
    values, spans = month_cells(_contract(1, "A", "Per 1/2 Bulan", {(1, 1): 100, (1, 2): 50}))
    assert values[0] == "100% / 50%"
    assert values[1] == "0% / 0%"
    assert spans == []


def test_workbook_layout():
    tree = [
        CustomerWithAreas(
            id=1,
            name="PT Sinar Abadi",
            areas=[
                AreaWithContracts(
                    id=1, name="Jakarta", code="J",
                    contracts=[
                        _contract(1, "Sewa Genset", "Per 3 Bulan", {(3, 1): 50}),
                        _contract(2, "Maintenance AC", "Per 1 Bulan", {(1, 1): 100}),
                    ],
                )
            ],
        )
    ]
    wb = build_dashboard_workbook(tree, 2025)
    ws = wb.active
    assert ws.title == "BAPP 2025"
    assert [c.value for c in ws[1]] == HEADERS
    assert ws["A2"].value == 1
    assert ws["B2"].value == "PT Sinar Abadi"
    assert ws["C2"].value == "Sewa Genset - 2 tanda tangan"
    assert ws["E2"].value == "Per 3 Bulan"
    assert ws["F2"].value == 50
    assert ws["F3"].value == 100
    merged = {str(r) for r in ws.merged_cells.ranges}
    assert {"F2:H2", "I2:K2", "L2:N2", "O2:Q2", "B2:B3"} <= merged
    assert not any(r.endswith("3") and r.startswith("F") for r in merged)


def test_export_buffer_and_filename():
    buf, filename = build_dashboard_export([], 2025)
    assert filename.startswith("BAPP_Progress_2025_") and filename.endswith(".xlsx")
    assert buf.read(2) == b"PK"
