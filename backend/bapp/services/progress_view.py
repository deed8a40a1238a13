"""
Progress view: per-period progress, percentages and yearly status (pure computation, no DB).

Rows are fetched in bulk beforehand (by contract id list, then by progress id list);
everything here joins them through key -> row maps built once per call.
"""
from collections import defaultdict
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from bapp.schemas import (
    AreaWithContracts,
    ContractWithProgress,
    CustomerWithAreas,
    DashboardFilters,
    MonthlyProgressDetail,
    SignatureDetail,
    SignatureRead,
)
from bapp.services.periods import (
    calculate_progress,
    normalize_sub_period,
    parse_period_to_number,
    sub_periods_for,
)

PeriodKey = Tuple[int, int]  # (month, sub_period)


def index_progress_rows(progress_rows: Iterable[Any]) -> Dict[PeriodKey, Any]:
    """
    (month, normalized sub_period) -> row for one contract-year.
    Legacy rows (sub_period NULL) read as sub-period 1; an explicit sub_period=1 row wins over a legacy one.
    """
    index: Dict[PeriodKey, Any] = {}
    for row in progress_rows:
        key = (row.month, normalize_sub_period(row.sub_period))
        existing = index.get(key)
        if existing is None or (existing.sub_period is None and row.sub_period is not None):
            index[key] = row
    return index


def index_signature_progress(signature_progress_rows: Iterable[Any]) -> Dict[Tuple[int, int], Any]:
    """(monthly_progress_id, signature_id) -> signature_progress row."""
    return {(sp.monthly_progress_id, sp.signature_id): sp for sp in signature_progress_rows}


def build_period_detail(
    month: int,
    sub_period: int,
    year: int,
    signatures: Sequence[Any],
    progress: Optional[Any],
    sig_index: Dict[Tuple[int, int], Any],
) -> MonthlyProgressDetail:
    details: List[SignatureDetail] = []
    for sig in signatures:
        sp = sig_index.get((progress.id, sig.id)) if progress is not None else None
        details.append(
            SignatureDetail(
                id=sig.id,
                name=sig.name,
                role=sig.role or "",
                order=sig.order,
                is_completed=bool(sp.is_completed) if sp is not None else False,
                completed_at=sp.completed_at if sp is not None else None,
            )
        )
    is_upload_completed = bool(progress.is_upload_completed) if progress is not None else False
    completed_sigs = sum(1 for d in details if d.is_completed)
    pct, total_items, completed_items = calculate_progress(completed_sigs, len(signatures), is_upload_completed)
    return MonthlyProgressDetail(
        id=progress.id if progress is not None else None,
        month=month,
        year=year,
        sub_period=sub_period,
        signatures=details,
        is_upload_completed=is_upload_completed,
        upload_link=progress.upload_link if progress is not None else None,
        notes=progress.notes if progress is not None else None,
        notes_updated_at=progress.notes_updated_at if progress is not None else None,
        updated_at=progress.updated_at if progress is not None else None,
        percentage=pct,
        total_items=total_items,
        completed_items=completed_items,
    )


def build_period_view(
    period: str,
    year: int,
    signatures: Sequence[Any],
    progress_rows: Iterable[Any],
    signature_progress_rows: Iterable[Any],
) -> List[MonthlyProgressDetail]:
    """
    12 entries (month 1..12, sub_period 1) for standard cadences,
    24 entries (month-major, sub_period 1 then 2) for half-month contracts.
    signatures must already be in their defined order.
    """
    progress_index = index_progress_rows(progress_rows)
    sig_index = index_signature_progress(signature_progress_rows)
    subs = sub_periods_for(parse_period_to_number(period))
    return [
        build_period_detail(month, sub, year, signatures, progress_index.get((month, sub)), sig_index)
        for month in range(1, 13)
        for sub in subs
    ]


def calculate_yearly_status(details: Sequence[MonthlyProgressDetail]) -> str:
    if details and all(d.percentage == 100 for d in details):
        return "completed"
    if any(d.percentage > 0 for d in details):
        return "in_progress"
    return "not_started"


def build_contract_with_progress(
    contract: Any,
    signatures: Sequence[Any],
    progress_rows: Iterable[Any],
    signature_progress_rows: Iterable[Any],
) -> ContractWithProgress:
    ordered = sorted(signatures, key=lambda s: s.order)
    view = build_period_view(contract.period, contract.year, ordered, progress_rows, signature_progress_rows)
    return ContractWithProgress(
        id=contract.id,
        customer_id=contract.customer_id,
        area_id=contract.area_id,
        name=contract.name,
        period=contract.period,
        invoice_type=contract.invoice_type,
        notes=contract.notes,
        year=contract.year,
        total_signatures=len(ordered),
        signatures=[SignatureRead.model_validate(s) for s in ordered],
        monthly_progress=view,
        yearly_status=calculate_yearly_status(view),
    )


def build_dashboard_tree(
    customers: Sequence[Any],
    areas: Sequence[Any],
    contracts: Sequence[Any],
    signatures: Iterable[Any],
    progress_rows: Iterable[Any],
    signature_progress_rows: Iterable[Any],
) -> List[CustomerWithAreas]:
    """customers -> areas -> contracts with progress; customers without any contract are dropped."""
    sigs_by_contract: Dict[int, List[Any]] = defaultdict(list)
    for s in signatures:
        sigs_by_contract[s.contract_id].append(s)
    progress_by_contract: Dict[int, List[Any]] = defaultdict(list)
    contract_of_progress: Dict[int, int] = {}
    for p in progress_rows:
        progress_by_contract[p.contract_id].append(p)
        contract_of_progress[p.id] = p.contract_id
    sig_progress_by_contract: Dict[int, List[Any]] = defaultdict(list)
    for sp in signature_progress_rows:
        contract_id = contract_of_progress.get(sp.monthly_progress_id)
        if contract_id is not None:
            sig_progress_by_contract[contract_id].append(sp)
    contracts_by_area: Dict[Tuple[int, int], List[Any]] = defaultdict(list)
    for c in contracts:
        contracts_by_area[(c.customer_id, c.area_id)].append(c)
    areas_by_customer: Dict[int, List[Any]] = defaultdict(list)
    for a in areas:
        areas_by_customer[a.customer_id].append(a)

    result: List[CustomerWithAreas] = []
    for customer in customers:
        area_nodes: List[AreaWithContracts] = []
        for area in areas_by_customer.get(customer.id, []):
            area_nodes.append(
                AreaWithContracts(
                    id=area.id,
                    name=area.name,
                    code=area.code,
                    contracts=[
                        build_contract_with_progress(
                            c,
                            sigs_by_contract.get(c.id, []),
                            progress_by_contract.get(c.id, []),
                            sig_progress_by_contract.get(c.id, []),
                        )
                        for c in contracts_by_area.get((customer.id, area.id), [])
                    ],
                )
            )
        if any(a.contracts for a in area_nodes):
            result.append(CustomerWithAreas(id=customer.id, name=customer.name, areas=area_nodes))
    return result


def _contract_matches(contract: ContractWithProgress, customer_name: str, filters: DashboardFilters) -> bool:
    search = (filters.search or "").strip().lower()
    if search and search not in contract.name.lower() and search not in customer_name.lower():
        return False
    if filters.invoice_type and contract.invoice_type != filters.invoice_type:
        return False
    if filters.period is not None and parse_period_to_number(contract.period) != filters.period:
        return False
    if filters.status != "all" and contract.yearly_status != filters.status:
        return False
    return True


def apply_dashboard_filters(tree: List[CustomerWithAreas], filters: DashboardFilters) -> List[CustomerWithAreas]:
    """Filter contracts; areas and customers left without contracts are removed."""
    out: List[CustomerWithAreas] = []
    area_name = (filters.area_name or "").strip().lower()
    for customer in tree:
        if filters.customer_id is not None and customer.id != filters.customer_id:
            continue
        areas: List[AreaWithContracts] = []
        for area in customer.areas:
            if area_name and area.name.strip().lower() != area_name:
                continue
            kept = [c for c in area.contracts if _contract_matches(c, customer.name, filters)]
            if kept:
                areas.append(area.model_copy(update={"contracts": kept}))
        if areas:
            out.append(customer.model_copy(update={"areas": areas}))
    return out
