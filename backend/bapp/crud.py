"""CRUD - customers, areas, contracts with signature roster, monthly progress, profiles"""
import random
import string
from datetime import datetime
from typing import Optional, List, Dict, Any, Tuple
from sqlalchemy import select, func, delete
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.models import (
    Customer, Area, BappContract, Signature, MonthlyProgress, SignatureProgress, Profile, INVOICE_TYPES,
)
from bapp.schemas import (
    ContractCreate, ContractUpdate, SignatureIn, SignatureStatus, BatchPeriod, BatchCompleteResult, ContractSummary,
)
from bapp.services.periods import parse_period_to_number, sub_periods_for

_BASE36 = string.digits + string.ascii_lowercase


class InvalidInvoiceTypeError(ValueError):
    """invoice_type outside Pusat / Regional 2 / Regional 3"""
    pass


class CustomerNotFoundError(ValueError):
    pass


class AreaNotFoundError(ValueError):
    pass


def _check_invoice_type(invoice_type: str) -> None:
    if invoice_type not in INVOICE_TYPES:
        raise InvalidInvoiceTypeError(f"Jenis invoice tidak valid: {invoice_type}")


def generate_area_code(name: str) -> str:
    """First 8 chars of the name, upper-cased, spaces -> '_', plus a 4-char base36 suffix."""
    prefix = name.strip()[:8].upper().replace(" ", "_")
    suffix = "".join(random.choice(_BASE36) for _ in range(4))
    return f"{prefix}_{suffix}"


# ---------- customers ----------
async def list_customers(db: AsyncSession) -> List[Customer]:
    r = await db.execute(select(Customer).order_by(Customer.name))
    return list(r.scalars().all())


async def create_customer(db: AsyncSession, name: str) -> Customer:
    customer = Customer(name=name.strip())
    db.add(customer)
    await db.flush()
    await db.refresh(customer)
    return customer


async def get_or_create_customer(db: AsyncSession, name: str) -> Customer:
    """Case-insensitive match on the trimmed name."""
    clean = name.strip()
    r = await db.execute(select(Customer).where(func.lower(Customer.name) == clean.lower()).limit(1))
    customer = r.scalars().first()
    if customer is not None:
        return customer
    return await create_customer(db, clean)


async def delete_customer(db: AsyncSession, customer_id: int) -> bool:
    customer = await db.get(Customer, customer_id)
    if not customer:
        return False
    await db.delete(customer)
    await db.flush()
    return True


# ---------- areas ----------
async def list_areas(db: AsyncSession, customer_id: Optional[int] = None) -> List[Area]:
    q = select(Area).order_by(Area.name)
    if customer_id is not None:
        q = q.where(Area.customer_id == customer_id)
    r = await db.execute(q)
    return list(r.scalars().all())


async def create_area(db: AsyncSession, customer_id: int, name: str, code: Optional[str] = None) -> Area:
    if await db.get(Customer, customer_id) is None:
        raise CustomerNotFoundError(f"Customer {customer_id} tidak ditemukan")
    area = Area(customer_id=customer_id, name=name.strip(), code=(code or "").strip() or generate_area_code(name))
    db.add(area)
    await db.flush()
    await db.refresh(area)
    return area


async def get_or_create_area(db: AsyncSession, customer_id: int, name: str) -> Area:
    clean = name.strip()
    r = await db.execute(
        select(Area)
        .where(Area.customer_id == customer_id, func.lower(Area.name) == clean.lower())
        .limit(1)
    )
    area = r.scalars().first()
    if area is not None:
        return area
    return await create_area(db, customer_id, clean)


async def delete_area(db: AsyncSession, area_id: int) -> bool:
    area = await db.get(Area, area_id)
    if not area:
        return False
    await db.delete(area)
    await db.flush()
    return True


# ---------- autocomplete ----------
_NAME_COLUMNS = {
    "contracts": BappContract.name,
    "areas": Area.name,
    "customers": Customer.name,
}


async def list_unique_names(db: AsyncSession, kind: str) -> List[str]:
    """Distinct, sorted names for contracts / areas / customers."""
    column = _NAME_COLUMNS.get(kind)
    if column is None:
        raise ValueError(f"Jenis nama tidak dikenal: {kind}")
    r = await db.execute(select(column).distinct().order_by(column))
    return [n for n in r.scalars().all() if n]


# ---------- contracts ----------
async def get_contract(db: AsyncSession, contract_id: int) -> Optional[BappContract]:
    return await db.get(BappContract, contract_id)


async def list_contracts(db: AsyncSession, year: Optional[int] = None) -> List[BappContract]:
    q = select(BappContract).order_by(BappContract.created_at.desc(), BappContract.id.desc())
    if year is not None:
        q = q.where(BappContract.year == year)
    r = await db.execute(q)
    return list(r.scalars().all())


async def list_signatures(db: AsyncSession, contract_id: int) -> List[Signature]:
    r = await db.execute(
        select(Signature).where(Signature.contract_id == contract_id).order_by(Signature.order, Signature.id)
    )
    return list(r.scalars().all())


async def create_contract(db: AsyncSession, data: ContractCreate) -> BappContract:
    """Resolve customer/area (id or get-or-create by name), insert the contract and its roster (order 1..n)."""
    _check_invoice_type(data.invoice_type)
    if data.customer_id is not None:
        if await db.get(Customer, data.customer_id) is None:
            raise CustomerNotFoundError(f"Customer {data.customer_id} tidak ditemukan")
        customer_id = data.customer_id
    else:
        customer_id = (await get_or_create_customer(db, data.customer_name)).id
    if data.area_id is not None:
        area = await db.get(Area, data.area_id)
        if area is None or area.customer_id != customer_id:
            raise AreaNotFoundError(f"Area {data.area_id} tidak ditemukan untuk customer ini")
        area_id = area.id
    else:
        area_id = (await get_or_create_area(db, customer_id, data.area_name)).id

    contract = BappContract(
        customer_id=customer_id,
        area_id=area_id,
        name=data.name.strip(),
        period=data.period,
        invoice_type=data.invoice_type,
        notes=data.notes,
        year=data.year,
    )
    db.add(contract)
    await db.flush()
    for i, sig in enumerate(data.signatures, start=1):
        db.add(Signature(contract_id=contract.id, name=sig.name.strip(), role=sig.role or "", order=i))
    await db.flush()
    await db.refresh(contract)
    return contract


async def update_contract(db: AsyncSession, contract_id: int, data: ContractUpdate) -> Optional[BappContract]:
    contract = await db.get(BappContract, contract_id)
    if not contract:
        return None
    values = data.model_dump(exclude_unset=True)
    if values.get("invoice_type") is not None:
        _check_invoice_type(values["invoice_type"])
    if values.get("area_id") is not None:
        area = await db.get(Area, values["area_id"])
        if area is None or area.customer_id != contract.customer_id:
            raise AreaNotFoundError(f"Area {values['area_id']} tidak ditemukan untuk customer ini")
    for k, v in values.items():
        if v is None and k != "notes":
            continue
        setattr(contract, k, v)
    await db.flush()
    await db.refresh(contract)
    return contract


async def update_contract_signatures(
    db: AsyncSession, contract_id: int, roster: List[SignatureIn]
) -> List[Signature]:
    """
    Replace the roster; order is renumbered densely 1..n.
    A signature keeps its id (and its recorded progress) when the same (name, role) stays in its slot;
    every other existing signature is deleted together with its progress.
    """
    existing = await list_signatures(db, contract_id)
    kept: List[Signature] = []
    for i, item in enumerate(roster):
        name, role = item.name.strip(), item.role or ""
        current = existing[i] if i < len(existing) else None
        if current is not None and current.name == name and (current.role or "") == role:
            current.order = i + 1
            kept.append(current)
        else:
            sig = Signature(contract_id=contract_id, name=name, role=role, order=i + 1)
            db.add(sig)
            kept.append(sig)
    kept_ids = {s.id for s in kept if s.id is not None}
    for sig in existing:
        if sig.id not in kept_ids:
            await db.execute(delete(SignatureProgress).where(SignatureProgress.signature_id == sig.id))
            await db.delete(sig)
    await db.flush()
    return await list_signatures(db, contract_id)


async def delete_contract(db: AsyncSession, contract_id: int) -> bool:
    """Cascades to signatures, monthly progress and signature progress."""
    contract = await db.get(BappContract, contract_id)
    if not contract:
        return False
    await db.delete(contract)
    await db.flush()
    return True


async def list_contract_summaries(db: AsyncSession, year: int) -> List[ContractSummary]:
    """Contracts of a year for the import picker, newest first."""
    sig_count = (
        select(Signature.contract_id, func.count(Signature.id).label("n"))
        .group_by(Signature.contract_id)
        .subquery()
    )
    q = (
        select(BappContract, Customer.name, Area.name, func.coalesce(sig_count.c.n, 0))
        .join(Customer, Customer.id == BappContract.customer_id)
        .outerjoin(Area, Area.id == BappContract.area_id)
        .outerjoin(sig_count, sig_count.c.contract_id == BappContract.id)
        .where(BappContract.year == year)
        .order_by(BappContract.created_at.desc(), BappContract.id.desc())
    )
    r = await db.execute(q)
    return [
        ContractSummary(
            id=c.id,
            customer_name=customer_name,
            area_name=area_name,
            name=c.name,
            invoice_type=c.invoice_type,
            period=c.period,
            signature_count=int(n or 0),
            year=c.year,
        )
        for c, customer_name, area_name, n in r.all()
    ]


# ---------- dashboard reads ----------
async def fetch_dashboard_data(db: AsyncSession, year: int) -> Dict[str, List[Any]]:
    """
    Bulk reads for one year: contracts, then their signatures and progress by contract-id list,
    then signature_progress by progress-id list. Joining happens in progress_view.
    """
    r = await db.execute(
        select(BappContract).where(BappContract.year == year).order_by(BappContract.created_at, BappContract.id)
    )
    contracts = list(r.scalars().all())
    contract_ids = [c.id for c in contracts]
    customers: List[Customer] = []
    areas: List[Area] = []
    signatures: List[Signature] = []
    progress: List[MonthlyProgress] = []
    signature_progress: List[SignatureProgress] = []
    if contract_ids:
        customer_ids = sorted({c.customer_id for c in contracts})
        r = await db.execute(select(Customer).where(Customer.id.in_(customer_ids)).order_by(Customer.name))
        customers = list(r.scalars().all())
        r = await db.execute(select(Area).where(Area.customer_id.in_(customer_ids)).order_by(Area.name))
        areas = list(r.scalars().all())
        r = await db.execute(
            select(Signature).where(Signature.contract_id.in_(contract_ids)).order_by(Signature.order, Signature.id)
        )
        signatures = list(r.scalars().all())
        r = await db.execute(
            select(MonthlyProgress).where(
                MonthlyProgress.contract_id.in_(contract_ids), MonthlyProgress.year == year
            )
        )
        progress = list(r.scalars().all())
        progress_ids = [p.id for p in progress]
        if progress_ids:
            r = await db.execute(
                select(SignatureProgress).where(SignatureProgress.monthly_progress_id.in_(progress_ids))
            )
            signature_progress = list(r.scalars().all())
    return {
        "customers": customers,
        "areas": areas,
        "contracts": contracts,
        "signatures": signatures,
        "progress": progress,
        "signature_progress": signature_progress,
    }


async def fetch_contract_data(db: AsyncSession, contract_id: int, year: Optional[int] = None) -> Optional[Dict[str, Any]]:
    """Same bulk shape for a single contract (year defaults to the contract's own year)."""
    contract = await db.get(BappContract, contract_id)
    if contract is None:
        return None
    year = year if year is not None else contract.year
    signatures = await list_signatures(db, contract_id)
    r = await db.execute(
        select(MonthlyProgress).where(MonthlyProgress.contract_id == contract_id, MonthlyProgress.year == year)
    )
    progress = list(r.scalars().all())
    signature_progress: List[SignatureProgress] = []
    if progress:
        r = await db.execute(
            select(SignatureProgress).where(SignatureProgress.monthly_progress_id.in_([p.id for p in progress]))
        )
        signature_progress = list(r.scalars().all())
    return {
        "contract": contract,
        "signatures": signatures,
        "progress": progress,
        "signature_progress": signature_progress,
    }


# ---------- monthly progress ----------
async def get_or_create_progress_row(
    db: AsyncSession, contract_id: int, year: int, month: int, sub_period: int = 1
) -> MonthlyProgress:
    """A legacy row (sub_period NULL) answers for sub-period 1."""
    q = select(MonthlyProgress).where(
        MonthlyProgress.contract_id == contract_id,
        MonthlyProgress.year == year,
        MonthlyProgress.month == month,
    )
    if sub_period == 1:
        q = q.where((MonthlyProgress.sub_period == 1) | (MonthlyProgress.sub_period.is_(None)))
    else:
        q = q.where(MonthlyProgress.sub_period == sub_period)
    r = await db.execute(q)
    rows = list(r.scalars().all())
    if rows:
        explicit = [row for row in rows if row.sub_period is not None]
        return explicit[0] if explicit else rows[0]
    row = MonthlyProgress(
        contract_id=contract_id, year=year, month=month, sub_period=sub_period, is_upload_completed=False
    )
    db.add(row)
    await db.flush()
    return row


async def _upsert_signature_statuses(
    db: AsyncSession,
    progress_id: int,
    statuses: List[Tuple[int, bool]],
    completed_by: Optional[str],
) -> None:
    r = await db.execute(select(SignatureProgress).where(SignatureProgress.monthly_progress_id == progress_id))
    by_sig = {sp.signature_id: sp for sp in r.scalars().all()}
    now = datetime.utcnow()
    for signature_id, done in statuses:
        sp = by_sig.get(signature_id)
        if sp is None:
            sp = SignatureProgress(monthly_progress_id=progress_id, signature_id=signature_id)
            db.add(sp)
            by_sig[signature_id] = sp
        elif bool(sp.is_completed) == done:
            continue
        sp.is_completed = done
        sp.completed_at = now if done else None
        sp.completed_by = completed_by if done else None
    await db.flush()


async def update_monthly_progress(
    db: AsyncSession,
    contract_id: int,
    month: int,
    year: int,
    sub_period: int = 1,
    upload_link: Optional[str] = None,
    is_upload_completed: bool = False,
    notes: Optional[str] = None,
    statuses: Optional[List[SignatureStatus]] = None,
    completed_by: Optional[str] = None,
) -> MonthlyProgress:
    row = await get_or_create_progress_row(db, contract_id, year, month, sub_period)
    row.upload_link = upload_link or None
    row.is_upload_completed = bool(is_upload_completed)
    clean_notes = notes if notes else None
    if clean_notes != row.notes:
        row.notes_updated_at = datetime.utcnow() if clean_notes else None
    row.notes = clean_notes
    await db.flush()
    if statuses:
        valid_ids = {s.id for s in await list_signatures(db, contract_id)}
        await _upsert_signature_statuses(
            db,
            row.id,
            [(s.signature_id, s.is_completed) for s in statuses if s.signature_id in valid_ids],
            completed_by,
        )
    await db.refresh(row)
    return row


async def batch_complete_progress(
    db: AsyncSession,
    contract_id: int,
    year: int,
    periods: List[BatchPeriod],
    include_upload: bool = False,
    completed_by: Optional[str] = None,
) -> BatchCompleteResult:
    """
    Mark every signature (and optionally the upload) of the selected periods completed.
    Each period runs in its own SAVEPOINT: a failed period is rolled back and counted, the others are kept.
    Sub-period 2 outside the half-month cadence counts as failed.
    """
    result = BatchCompleteResult()
    contract = await db.get(BappContract, contract_id)
    allowed = sub_periods_for(parse_period_to_number(contract.period)) if contract is not None else ()
    signatures = await list_signatures(db, contract_id)
    for period in periods:
        if period.sub_period not in allowed:
            result.failed += 1
            result.errors.append(f"Bulan {period.month}/{period.sub_period}: sub-periode tidak berlaku untuk periode kontrak")
            continue
        try:
            async with db.begin_nested():
                row = await get_or_create_progress_row(db, contract_id, year, period.month, period.sub_period)
                if include_upload:
                    row.is_upload_completed = True
                await _upsert_signature_statuses(db, row.id, [(s.id, True) for s in signatures], completed_by)
            result.success += 1
        except Exception as e:
            result.failed += 1
            result.errors.append(f"Bulan {period.month}/{period.sub_period}: {e}")
    return result


# ---------- profiles ----------
async def get_profile_by_email(db: AsyncSession, email: str) -> Optional[Profile]:
    r = await db.execute(select(Profile).where(func.lower(Profile.email) == email.strip().lower()).limit(1))
    return r.scalars().first()


async def get_or_create_profile(db: AsyncSession, email: str, role: str = "viewer", full_name: Optional[str] = None) -> Profile:
    profile = await get_profile_by_email(db, email)
    if profile is not None:
        return profile
    profile = Profile(email=email.strip().lower(), role=role, full_name=full_name)
    db.add(profile)
    await db.flush()
    await db.refresh(profile)
    return profile


async def get_contract_with_progress(db: AsyncSession, contract_id: int, year: Optional[int] = None):
    """ContractWithProgress for one contract, or None."""
    from bapp.services.progress_view import build_contract_with_progress

    data = await fetch_contract_data(db, contract_id, year)
    if data is None:
        return None
    return build_contract_with_progress(
        data["contract"], data["signatures"], data["progress"], data["signature_progress"]
    )
