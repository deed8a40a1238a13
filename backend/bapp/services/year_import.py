"""
Copy contract definitions from one year to another.

Contracts are processed in batches (default 5 at a time, 0.5s pause between batches);
inside a batch every contract runs concurrently in its own session, so one failure never touches the others.
The roster (signatures) is copied; monthly progress never is.
"""
import asyncio
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.models import BappContract, Signature
from bapp.schemas import ImportResult

logger = logging.getLogger(__name__)

SUCCESS = "success"
SKIPPED = "skipped"
FAILED = "failed"

Outcome = Tuple[str, str]  # (status, contract name or error message)
CloneKey = Tuple[int, int, str, str]  # customer_id, area_id, name, invoice_type


async def _find_duplicate(db: AsyncSession, source: BappContract, target_year: int) -> Optional[int]:
    r = await db.execute(
        select(BappContract.id)
        .where(
            BappContract.customer_id == source.customer_id,
            BappContract.area_id == source.area_id,
            BappContract.name == source.name,
            BappContract.invoice_type == source.invoice_type,
            BappContract.year == target_year,
        )
        .limit(1)
    )
    return r.scalars().first()


async def _copy_signatures(
    session_factory: Callable[[], AsyncSession], new_contract_id: int, signatures: Sequence[Tuple[str, str, int]]
) -> None:
    async with session_factory() as db:
        for name, role, order in signatures:
            db.add(Signature(contract_id=new_contract_id, name=name, role=role, order=order))
        await db.commit()


async def import_one_contract(
    session_factory: Callable[[], AsyncSession], contract_id: int, source_year: int, target_year: int
) -> Outcome:
    """Clone one contract; the new contract row is committed before its roster is copied."""
    async with session_factory() as db:
        source = await db.get(BappContract, contract_id)
        if source is None:
            return FAILED, f"Kontrak {contract_id}: tidak ditemukan"
        if source.year != source_year:
            return FAILED, f"Kontrak {contract_id}: bukan kontrak tahun {source_year}"
        if await _find_duplicate(db, source, target_year) is not None:
            return SKIPPED, source.name
        r = await db.execute(
            select(Signature).where(Signature.contract_id == source.id).order_by(Signature.order, Signature.id)
        )
        roster = [(s.name, s.role or "", s.order) for s in r.scalars().all()]
        clone = BappContract(
            customer_id=source.customer_id,
            area_id=source.area_id,
            name=source.name,
            period=source.period,
            invoice_type=source.invoice_type,
            notes=source.notes,
            year=target_year,
        )
        db.add(clone)
        await db.commit()
        new_id, name = clone.id, clone.name

    try:
        await _copy_signatures(session_factory, new_id, roster)
    except Exception:
        # the contract exists already; a missing roster is fixed by editing the contract
        logger.warning("import: signatures of contract %s -> %s could not be copied", contract_id, new_id, exc_info=True)
    return SUCCESS, name


async def _load_clone_keys(
    session_factory: Callable[[], AsyncSession], contract_ids: Sequence[int], source_year: int
) -> Dict[int, Tuple[CloneKey, str]]:
    """id -> ((customer_id, area_id, name, invoice_type), name) for the source-year contracts among the ids."""
    if not contract_ids:
        return {}
    async with session_factory() as db:
        r = await db.execute(
            select(
                BappContract.id, BappContract.customer_id, BappContract.area_id,
                BappContract.name, BappContract.invoice_type,
            ).where(BappContract.id.in_(list(contract_ids)), BappContract.year == source_year)
        )
        return {cid: ((customer_id, area_id, name, invoice_type), name) for cid, customer_id, area_id, name, invoice_type in r.all()}


def _select_runnable(contract_ids: Sequence[int], keys: Dict[int, Tuple[CloneKey, str]]) -> Tuple[List[int], List[str]]:
    """
    Repeated ids, and contracts sharing a clone key with an earlier one, would pass the duplicate
    check concurrently inside a batch; only the first of each runs, the rest are skipped.
    """
    runnable: List[int] = []
    skipped: List[str] = []
    seen_ids = set()
    claimed = set()
    for cid in contract_ids:
        key, name = keys.get(cid, (None, f"Kontrak {cid}"))
        if cid in seen_ids or (key is not None and key in claimed):
            skipped.append(name)
            continue
        seen_ids.add(cid)
        if key is not None:
            claimed.add(key)
        runnable.append(cid)
    return runnable, skipped


async def import_contracts_from_year(
    session_factory: Callable[[], AsyncSession],
    source_year: int,
    target_year: int,
    contract_ids: List[int],
    batch_size: int = 5,
    batch_delay: float = 0.5,
) -> ImportResult:
    """Never raises: every failure becomes an entry in ImportResult.errors."""
    result = ImportResult()
    batch_size = max(1, batch_size)
    keys = await _load_clone_keys(session_factory, list(dict.fromkeys(contract_ids)), source_year)
    runnable, skipped = _select_runnable(contract_ids, keys)
    result.skipped += len(skipped)
    result.skipped_names.extend(skipped)
    batches = [runnable[i:i + batch_size] for i in range(0, len(runnable), batch_size)]
    for index, batch in enumerate(batches):
        outcomes = await asyncio.gather(
            *(import_one_contract(session_factory, cid, source_year, target_year) for cid in batch),
            return_exceptions=True,
        )
        for contract_id, outcome in zip(batch, outcomes):
            if isinstance(outcome, BaseException):
                result.failed += 1
                result.errors.append(f"Kontrak {contract_id}: {outcome}")
                continue
            status, detail = outcome
            if status == SUCCESS:
                result.success += 1
            elif status == SKIPPED:
                result.skipped += 1
                result.skipped_names.append(detail)
            else:
                result.failed += 1
                result.errors.append(detail)
        if index < len(batches) - 1 and batch_delay > 0:
            await asyncio.sleep(batch_delay)
    logger.info(
        "import %s -> %s: success=%d skipped=%d failed=%d",
        source_year, target_year, result.success, result.skipped, result.failed,
    )
    return result
