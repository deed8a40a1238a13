"""
Period migration: change a contract's cadence and reshape its recorded progress.

Order of work (one contract-year):
1. snapshot existing monthly_progress rows and their signature_progress
2. merge pass   (finer -> coarser): promote one source month into each remaining end month
3. split pass   (coarser -> finer): spread a source month over the new end months by percentage
4. deactivation: clear every row whose month is not active under the new cadence
5. write back the canonical period label
6. half-month expansion: ensure sub-period 1 and 2 rows for all 12 months

Everything runs inside the caller's AsyncSession; the request commits once at the end,
so a failing write rolls the whole migration back.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.models import BappContract, MonthlyProgress, Signature, SignatureProgress
from bapp.schemas import (
    ContractWithProgress,
    MergeDirective,
    PeriodMigrationConfig,
    PeriodMigrationPlan,
    PeriodMigrationPlanRequest,
    PeriodMigrationRequest,
    PeriodRange,
    SplitDirective,
    SplitTarget,
)
from bapp.services.periods import (
    HALF_MONTH,
    SHORT_MONTH_NAMES,
    InvalidPeriodError,
    get_period_months,
    get_period_ranges,
    is_valid_period,
    month_range_label,
    normalize_sub_period,
    parse_period_to_number,
    period_label,
    round_half_up,
)

logger = logging.getLogger(__name__)

NOTES_SEPARATOR = "\n---\n"


class ContractNotFoundError(ValueError):
    """Contract id does not exist"""
    pass


@dataclass
class _Completion:
    signature_id: int
    is_completed: bool
    completed_at: Optional[datetime]
    completed_by: Optional[str] = None


@dataclass
class _RowSnapshot:
    """State of a monthly_progress row before any migration write."""
    id: int
    month: int
    sub_period: int
    upload_link: Optional[str]
    is_upload_completed: bool
    notes: Optional[str]
    notes_updated_at: Optional[datetime]
    completions: List[_Completion] = field(default_factory=list)


# ---------- storage helpers ----------
async def _load_snapshots(db: AsyncSession, contract_id: int, year: int) -> Dict[Tuple[int, int], _RowSnapshot]:
    r = await db.execute(
        select(MonthlyProgress)
        .where(MonthlyProgress.contract_id == contract_id, MonthlyProgress.year == year)
        .order_by(MonthlyProgress.month, MonthlyProgress.id)
    )
    rows = list(r.scalars().all())
    completions: Dict[int, List[_Completion]] = {row.id: [] for row in rows}
    if rows:
        r = await db.execute(
            select(SignatureProgress).where(SignatureProgress.monthly_progress_id.in_(list(completions)))
        )
        for sp in r.scalars().all():
            completions[sp.monthly_progress_id].append(
                _Completion(sp.signature_id, bool(sp.is_completed), sp.completed_at, sp.completed_by)
            )
    snapshots: Dict[Tuple[int, int], _RowSnapshot] = {}
    for row in rows:
        key = (row.month, normalize_sub_period(row.sub_period))
        # an explicit sub_period wins over a legacy NULL row of the same month
        if key in snapshots and row.sub_period is None:
            continue
        snapshots[key] = _RowSnapshot(
            id=row.id,
            month=row.month,
            sub_period=key[1],
            upload_link=row.upload_link,
            is_upload_completed=bool(row.is_upload_completed),
            notes=row.notes,
            notes_updated_at=row.notes_updated_at,
            completions=completions[row.id],
        )
    return snapshots


async def _find_row(
    db: AsyncSession, contract_id: int, year: int, month: int, sub_period: int = 1
) -> Optional[MonthlyProgress]:
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
    if not rows:
        return None
    explicit = [row for row in rows if row.sub_period is not None]
    return explicit[0] if explicit else rows[0]


async def get_or_create_period_row(
    db: AsyncSession, contract_id: int, year: int, month: int, sub_period: int = 1
) -> MonthlyProgress:
    row = await _find_row(db, contract_id, year, month, sub_period)
    if row is not None:
        return row
    row = MonthlyProgress(
        contract_id=contract_id,
        year=year,
        month=month,
        sub_period=sub_period,
        upload_link=None,
        is_upload_completed=False,
        notes=None,
    )
    db.add(row)
    await db.flush()
    return row


async def _replace_completions(db: AsyncSession, progress_id: int, completions: List[_Completion]) -> None:
    """Delete-then-insert so no stale signature_progress survives."""
    await db.execute(delete(SignatureProgress).where(SignatureProgress.monthly_progress_id == progress_id))
    for c in completions:
        db.add(
            SignatureProgress(
                monthly_progress_id=progress_id,
                signature_id=c.signature_id,
                is_completed=c.is_completed,
                completed_at=c.completed_at,
                completed_by=c.completed_by,
            )
        )
    await db.flush()


async def _clear_row(db: AsyncSession, row: MonthlyProgress) -> None:
    row.upload_link = None
    row.is_upload_completed = False
    row.notes = None
    row.notes_updated_at = None
    await _replace_completions(db, row.id, [])


async def _load_completions(db: AsyncSession, progress_id: int) -> List[_Completion]:
    r = await db.execute(select(SignatureProgress).where(SignatureProgress.monthly_progress_id == progress_id))
    return [
        _Completion(sp.signature_id, bool(sp.is_completed), sp.completed_at, sp.completed_by)
        for sp in r.scalars().all()
    ]


# ---------- passes ----------
async def _merge_pass(
    db: AsyncSession,
    contract_id: int,
    year: int,
    directives: List[MergeDirective],
    snapshots: Dict[Tuple[int, int], _RowSnapshot],
) -> int:
    merged = 0
    for merge in directives:
        source = snapshots.get((merge.source_month, 1))
        if source is None:
            logger.debug("merge skipped: contract %s month %s has no progress row", contract_id, merge.source_month)
            continue
        target = await get_or_create_period_row(db, contract_id, year, merge.target_month)
        combined_notes = NOTES_SEPARATOR.join(merge.notes) if merge.notes else source.notes
        target.upload_link = source.upload_link
        target.is_upload_completed = source.is_upload_completed
        if combined_notes != target.notes:
            target.notes_updated_at = datetime.utcnow() if combined_notes else None
        target.notes = combined_notes
        await _replace_completions(db, target.id, source.completions)
        if merge.source_month != merge.target_month:
            source_row = await db.get(MonthlyProgress, source.id)
            if source_row is not None:
                await _clear_row(db, source_row)
        merged += 1
    return merged


async def _split_pass(
    db: AsyncSession,
    contract_id: int,
    year: int,
    directives: List[SplitDirective],
    snapshots: Dict[Tuple[int, int], _RowSnapshot],
    signatures: List[Signature],
) -> int:
    split = 0
    total_items = len(signatures) + 1
    for directive in directives:
        source = snapshots.get((directive.source_month, 1))
        if source is None:
            logger.debug("split skipped: contract %s month %s has no progress row", contract_id, directive.source_month)
            continue
        for target_month in directive.target_months:
            completed_items = round_half_up(target_month.percentage / 100 * total_items)
            completed_sigs = max(0, completed_items - 1)
            upload_done = completed_items >= total_items
            target = await get_or_create_period_row(db, contract_id, year, target_month.month)
            target.upload_link = source.upload_link if upload_done else None
            target.is_upload_completed = upload_done
            if source.notes != target.notes:
                target.notes_updated_at = source.notes_updated_at if source.notes else None
            target.notes = source.notes
            now = datetime.utcnow()
            await _replace_completions(
                db,
                target.id,
                [
                    _Completion(sig.id, i < completed_sigs, now if i < completed_sigs else None)
                    for i, sig in enumerate(signatures)
                ],
            )
            split += 1
    return split


async def _deactivation_pass(db: AsyncSession, contract_id: int, year: int, new_period: float) -> int:
    active = set(get_period_months(new_period))
    r = await db.execute(
        select(MonthlyProgress).where(MonthlyProgress.contract_id == contract_id, MonthlyProgress.year == year)
    )
    cleared = 0
    for row in r.scalars().all():
        inactive_month = row.month not in active
        # sub-period 2 only exists under the half-month cadence
        inactive_sub = new_period != HALF_MONTH and normalize_sub_period(row.sub_period) == 2
        if inactive_month or inactive_sub:
            await _clear_row(db, row)
            cleared += 1
    return cleared


async def _expand_to_half_month(db: AsyncSession, contract_id: int, year: int, mode: str) -> None:
    for month in range(1, 13):
        first = await _find_row(db, contract_id, year, month, 1)
        if first is None:
            first = await get_or_create_period_row(db, contract_id, year, month, 1)
        elif first.sub_period is None:
            first.sub_period = 1
            await db.flush()
        second = await get_or_create_period_row(db, contract_id, year, month, 2)
        if mode == "duplicate":
            second.upload_link = first.upload_link
            second.is_upload_completed = bool(first.is_upload_completed)
            second.notes = first.notes
            second.notes_updated_at = first.notes_updated_at
            await _replace_completions(db, second.id, await _load_completions(db, first.id))
        else:
            await _clear_row(db, second)


async def migrate_contract_period(db: AsyncSession, config: PeriodMigrationConfig) -> BappContract:
    """
    Convert the contract to config.new_period for config.year.
    Raises ContractNotFoundError / InvalidPeriodError before any write; storage errors propagate unchanged.
    """
    if not is_valid_period(config.new_period):
        raise InvalidPeriodError(f"Periode tidak valid: {config.new_period}")
    contract = await db.get(BappContract, config.contract_id)
    if contract is None:
        raise ContractNotFoundError(f"Kontrak {config.contract_id} tidak ditemukan")
    current_period = parse_period_to_number(contract.period)

    r = await db.execute(
        select(Signature).where(Signature.contract_id == contract.id).order_by(Signature.order, Signature.id)
    )
    signatures = list(r.scalars().all())
    snapshots = await _load_snapshots(db, contract.id, config.year)

    merged = 0
    if config.merge_config:
        merged = await _merge_pass(db, contract.id, config.year, config.merge_config, snapshots)
    split = 0
    if config.split_config:
        split = await _split_pass(db, contract.id, config.year, config.split_config, snapshots, signatures)
    cleared = await _deactivation_pass(db, contract.id, config.year, config.new_period)

    contract.period = period_label(config.new_period)
    await db.flush()

    if config.new_period == HALF_MONTH and current_period != HALF_MONTH:
        await _expand_to_half_month(db, contract.id, config.year, config.half_month_mode)

    logger.info(
        "contract %s (%s) period %s -> %s: merged=%d split=%d cleared=%d",
        contract.id, config.year, current_period, config.new_period, merged, split, cleared,
    )
    return contract


# ---------- planning ----------
def plan_period_migration(contract: ContractWithProgress, request: PeriodMigrationPlanRequest) -> PeriodMigrationPlan:
    """
    Build merge/split directives from a contract's current progress view.

    up (coarser):   one directive per new period that contains months with data;
                    source chosen by merge_mode highest / last / manual.
    down (finer):   one directive per current period with data that covers more than one new period;
                    percentages by split_mode duplicate / last / manual.
    """
    current = parse_period_to_number(contract.period)
    new = request.new_period
    ranges = get_period_ranges(new)
    if new == current:
        direction = "none"
    elif new == HALF_MONTH:
        direction = "to_half_month"
    elif new > current:
        direction = "up"
    else:
        direction = "down"

    entries = {p.month: p for p in contract.monthly_progress if p.sub_period == 1}
    with_data = [p for m, p in sorted(entries.items()) if p.percentage > 0 or p.notes]

    merge_config: List[MergeDirective] = []
    split_config: List[SplitDirective] = []

    if direction == "up":
        for start, end in ranges:
            sources = [p for p in with_data if start <= p.month <= end]
            if not sources:
                continue
            if request.merge_mode == "highest":
                best = sources[0]
                for p in sources[1:]:
                    if p.percentage > best.percentage:
                        best = p
                source_month = best.month
            elif request.merge_mode == "last":
                source_month = end
            else:
                match = next((p for p in sources if p.percentage == request.manual_merge_value), None)
                source_month = match.month if match else sources[0].month
            notes = [
                f"[{SHORT_MONTH_NAMES[p.month - 1]}] {p.notes}"
                for p in sources
                if p.notes and p.month in request.selected_note_months
            ]
            merge_config.append(MergeDirective(target_month=end, source_month=source_month, notes=notes))

    elif direction == "down":
        if not is_valid_period(current):
            raise InvalidPeriodError(f"Periode kontrak tidak valid: {contract.period}")
        for source_start, source_end in get_period_ranges(current):
            source = entries.get(source_end)
            if source is None or not (source.percentage > 0 or source.notes):
                continue
            targets = [(s, e) for s, e in ranges if s >= source_start and e <= source_end]
            if len(targets) <= 1:
                continue
            last_end = targets[-1][1]
            target_months = []
            for _, end in targets:
                if request.split_mode == "duplicate":
                    pct = source.percentage
                elif request.split_mode == "last":
                    pct = source.percentage if end == last_end else 0
                else:
                    pct = request.manual_split_values.get(end, source.percentage)
                target_months.append(SplitTarget(month=end, percentage=pct))
            split_config.append(SplitDirective(source_month=source_end, target_months=target_months))

    return PeriodMigrationPlan(
        current_period=current,
        new_period=new,
        direction=direction,
        active_ranges=[PeriodRange(start=s, end=e, label=month_range_label(s, e)) for s, e in ranges],
        affected_periods=len(merge_config) + len(split_config),
        config=PeriodMigrationRequest(
            year=request.year,
            new_period=new,
            merge_config=merge_config or None,
            split_config=split_config or None,
            half_month_mode=request.half_month_mode,
        ),
    )
