"""Period (cadence) change: preview the merge/split plan, then migrate."""
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.database import get_db
from bapp import crud
from bapp.schemas import (
    PeriodMigrationConfig,
    PeriodMigrationPlan,
    PeriodMigrationPlanRequest,
    PeriodMigrationRequest,
    PeriodMigrationResult,
)
from bapp.services.period_migration import ContractNotFoundError, migrate_contract_period, plan_period_migration
from bapp.services.periods import InvalidPeriodError

router = APIRouter(prefix="/api/contracts", tags=["periods"])

RESPONSE_404 = {404: {"description": "Kontrak tidak ditemukan", "content": {"application/json": {"example": {"detail": "Kontrak 12 tidak ditemukan"}}}}}


@router.post("/{contract_id}/period/plan", response_model=PeriodMigrationPlan, responses={**RESPONSE_404})
async def plan_period_change(contract_id: int, body: PeriodMigrationPlanRequest, db: AsyncSession = Depends(get_db)):
    """Directives only; nothing is written."""
    view = await crud.get_contract_with_progress(db, contract_id, body.year)
    if view is None:
        raise HTTPException(status_code=404, detail=f"Kontrak {contract_id} tidak ditemukan")
    try:
        return plan_period_migration(view, body)
    except InvalidPeriodError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post("/{contract_id}/period", response_model=PeriodMigrationResult, responses={**RESPONSE_404})
async def change_period(contract_id: int, body: PeriodMigrationRequest, db: AsyncSession = Depends(get_db)):
    """Runs in the request transaction: any failed write rolls the whole migration back."""
    config = PeriodMigrationConfig(contract_id=contract_id, **body.model_dump())
    try:
        contract = await migrate_contract_period(db, config)
    except ContractNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InvalidPeriodError as e:
        raise HTTPException(status_code=400, detail=str(e))
    view = await crud.get_contract_with_progress(db, contract_id, body.year)
    return PeriodMigrationResult(contract_id=contract.id, period=contract.period, contract=view)
