"""Monthly progress: edit one period, batch-complete several."""
from typing import Optional
from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.database import get_db
from bapp import crud
from bapp.schemas import BatchCompleteRequest, BatchCompleteResult, MonthlyProgressDetail, MonthlyProgressUpdate
from bapp.services.periods import parse_period_to_number, sub_periods_for

router = APIRouter(prefix="/api/contracts", tags=["progress"])

RESPONSE_404 = {404: {"description": "Kontrak tidak ditemukan", "content": {"application/json": {"example": {"detail": "Kontrak tidak ditemukan"}}}}}
SUB_PERIOD_DETAIL = "Sub-periode 2 hanya untuk kontrak Per 1/2 Bulan"


@router.put("/{contract_id}/progress", response_model=MonthlyProgressDetail, responses={**RESPONSE_404})
async def update_progress(
    contract_id: int,
    body: MonthlyProgressUpdate,
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    db: AsyncSession = Depends(get_db),
):
    contract = await crud.get_contract(db, contract_id)
    if contract is None:
        raise HTTPException(status_code=404, detail="Kontrak tidak ditemukan")
    if body.sub_period not in sub_periods_for(parse_period_to_number(contract.period)):
        raise HTTPException(status_code=400, detail=SUB_PERIOD_DETAIL)
    await crud.update_monthly_progress(
        db,
        contract_id,
        month=body.month,
        year=body.year,
        sub_period=body.sub_period,
        upload_link=body.upload_link,
        is_upload_completed=body.is_upload_completed,
        notes=body.notes,
        statuses=body.signatures,
        completed_by=x_user_email,
    )
    view = await crud.get_contract_with_progress(db, contract_id, body.year)
    return next(p for p in view.monthly_progress if p.month == body.month and p.sub_period == body.sub_period)


@router.post("/{contract_id}/progress/batch", response_model=BatchCompleteResult, responses={**RESPONSE_404})
async def batch_complete(
    contract_id: int,
    body: BatchCompleteRequest,
    x_user_email: Optional[str] = Header(None, alias="X-User-Email"),
    db: AsyncSession = Depends(get_db),
):
    """include_upload=false: all signatures; true: signatures and upload."""
    contract = await crud.get_contract(db, contract_id)
    if contract is None:
        raise HTTPException(status_code=404, detail="Kontrak tidak ditemukan")
    allowed = sub_periods_for(parse_period_to_number(contract.period))
    if any(p.sub_period not in allowed for p in body.periods):
        raise HTTPException(status_code=400, detail=SUB_PERIOD_DETAIL)
    return await crud.batch_complete_progress(
        db, contract_id, body.year, body.periods, include_upload=body.include_upload, completed_by=x_user_email
    )
