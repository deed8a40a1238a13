"""Year import: copy contract definitions (with roster, without progress) into another year."""
from typing import List
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.config import settings
from bapp.database import get_db, get_session_factory
from bapp import crud
from bapp.schemas import ContractSummary, ImportRequest, ImportResult
from bapp.services.year_import import import_contracts_from_year

router = APIRouter(prefix="/api/imports", tags=["imports"])


@router.get("/contracts", response_model=List[ContractSummary], summary="Kontrak tahun sumber untuk diimpor")
async def list_importable_contracts(year: int = Query(..., description="Tahun sumber"), db: AsyncSession = Depends(get_db)):
    return await crud.list_contract_summaries(db, year)


@router.post("", response_model=ImportResult, summary="Impor kontrak dari tahun lain")
async def import_contracts(body: ImportRequest, session_factory=Depends(get_session_factory)):
    """Each contract is committed on its own; the response lists success / skipped / failed."""
    if body.source_year == body.target_year:
        raise HTTPException(status_code=400, detail="Tahun sumber dan tahun tujuan tidak boleh sama")
    return await import_contracts_from_year(
        session_factory,
        body.source_year,
        body.target_year,
        body.contract_ids,
        batch_size=settings.import_batch_size,
        batch_delay=settings.import_batch_delay_seconds,
    )
