"""Contracts: CRUD and sign-off roster."""
from typing import List, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.database import get_db
from bapp import crud
from bapp.crud import AreaNotFoundError, CustomerNotFoundError, InvalidInvoiceTypeError
from bapp.schemas import ContractCreate, ContractRead, ContractUpdate, ContractWithProgress, SignatureIn, SignatureRead

router = APIRouter(prefix="/api/contracts", tags=["contracts"])

RESPONSE_404 = {404: {"description": "Kontrak tidak ditemukan", "content": {"application/json": {"example": {"detail": "Kontrak tidak ditemukan"}}}}}
RESPONSE_400 = {400: {"description": "Data tidak valid", "content": {"application/json": {"example": {"detail": "Jenis invoice tidak valid: Pusat 2"}}}}}


@router.get("", response_model=List[ContractRead], summary="Daftar kontrak")
async def list_contracts(year: Optional[int] = Query(None), db: AsyncSession = Depends(get_db)):
    return await crud.list_contracts(db, year)


@router.get("/{contract_id}", response_model=ContractWithProgress, responses={**RESPONSE_404})
async def get_contract(contract_id: int, year: Optional[int] = Query(None), db: AsyncSession = Depends(get_db)):
    view = await crud.get_contract_with_progress(db, contract_id, year)
    if view is None:
        raise HTTPException(status_code=404, detail="Kontrak tidak ditemukan")
    return view


@router.post("", response_model=ContractWithProgress, status_code=201, responses={**RESPONSE_400, **RESPONSE_404})
async def create_contract(body: ContractCreate, db: AsyncSession = Depends(get_db)):
    """Customer / area by id, or by name (created when missing)."""
    try:
        contract = await crud.create_contract(db, body)
    except InvalidInvoiceTypeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (CustomerNotFoundError, AreaNotFoundError) as e:
        raise HTTPException(status_code=404, detail=str(e))
    return await crud.get_contract_with_progress(db, contract.id)


@router.patch("/{contract_id}", response_model=ContractRead, responses={**RESPONSE_400, **RESPONSE_404})
async def update_contract(contract_id: int, body: ContractUpdate, db: AsyncSession = Depends(get_db)):
    try:
        contract = await crud.update_contract(db, contract_id, body)
    except InvalidInvoiceTypeError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AreaNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if contract is None:
        raise HTTPException(status_code=404, detail="Kontrak tidak ditemukan")
    return contract


@router.put("/{contract_id}/signatures", response_model=List[SignatureRead], responses={**RESPONSE_404})
async def replace_signatures(contract_id: int, body: List[SignatureIn], db: AsyncSession = Depends(get_db)):
    """Replace the roster; order becomes 1..n in the given sequence."""
    if await crud.get_contract(db, contract_id) is None:
        raise HTTPException(status_code=404, detail="Kontrak tidak ditemukan")
    return await crud.update_contract_signatures(db, contract_id, body)


@router.delete("/{contract_id}", status_code=204, responses={**RESPONSE_404})
async def delete_contract(contract_id: int, db: AsyncSession = Depends(get_db)):
    if not await crud.delete_contract(db, contract_id):
        raise HTTPException(status_code=404, detail="Kontrak tidak ditemukan")
