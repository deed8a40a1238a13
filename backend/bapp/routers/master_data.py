"""Master data: customers, areas, name lists for autocomplete."""
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.database import get_db
from bapp import crud
from bapp.crud import CustomerNotFoundError
from bapp.schemas import AreaCreate, AreaRead, CustomerCreate, CustomerRead

router = APIRouter(prefix="/api", tags=["master-data"])

RESPONSE_404 = {404: {"description": "Data tidak ditemukan", "content": {"application/json": {"example": {"detail": "Customer tidak ditemukan"}}}}}


@router.get("/customers", response_model=List[CustomerRead])
async def list_customers(db: AsyncSession = Depends(get_db)):
    return await crud.list_customers(db)


@router.post("/customers", response_model=CustomerRead, status_code=201)
async def create_customer(body: CustomerCreate, db: AsyncSession = Depends(get_db)):
    """Duplicate names surface as 409 through the error translator."""
    return await crud.create_customer(db, body.name)


@router.delete("/customers/{customer_id}", status_code=204, responses={**RESPONSE_404})
async def delete_customer(customer_id: int, db: AsyncSession = Depends(get_db)):
    if not await crud.delete_customer(db, customer_id):
        raise HTTPException(status_code=404, detail="Customer tidak ditemukan")


@router.get("/areas", response_model=List[AreaRead])
async def list_areas(customer_id: Optional[int] = Query(None), db: AsyncSession = Depends(get_db)):
    return await crud.list_areas(db, customer_id)


@router.post("/areas", response_model=AreaRead, status_code=201, responses={**RESPONSE_404})
async def create_area(body: AreaCreate, db: AsyncSession = Depends(get_db)):
    try:
        return await crud.create_area(db, body.customer_id, body.name, body.code)
    except CustomerNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.delete("/areas/{area_id}", status_code=204, responses={**RESPONSE_404})
async def delete_area(area_id: int, db: AsyncSession = Depends(get_db)):
    if not await crud.delete_area(db, area_id):
        raise HTTPException(status_code=404, detail="Area tidak ditemukan")


@router.get("/names/{kind}", response_model=List[str], summary="Daftar nama unik (autocomplete)")
async def list_names(kind: Literal["contracts", "areas", "customers"], db: AsyncSession = Depends(get_db)):
    return await crud.list_unique_names(db, kind)
