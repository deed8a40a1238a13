"""Dashboard: customers -> areas -> contracts with per-period progress for one year."""
from datetime import date
from typing import List, Literal, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.database import get_db
from bapp import crud
from bapp.schemas import CustomerWithAreas, DashboardFilters
from bapp.services.progress_view import apply_dashboard_filters, build_dashboard_tree

router = APIRouter(prefix="/api/dashboard", tags=["dashboard"])


async def load_dashboard(db: AsyncSession, filters: DashboardFilters) -> List[CustomerWithAreas]:
    data = await crud.fetch_dashboard_data(db, filters.year)
    tree = build_dashboard_tree(
        data["customers"], data["areas"], data["contracts"],
        data["signatures"], data["progress"], data["signature_progress"],
    )
    return apply_dashboard_filters(tree, filters)


@router.get("", response_model=List[CustomerWithAreas], summary="Dashboard progress BAPP per tahun")
async def get_dashboard(
    year: Optional[int] = Query(None, description="Tahun; kosong = tahun berjalan"),
    search: str = Query("", description="Nama kontrak atau customer (sebagian)"),
    customer_id: Optional[int] = Query(None),
    area_name: Optional[str] = Query(None),
    period: Optional[float] = Query(None, description="Nilai periode: 0.5, 1, 2, 3, 4, 6, 12"),
    invoice_type: Optional[str] = Query(None),
    status: Literal["all", "completed", "in_progress", "not_started"] = Query("all"),
    db: AsyncSession = Depends(get_db),
):
    filters = DashboardFilters(
        year=year or date.today().year,
        search=search,
        customer_id=customer_id,
        area_name=area_name,
        period=period,
        invoice_type=invoice_type,
        status=status,
    )
    return await load_dashboard(db, filters)
