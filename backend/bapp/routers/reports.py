"""Reports: Excel export of the dashboard"""
from datetime import date
from typing import Optional
from fastapi import APIRouter, Depends, Query
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.database import get_db
from bapp.routers.dashboard import load_dashboard
from bapp.schemas import DashboardFilters
from bapp.services.export import build_dashboard_export
from bapp.utils.http_headers import build_content_disposition

router = APIRouter(prefix="/api/reports", tags=["reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


@router.get("/export")
async def export_dashboard_excel(
    year: Optional[int] = Query(None),
    customer_id: Optional[int] = Query(None, description="Hanya satu customer"),
    db: AsyncSession = Depends(get_db),
):
    """Progress per period for the year, one row per contract"""
    filters = DashboardFilters(year=year or date.today().year, customer_id=customer_id)
    tree = await load_dashboard(db, filters)
    buf, filename = build_dashboard_export(tree, filters.year)
    return StreamingResponse(
        buf,
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": build_content_disposition(filename)},
    )
