"""Notifications: deadline warnings for the current month."""
from datetime import date
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from bapp.config import settings
from bapp.database import get_db
from bapp.routers.dashboard import load_dashboard
from bapp.schemas import DashboardFilters, DeadlineWarning
from bapp.services.deadline_check import collect_deadline_warnings

router = APIRouter(prefix="/api/notifications", tags=["notifications"])


@router.get("/deadlines", response_model=List[DeadlineWarning], summary="Peringatan deadline bulan berjalan")
async def deadline_warnings(
    today: Optional[date] = Query(None, description="Tanggal acuan; kosong = hari ini"),
    db: AsyncSession = Depends(get_db),
):
    today = today or date.today()
    tree = await load_dashboard(db, DashboardFilters(year=today.year))
    return collect_deadline_warnings(tree, today, settings.deadline_warning_days)
