"""Deadline warnings: contracts whose current-month period is still open near the end of the month."""
import calendar
import logging
from datetime import date
from typing import List, Optional

from bapp.schemas import CustomerWithAreas, DeadlineWarning
from bapp.services.periods import get_period_months, is_valid_period, parse_period_to_number

logger = logging.getLogger(__name__)


def days_remaining_in_month(today: date) -> int:
    return calendar.monthrange(today.year, today.month)[1] - today.day


def collect_deadline_warnings(
    tree: List[CustomerWithAreas], today: date, warning_days: int = 7
) -> List[DeadlineWarning]:
    """
    Nothing while more than warning_days remain in the month.
    Otherwise one warning per contract whose current month is active for its cadence
    and whose sub-period 1 entry is below 100%; below 50% is urgent.
    """
    remaining = days_remaining_in_month(today)
    if remaining > warning_days:
        return []
    warnings: List[DeadlineWarning] = []
    for customer in tree:
        for area in customer.areas:
            for contract in area.contracts:
                cadence = parse_period_to_number(contract.period)
                if not is_valid_period(cadence) or today.month not in get_period_months(cadence):
                    continue
                entry = next(
                    (p for p in contract.monthly_progress if p.month == today.month and p.sub_period == 1), None
                )
                if entry is None or entry.percentage >= 100:
                    continue
                warnings.append(
                    DeadlineWarning(
                        priority="urgent" if entry.percentage < 50 else "high",
                        title=f"Deadline Mendekati: {contract.name}",
                        message=(
                            f"Kontrak {contract.name} ({customer.name}) memiliki progress {entry.percentage}% "
                            f"dengan {remaining} hari tersisa di bulan ini."
                        ),
                        contract_id=contract.id,
                        contract_name=contract.name,
                        customer_name=customer.name,
                        month=today.month,
                        progress=entry.percentage,
                        days_remaining=remaining,
                    )
                )
    return warnings


async def run_deadline_check(today: Optional[date] = None) -> List[DeadlineWarning]:
    """Scheduled job: build this year's dashboard and log every warning."""
    from bapp import crud
    from bapp.config import settings
    from bapp.database import AsyncSessionLocal
    from bapp.services.progress_view import build_dashboard_tree

    today = today or date.today()
    async with AsyncSessionLocal() as db:
        data = await crud.fetch_dashboard_data(db, today.year)
    tree = build_dashboard_tree(
        data["customers"], data["areas"], data["contracts"],
        data["signatures"], data["progress"], data["signature_progress"],
    )
    warnings = collect_deadline_warnings(tree, today, settings.deadline_warning_days)
    for w in warnings:
        logger.warning("[%s] %s", w.priority, w.message)
    if not warnings:
        logger.info("deadline check %s: no open periods", today.isoformat())
    return warnings
