"""
Migration planner (pure): merge / split directives from a contract's current progress view.
"""
import pytest

from bapp.schemas import ContractWithProgress, MonthlyProgressDetail, PeriodMigrationPlanRequest
from bapp.services.period_migration import plan_period_migration
from bapp.services.periods import InvalidPeriodError


def _view(period, percentages=None, notes=None):
    percentages = percentages or {}
    notes = notes or {}
    return ContractWithProgress(
        id=1, customer_id=1, area_id=1, name="Sewa Genset", period=period, invoice_type="Pusat", year=2025,
        total_signatures=3, signatures=[], yearly_status="in_progress",
        monthly_progress=[
            MonthlyProgressDetail(month=m, year=2025, sub_period=1, percentage=percentages.get(m, 0), notes=notes.get(m))
            for m in range(1, 13)
        ],
    )


def _merges(plan):
    return [(d.target_month, d.source_month) for d in plan.config.merge_config or []]


def test_up_highest_picks_max_and_earliest_on_tie():
    view = _view("Per 1 Bulan", {1: 25, 2: 75, 3: 50, 5: 100, 7: 50, 8: 50})
    plan = plan_period_migration(view, PeriodMigrationPlanRequest(year=2025, new_period=3))
    assert plan.direction == "up"
    assert _merges(plan) == [(3, 2), (6, 5), (9, 7)]
    assert plan.affected_periods == 3
    assert plan.config.split_config is None
    assert [r.label for r in plan.active_ranges] == ["Jan - Mar", "Apr - Jun", "Jul - Sep", "Okt - Des"]


def test_up_last_uses_range_end():
    view = _view("Per 1 Bulan", {1: 25, 5: 100})
    plan = plan_period_migration(view, PeriodMigrationPlanRequest(year=2025, new_period=6, merge_mode="last"))
    assert _merges(plan) == [(6, 6)]


def test_up_manual_matches_value_or_falls_back_to_first_month():
    view = _view("Per 1 Bulan", {1: 25, 2: 50, 4: 75})
    plan = plan_period_migration(
        view, PeriodMigrationPlanRequest(year=2025, new_period=3, merge_mode="manual", manual_merge_value=50)
    )
    assert _merges(plan) == [(3, 2), (6, 4)]


def test_up_months_with_notes_only_count_as_data():
    view = _view("Per 1 Bulan", notes={8: "menunggu TTD"})
    plan = plan_period_migration(view, PeriodMigrationPlanRequest(year=2025, new_period=12))
    assert _merges(plan) == [(12, 8)]


def test_up_selected_notes_are_prefixed_with_month():
    view = _view("Per 1 Bulan", {1: 25, 2: 50}, notes={1: "a", 2: "b"})
    plan = plan_period_migration(
        view, PeriodMigrationPlanRequest(year=2025, new_period=3, selected_note_months=[2])
    )
    assert plan.config.merge_config[0].notes == ["[Feb] b"]


def test_down_duplicate_spreads_source_percentage():
    view = _view("Per 3 Bulan", {3: 75})
    plan = plan_period_migration(view, PeriodMigrationPlanRequest(year=2025, new_period=1))
    assert plan.direction == "down"
    split = plan.config.split_config
    assert len(split) == 1
    assert split[0].source_month == 3
    assert [(t.month, t.percentage) for t in split[0].target_months] == [(1, 75), (2, 75), (3, 75)]
    assert plan.config.merge_config is None


def test_down_last_only_fills_last_target():
    view = _view("Per 3 Bulan", {3: 75})
    plan = plan_period_migration(view, PeriodMigrationPlanRequest(year=2025, new_period=1, split_mode="last"))
    assert [t.percentage for t in plan.config.split_config[0].target_months] == [0, 0, 75]


def test_down_manual_values_default_to_source():
    view = _view("Per 3 Bulan", {3: 75})
    plan = plan_period_migration(
        view, PeriodMigrationPlanRequest(year=2025, new_period=1, split_mode="manual", manual_split_values={1: 25})
    )
    assert [t.percentage for t in plan.config.split_config[0].target_months] == [25, 75, 75]


def test_down_six_to_three():
    view = _view("Per 6 Bulan", {6: 50, 12: 100})
    plan = plan_period_migration(view, PeriodMigrationPlanRequest(year=2025, new_period=3))
    assert [(d.source_month, [t.month for t in d.target_months]) for d in plan.config.split_config] == [
        (6, [3, 6]),
        (12, [9, 12]),
    ]


def test_down_without_data_has_no_directives():
    plan = plan_period_migration(_view("Per 3 Bulan"), PeriodMigrationPlanRequest(year=2025, new_period=1))
    assert plan.affected_periods == 0
    assert plan.config.split_config is None


def test_to_half_month_and_same_period():
    view = _view("Per 1 Bulan", {1: 100})
    plan = plan_period_migration(
        view, PeriodMigrationPlanRequest(year=2025, new_period=0.5, half_month_mode="empty")
    )
    assert plan.direction == "to_half_month"
    assert plan.config.half_month_mode == "empty"
    assert plan.affected_periods == 0
    assert plan_period_migration(view, PeriodMigrationPlanRequest(year=2025, new_period=1)).direction == "none"


def test_down_from_unsupported_stored_period_raises():
    view = _view("Per 5 Bulan", {5: 100})
    with pytest.raises(InvalidPeriodError):
        plan_period_migration(view, PeriodMigrationPlanRequest(year=2025, new_period=1))
