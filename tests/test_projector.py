from decimal import Decimal

import pytest

from budgetcore.domain import (
    Allocation,
    AllocationStatus,
    AmountKind,
    BudgetCycle,
    BudgetHead,
    Department,
    DepartmentStatus,
    HeadType,
    PeriodType,
    Snapshot,
)
from budgetcore.projector import (
    EMPTY,
    UNASSIGNED,
    ViewProjector,
    build_dashboard,
    department_breakdown,
    project_dashboard,
)
from budgetcore.rollup import RollupEngine
from budgetcore.transforms import update_allocation


def make_sample():
    cycle = BudgetCycle("c1", "2025", PeriodType.MONTHLY, "open", "FY 2025")
    heads = (
        BudgetHead("A", "I100", "Revenue", HeadType.INCOME, None, 1),
        BudgetHead("A1", "I110", "Fees", HeadType.INCOME, "A", 2),
    )
    depts = (Department("dept1", "Operations"), Department("dept2", "Finance"))
    allocs = (
        Allocation("x1", "c1", "A", "dept1", 1, 100),
        Allocation("x2", "c1", "A1", "dept1", 1, 50),
    )
    return Snapshot(cycle, heads, depts, allocs)


def make_mixed():
    snap = make_sample()
    heads = snap.heads + (
        BudgetHead("B", "E100", "Salaries", HeadType.EXPENDITURE, None, 10),
        BudgetHead("B1", "E110", "Staff", HeadType.EXPENDITURE, "B", 11),
        BudgetHead("C", "E200", "Travel", HeadType.EXPENDITURE, None, 20),
    )
    allocs = snap.allocations + (
        Allocation("x3", "c1", "A1", "dept2", 4, 30, AllocationStatus.APPROVED, 25),
        Allocation("x4", "c1", "B1", "dept1", 4, 80, AllocationStatus.SUBMITTED, 70),
        Allocation("x5", "c1", "B", "dept2", 12, 60, AllocationStatus.APPROVED),
    )
    return Snapshot(snap.cycle, heads, snap.departments, allocs)


def projector_for(snap, dept="all"):
    return ViewProjector(RollupEngine.from_snapshot(snap, dept))


def test_end_to_end_monthly_scenario():
    snap = make_sample()
    engine = RollupEngine.from_snapshot(snap)
    projector = ViewProjector(engine)
    assert engine.hierarchical_total("A") == 150
    assert projector.overview_totals().income == 150
    periods = projector.period_breakdown()
    assert len(periods) == 12
    assert periods[0].label == "Jan"
    assert periods[0].income == 150
    assert all(p.income == 0 for p in periods[1:])


def test_filter_to_department_without_allocations():
    projector = projector_for(make_sample(), "dept2")
    overview = projector.overview_totals()
    assert (overview.income, overview.expense, overview.approved_income, overview.approved_expense) == (0, 0, 0, 0)
    assert all(p.income == 0 and p.expense == 0 for p in projector.period_breakdown())
    assert projector.head_wise_totals()[HeadType.INCOME] == ()


def test_net_budget_identity():
    snap = make_mixed()
    engine = RollupEngine.from_snapshot(snap)
    overview = ViewProjector(engine).overview_totals()
    assert overview.net == engine.type_aggregate(HeadType.INCOME) - engine.type_aggregate(HeadType.EXPENDITURE)
    assert overview.net == 180 - 140
    assert overview.approved_net == 25 - 60


def test_approved_amount_on_submitted_allocation_is_ignored():
    snap = make_mixed()
    before = projector_for(snap).overview_totals()
    changed = update_allocation(snap, "x4", approved_amount=5000)
    after = projector_for(changed).overview_totals()
    assert after.approved_income == before.approved_income
    assert after.approved_expense == before.approved_expense == 60


def test_period_breakdown_matches_overview():
    projector = projector_for(make_mixed())
    periods = projector.period_breakdown()
    overview = projector.overview_totals()
    assert sum(p.income for p in periods) == overview.income
    assert sum(p.expense for p in periods) == overview.expense
    assert periods[3].income == 30
    assert periods[3].expense == 80
    assert periods[11].label == "Dec"


def test_head_wise_totals_shape_and_order():
    head_wise = projector_for(make_mixed()).head_wise_totals()
    income = head_wise[HeadType.INCOME]
    assert [h.head.id for h in income] == ["A"]
    assert income[0].total == 180
    assert [(s.subhead.id, s.total) for s in income[0].subheads] == [("A1", 80)]
    # travel has nothing booked and no subheads
    assert [h.head.id for h in head_wise[HeadType.EXPENDITURE]] == ["B"]


def test_head_wise_totals_consistent_with_overview():
    projector = projector_for(make_mixed(), "dept1")
    for head_type, field in ((HeadType.INCOME, "income"), (HeadType.EXPENDITURE, "expense")):
        total = sum(h.total for h in projector.head_wise_totals()[head_type])
        assert total == getattr(projector.overview_totals(), field)


def test_detailed_grid_rows_and_empty_cells():
    grid = projector_for(make_mixed()).detailed_grid()
    income = grid[HeadType.INCOME]
    assert len(income.period_labels) == 12
    top, sub = income.rows
    assert (top.head.id, top.is_subhead, sub.head.id, sub.is_subhead) == ("A", False, "A1", True)
    assert top.cells[0] == 150
    assert top.cells[3] == 30
    assert top.cells[1] is EMPTY
    assert sub.cells[0] == 50
    assert top.total == 180
    assert sub.total == 80
    assert income.total == 180


def test_detailed_grid_keeps_zero_heads_with_numeric_total():
    expenditure = projector_for(make_mixed()).detailed_grid()[HeadType.EXPENDITURE]
    travel = [r for r in expenditure.rows if r.head.id == "C"][0]
    assert all(c is EMPTY for c in travel.cells)
    assert travel.total == 0


def test_grid_rows_sum_to_totals():
    grid = projector_for(make_mixed()).detailed_grid()
    for section in grid.values():
        for row in section.rows:
            assert sum(c for c in row.cells if c is not EMPTY) == row.total


def test_empty_marker_is_distinct_from_zero():
    assert EMPTY != 0
    assert not EMPTY
    assert str(EMPTY) == "-"


def test_projections_are_idempotent():
    snap = make_mixed()
    first = build_dashboard(snap, "dept1")
    second = build_dashboard(snap, "dept1")
    assert first == second


def test_project_dashboard_is_memoised_per_filter():
    snap = make_mixed()
    assert project_dashboard(snap, "all") is project_dashboard(snap, "all")
    assert project_dashboard(snap, "dept2") is not project_dashboard(snap, "all")


def test_dashboard_status_summary_ignores_filter():
    snap = make_mixed()
    view = build_dashboard(snap, "dept2")
    assert view.status_summary.pending == 1
    assert view.status_summary.approved == 1
    assert view.status_summary.total == 2
    assert view.overview.approved_income == 25


def test_approved_kind_on_grid_source():
    engine = RollupEngine.from_snapshot(make_mixed())
    assert engine.hierarchical_total("B", kind=AmountKind.APPROVED) == 60


def make_fractional():
    cycle = BudgetCycle("c1", "2025", PeriodType.QUARTERLY, "open")
    heads = (
        BudgetHead("A", "I100", "Revenue", HeadType.INCOME, None, 1),
        BudgetHead("A1", "I110", "Fees", HeadType.INCOME, "A", 2),
    )
    allocs = (
        Allocation("f1", "c1", "A", "dept1", 1, 0.1),
        Allocation("f2", "c1", "A1", "dept1", 1, 0.1),
        Allocation("f3", "c1", "A", "dept1", 2, 0.2),
        Allocation("f4", "c1", "A1", "dept1", 2, 0.3),
    )
    return Snapshot(cycle, heads, (), allocs)


def test_fractional_amounts_keep_identities_exact():
    projector = projector_for(make_fractional())
    engine = projector.engine
    assert sum(engine.combined_period_row("A"), Decimal(0)) == engine.hierarchical_total("A")
    assert engine.hierarchical_total("A") == Decimal("0.7")
    assert engine.combined_period_row("A")[:2] == (Decimal("0.2"), Decimal("0.5"))
    for row in projector.detailed_grid()[HeadType.INCOME].rows:
        assert sum((c for c in row.cells if c is not EMPTY), Decimal(0)) == row.total
    periods = projector.period_breakdown()
    assert sum((p.income for p in periods), Decimal(0)) == projector.overview_totals().income
    assert projector.overview_totals().income == Decimal("0.7")


def test_department_breakdown_rows():
    snap = make_mixed()
    depts = snap.departments + (Department("dept3", "Legal"),)
    allocs = snap.allocations + (Allocation("g1", "c1", "A", "ghost", 2, 5),)
    snap = Snapshot(snap.cycle, snap.heads, depts, allocs)

    rows = department_breakdown(snap)
    assert [r.name for r in rows] == ["Finance", "Legal", "Operations", UNASSIGNED]
    finance, legal, ops, unassigned = rows

    assert (finance.allocated, finance.approved, finance.pending) == (90, 85, 0)
    assert finance.status == DepartmentStatus.APPROVED

    assert (legal.department_id, legal.allocated, legal.approved, legal.pending) == ("dept3", 0, 0, 0)
    assert legal.status is None

    # x4 is submitted, so its approved_amount of 70 does not count
    assert (ops.allocated, ops.approved, ops.pending) == (230, 0, 1)
    assert ops.status == DepartmentStatus.PENDING

    assert unassigned.department_id is None
    assert (unassigned.allocated, unassigned.status) == (5, DepartmentStatus.DRAFT)


def test_department_breakdown_ignores_other_cycles_and_filter():
    snap = make_mixed()
    snap = Snapshot(snap.cycle, snap.heads, snap.departments,
                    snap.allocations + (Allocation("o1", "c9", "A", "dept2", 1, 1000),))
    rows = build_dashboard(snap, "dept2").departments
    assert rows == department_breakdown(snap)
    assert [(r.name, r.allocated) for r in rows] == [("Finance", 90), ("Operations", 230)]


def test_department_breakdown_of_empty_snapshot():
    cycle = BudgetCycle("c1", "2025", PeriodType.QUARTERLY, "open")
    rows = department_breakdown(Snapshot(cycle, (), (Department("d1", "Ops"),), ()))
    assert len(rows) == 1
    assert (rows[0].allocated, rows[0].approved, rows[0].pending, rows[0].status) == (0, 0, 0, None)


def test_cached_dashboard_is_read_only():
    snap = make_mixed()
    view = project_dashboard(snap)
    with pytest.raises(TypeError):
        view.head_wise[HeadType.INCOME] = ()
    with pytest.raises(TypeError):
        del view.grid[HeadType.EXPENDITURE]
    again = project_dashboard(snap)
    assert again is view
    assert again == build_dashboard(snap)
    assert [h.head.id for h in again.head_wise[HeadType.INCOME]] == ["A"]
    assert HeadType.EXPENDITURE in again.grid
