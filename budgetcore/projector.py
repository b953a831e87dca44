import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from types import MappingProxyType
from typing import Dict, Mapping, Optional, Set, Union

from budgetcore.config import ALL_DEPARTMENTS, EMPTY_CELL_TEXT
from budgetcore.domain import (
    ZERO,
    AllocationStatus,
    AmountKind,
    BudgetHead,
    DepartmentStatus,
    HeadType,
    Snapshot,
)
from budgetcore.filters import by_cycle, iter_allocations
from budgetcore.hierarchy import HeadHierarchyIndex
from budgetcore.rollup import RollupEngine
from budgetcore.status import StatusSummary, classify_statuses, summarize_department_statuses

logger = logging.getLogger(__name__)


class _EmptyCell:
    """Grid cell with nothing booked; distinct from a real amount of 0."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return EMPTY_CELL_TEXT

    def __repr__(self) -> str:
        return "EMPTY"

    def __reduce__(self):
        return (_EmptyCell, ())


EMPTY = _EmptyCell()

Cell = Union[Decimal, _EmptyCell]


def as_cell(amount: Decimal) -> Cell:
    return amount if amount > 0 else EMPTY


@dataclass(frozen=True)
class OverviewTotals:
    income: Decimal
    expense: Decimal
    approved_income: Decimal
    approved_expense: Decimal

    @property
    def net(self) -> Decimal:
        return self.income - self.expense

    @property
    def approved_net(self) -> Decimal:
        return self.approved_income - self.approved_expense


@dataclass(frozen=True)
class PeriodTotals:
    period: int
    label: str
    income: Decimal
    expense: Decimal


@dataclass(frozen=True)
class SubheadTotal:
    subhead: BudgetHead
    total: Decimal


@dataclass(frozen=True)
class HeadTotal:
    head: BudgetHead
    total: Decimal
    subheads: tuple[SubheadTotal, ...]


@dataclass(frozen=True)
class GridRow:
    head: BudgetHead
    is_subhead: bool
    cells: tuple[Cell, ...]
    total: Decimal


@dataclass(frozen=True)
class GridSection:
    head_type: HeadType
    period_labels: tuple[str, ...]
    rows: tuple[GridRow, ...]
    total: Decimal


class ViewProjector:
    """Presentation-ready shapes over one engine (one snapshot, one filter)."""

    def __init__(self, engine: RollupEngine):
        self.engine = engine

    def overview_totals(self) -> OverviewTotals:
        agg = self.engine.type_aggregate
        return OverviewTotals(
            income=agg(HeadType.INCOME, AmountKind.BUDGETED),
            expense=agg(HeadType.EXPENDITURE, AmountKind.BUDGETED),
            approved_income=agg(HeadType.INCOME, AmountKind.APPROVED),
            approved_expense=agg(HeadType.EXPENDITURE, AmountKind.APPROVED),
        )

    def period_breakdown(self) -> tuple[PeriodTotals, ...]:
        e = self.engine
        return tuple(
            PeriodTotals(
                period=p,
                label=e.cycle.period_label(p),
                income=e.type_period_total(HeadType.INCOME, p),
                expense=e.type_period_total(HeadType.EXPENDITURE, p),
            )
            for p in range(1, e.period_count + 1)
        )

    def head_totals(self, head_type: HeadType) -> tuple[HeadTotal, ...]:
        """Top-level heads of one type with their subheads; all-zero groups are left out."""
        e = self.engine
        result = []
        for head in e.index.top_level_of_type(head_type):
            subs = tuple(
                SubheadTotal(sub, e.head_direct_total(sub.id))
                for sub in e.index.children_of(head.id)
            )
            total = e.hierarchical_total(head.id)
            if total > 0 or any(s.total > 0 for s in subs):
                result.append(HeadTotal(head, total, subs))
        return tuple(result)

    def head_wise_totals(self) -> Dict[HeadType, tuple[HeadTotal, ...]]:
        return {t: self.head_totals(t) for t in HeadType}

    def grid_section(self, head_type: HeadType) -> GridSection:
        e = self.engine
        rows = []
        for head in e.index.top_level_of_type(head_type):
            rows.append(GridRow(
                head=head,
                is_subhead=False,
                cells=tuple(as_cell(v) for v in e.combined_period_row(head.id)),
                total=e.hierarchical_total(head.id),
            ))
            for sub in e.index.children_of(head.id):
                rows.append(GridRow(
                    head=sub,
                    is_subhead=True,
                    cells=tuple(as_cell(v) for v in e.period_matrix_row(sub.id)),
                    total=e.head_direct_total(sub.id),
                ))
        return GridSection(
            head_type=head_type,
            period_labels=e.cycle.period_labels,
            rows=tuple(rows),
            total=e.type_aggregate(head_type),
        )

    def detailed_grid(self) -> Dict[HeadType, GridSection]:
        return {t: self.grid_section(t) for t in HeadType}


UNASSIGNED = "Unassigned"


@dataclass(frozen=True)
class DepartmentBudget:
    department_id: Optional[str]  # None collects allocations of unknown departments
    name: str
    allocated: Decimal
    approved: Decimal
    pending: int  # submitted allocations
    status: Optional[DepartmentStatus]  # None when the department has no allocations


def department_breakdown(snapshot: Snapshot) -> tuple[DepartmentBudget, ...]:
    """Budget per department for the cycle, sorted by name.

    Every known department gets a row, with zeros when nothing is booked.
    """
    names = {d.id: d.name for d in snapshot.departments}
    allocated: Dict[Optional[str], Decimal] = defaultdict(lambda: ZERO)
    approved: Dict[Optional[str], Decimal] = defaultdict(lambda: ZERO)
    pending: Dict[Optional[str], int] = defaultdict(int)
    statuses: Dict[Optional[str], Set[AllocationStatus]] = defaultdict(set)

    for a in iter_allocations(snapshot.allocations, by_cycle(snapshot.cycle.id)):
        key = a.department_id if a.department_id in names else None
        allocated[key] += a.contribution(AmountKind.BUDGETED)
        approved[key] += a.contribution(AmountKind.APPROVED)
        if a.status == AllocationStatus.SUBMITTED:
            pending[key] += 1
        statuses[key].add(a.status)

    rows = [
        DepartmentBudget(
            department_id=key,
            name=names.get(key, UNASSIGNED),
            allocated=allocated[key],
            approved=approved[key],
            pending=pending[key],
            status=classify_statuses(statuses[key]) if key in statuses else None,
        )
        for key in set(names) | set(statuses)
    ]
    return tuple(sorted(rows, key=lambda r: (r.name, r.department_id or "")))


@dataclass(frozen=True)
class DashboardView:
    department_id: str
    overview: OverviewTotals
    periods: tuple[PeriodTotals, ...]
    head_wise: Mapping[HeadType, tuple[HeadTotal, ...]]  # read-only
    grid: Mapping[HeadType, GridSection]  # read-only
    status_summary: StatusSummary
    departments: tuple[DepartmentBudget, ...]


def build_dashboard(
    snapshot: Snapshot,
    department_id: Optional[str] = ALL_DEPARTMENTS,
    index: Optional[HeadHierarchyIndex] = None,
) -> DashboardView:
    engine = RollupEngine.from_snapshot(snapshot, department_id, index)
    projector = ViewProjector(engine)
    return DashboardView(
        department_id=engine.department_id,
        overview=projector.overview_totals(),
        periods=projector.period_breakdown(),
        head_wise=MappingProxyType(projector.head_wise_totals()),
        grid=MappingProxyType(projector.detailed_grid()),
        # status cards and the department table ignore the department filter
        status_summary=summarize_department_statuses(snapshot.allocations, snapshot.cycle.id),
        departments=department_breakdown(snapshot),
    )


@lru_cache(maxsize=64)
def project_dashboard(snapshot: Snapshot, department_id: str = ALL_DEPARTMENTS) -> DashboardView:
    """Memoised ``build_dashboard`` keyed by (snapshot, department filter)."""
    logger.debug("Recomputing dashboard for cycle %s, department %s", snapshot.cycle.id, department_id)
    return build_dashboard(snapshot, department_id)
