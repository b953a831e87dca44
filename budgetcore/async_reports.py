import asyncio
from decimal import Decimal
from typing import Dict, Iterable

from budgetcore.config import ALL_DEPARTMENTS
from budgetcore.domain import ZERO, HeadType, Snapshot
from budgetcore.hierarchy import HeadHierarchyIndex
from budgetcore.projector import DashboardView, OverviewTotals, ViewProjector, build_dashboard
from budgetcore.rollup import RollupEngine


async def department_dashboards(
    snapshot: Snapshot, department_ids: Iterable[str]
) -> Dict[str, DashboardView]:
    """Build one dashboard per department filter concurrently.

    Every task reads the same immutable snapshot and shares one head index;
    nothing is mutated, so the tasks need no coordination.
    """
    index = HeadHierarchyIndex(snapshot.heads)

    async def one(dept: str) -> tuple[str, DashboardView]:
        view = build_dashboard(snapshot, dept, index)
        await asyncio.sleep(0)  # cooperate
        return dept, view

    results = await asyncio.gather(*(one(d) for d in department_ids))
    return {k: v for k, v in results}


async def overview_by_department(snapshot: Snapshot) -> Dict[str, OverviewTotals]:
    """Overview totals for every known department plus the ``"all"`` filter."""
    index = HeadHierarchyIndex(snapshot.heads)
    keys = [ALL_DEPARTMENTS] + [d.id for d in snapshot.departments]

    async def one(dept: str) -> tuple[str, OverviewTotals]:
        engine = RollupEngine.from_snapshot(snapshot, dept, index)
        await asyncio.sleep(0)
        return dept, ViewProjector(engine).overview_totals()

    results = await asyncio.gather(*(one(d) for d in keys))
    return {k: v for k, v in results}


def departments_total(overviews: Dict[str, OverviewTotals], head_type: HeadType) -> Decimal:
    """Sum of the per-department totals of one type, excluding the ``"all"`` entry."""
    field = "income" if head_type == HeadType.INCOME else "expense"
    return sum(
        (getattr(o, field) for dept, o in overviews.items() if dept != ALL_DEPARTMENTS),
        ZERO,
    )
