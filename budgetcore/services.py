import logging
from collections import Counter
from typing import Any, Callable, Dict, Optional, Sequence

from budgetcore.config import ALL_DEPARTMENTS, MAX_ALLOCATIONS
from budgetcore.domain import Snapshot
from budgetcore.functional import validate_allocation, validate_head
from budgetcore.hierarchy import HeadHierarchyIndex
from budgetcore.projector import ViewProjector, department_breakdown
from budgetcore.rollup import RollupEngine
from budgetcore.status import status_distribution, summarize_department_statuses

logger = logging.getLogger(__name__)

Validator = Callable[[Snapshot, HeadHierarchyIndex], Sequence[str]]
Calculator = Callable[..., Dict[str, Any]]


class DashboardService:
    """Facade running integrity checks and projections for one cycle snapshot.

    validators: functions taking (snapshot, index) -> Sequence[str] of data-integrity messages
    calculators: functions taking (projector, snapshot, acc) -> dict (partial results)
    """

    def __init__(self, validators: Sequence[Validator], calculators: Sequence[Calculator]):
        self.validators = validators
        self.calculators = calculators

    def cycle_report(self, snapshot: Snapshot, department_id: Optional[str] = ALL_DEPARTMENTS) -> Dict[str, Any]:
        """Run validators and calculators and return an aggregated report with intermediate steps."""
        index = HeadHierarchyIndex(snapshot.heads)
        engine = RollupEngine.from_snapshot(snapshot, department_id, index)
        projector = ViewProjector(engine)
        report = {
            "cycle": snapshot.cycle.id,
            "department": engine.department_id,
            "validation": [],
            "steps": [],
            "result": {}
        }

        # a failing validator must not blank the dashboard
        for v in self.validators:
            try:
                msgs = v(snapshot, index)
            except Exception as e:
                logger.exception("Validator %s failed", getattr(v, "__name__", v))
                msgs = [f"validator_error: {e}"]
            report["validation"].append({"validator": getattr(v, "__name__", str(v)), "messages": list(msgs)})

        acc: Dict[str, Any] = {}
        for calc in self.calculators:
            out = calc(projector, snapshot, acc)
            report["steps"].append({"calculator": getattr(calc, "__name__", str(calc)), "output": out})
            if isinstance(out, dict):
                acc.update(out)

        report["result"] = acc
        return report


def check_head_structure(snapshot: Snapshot, index: HeadHierarchyIndex) -> list[str]:
    msgs = []
    for h in index.orphans + index.nested:
        result = validate_head(h, snapshot.heads)
        if result.is_left():
            msgs.append(result.get_error()["message"])
    for h in index.duplicates:
        msgs.append(f"Duplicate head id {h.id} ({h.code}) ignored")
    return msgs


def check_allocations(snapshot: Snapshot, index: HeadHierarchyIndex) -> list[str]:
    errors: Counter = Counter()
    foreign = 0
    for a in snapshot.allocations:
        if a.cycle_id != snapshot.cycle.id:
            foreign += 1
            continue
        result = validate_allocation(a, snapshot.cycle, snapshot.heads)
        if result.is_left():
            errors[result.get_error()["error"]] += 1
        elif not index.is_indexed(a.head_id):
            errors["excluded_head"] += 1
    msgs = [f"{code}: {n} allocation(s)" for code, n in sorted(errors.items())]
    if foreign:
        msgs.append(f"other_cycle: {foreign} allocation(s) belong to another cycle")
    return msgs


def check_working_set(snapshot: Snapshot, index: HeadHierarchyIndex) -> list[str]:
    n = len(snapshot.allocations)
    if n > MAX_ALLOCATIONS:
        logger.warning("Working set of %d allocations exceeds the cap of %d", n, MAX_ALLOCATIONS)
        return [f"working_set_too_large: {n} > {MAX_ALLOCATIONS}"]
    return []


def calc_overview(projector: ViewProjector, snapshot: Snapshot, acc=None) -> Dict[str, Any]:
    return {"overview": projector.overview_totals()}


def calc_period_breakdown(projector: ViewProjector, snapshot: Snapshot, acc=None) -> Dict[str, Any]:
    return {"periods": projector.period_breakdown()}


def calc_head_wise(projector: ViewProjector, snapshot: Snapshot, acc=None) -> Dict[str, Any]:
    return {"head_wise": projector.head_wise_totals()}


def calc_grid(projector: ViewProjector, snapshot: Snapshot, acc=None) -> Dict[str, Any]:
    return {"grid": projector.detailed_grid()}


def calc_status_summary(projector: ViewProjector, snapshot: Snapshot, acc=None) -> Dict[str, Any]:
    summary = summarize_department_statuses(snapshot.allocations, snapshot.cycle.id)
    return {"status_summary": summary, "status_distribution": status_distribution(summary)}


def calc_department_breakdown(projector: ViewProjector, snapshot: Snapshot, acc=None) -> Dict[str, Any]:
    return {"departments": department_breakdown(snapshot)}


DEFAULT_VALIDATORS = (check_head_structure, check_allocations, check_working_set)
DEFAULT_CALCULATORS = (calc_overview, calc_period_breakdown, calc_head_wise, calc_grid, calc_status_summary,
                       calc_department_breakdown)


def default_service() -> DashboardService:
    return DashboardService(validators=DEFAULT_VALIDATORS, calculators=DEFAULT_CALCULATORS)
