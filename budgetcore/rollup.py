"""Numeric aggregation over one cycle's allocations.

All sums are tabulated once per engine into a head x period table, one
table per amount kind; every query below is answered from those tables.
Build a new engine when the snapshot or the department filter changes.
"""
import logging
from decimal import Decimal
from typing import Dict, Iterable, List, NamedTuple, Optional

from budgetcore.config import ALL_DEPARTMENTS
from budgetcore.domain import ZERO, Allocation, AmountKind, BudgetCycle, HeadType, Snapshot
from budgetcore.filters import all_of, by_cycle, by_department, iter_allocations
from budgetcore.hierarchy import HeadHierarchyIndex

logger = logging.getLogger(__name__)


class SkipCounts(NamedTuple):
    malformed: int = 0
    unknown_head: int = 0
    period_out_of_range: int = 0

    @property
    def total(self) -> int:
        return self.malformed + self.unknown_head + self.period_out_of_range


class RollupEngine:

    def __init__(
        self,
        cycle: BudgetCycle,
        index: HeadHierarchyIndex,
        allocations: Iterable[Allocation],
        department_id: Optional[str] = ALL_DEPARTMENTS,
    ):
        self.cycle = cycle
        self.index = index
        self.department_id = department_id or ALL_DEPARTMENTS
        self.period_count = cycle.period_count

        self._table: Dict[AmountKind, Dict[str, List[Decimal]]] = {k: {} for k in AmountKind}
        malformed = unknown = out_of_range = 0

        pred = all_of(by_cycle(cycle.id), by_department(self.department_id))
        for a in iter_allocations(allocations, pred):
            if a.is_malformed:
                malformed += 1
                continue
            if not index.is_indexed(a.head_id):
                unknown += 1
                continue
            if not 1 <= a.period_number <= self.period_count:
                out_of_range += 1
                continue
            for kind, rows in self._table.items():
                row = rows.setdefault(a.head_id, [ZERO] * self.period_count)
                row[a.period_number - 1] += a.contribution(kind)

        self.skipped = SkipCounts(malformed, unknown, out_of_range)
        if self.skipped.total:
            logger.warning(
                "Cycle %s (department %s): %d allocation(s) contribute nothing "
                "(malformed=%d, unknown head=%d, period out of range=%d)",
                cycle.id, self.department_id, self.skipped.total,
                malformed, unknown, out_of_range,
            )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: Snapshot,
        department_id: Optional[str] = ALL_DEPARTMENTS,
        index: Optional[HeadHierarchyIndex] = None,
    ) -> "RollupEngine":
        if index is None:
            index = HeadHierarchyIndex(snapshot.heads)
        return cls(snapshot.cycle, index, snapshot.allocations, department_id)

    def _check_period(self, period: int) -> None:
        if not 1 <= period <= self.period_count:
            raise ValueError(f"Period {period} outside 1..{self.period_count}")

    def period_matrix_row(
        self, head_id: str, kind: AmountKind = AmountKind.BUDGETED
    ) -> tuple[Decimal, ...]:
        """Direct amount of the head in each period, periods 1..period_count."""
        row = self._table[kind].get(head_id)
        if row is None:
            return (ZERO,) * self.period_count
        return tuple(row)

    def head_direct_total(
        self,
        head_id: str,
        period: Optional[int] = None,
        kind: AmountKind = AmountKind.BUDGETED,
    ) -> Decimal:
        """Sum over allocations booked on exactly this head; 0 when there are none."""
        row = self.period_matrix_row(head_id, kind)
        if period is None:
            return sum(row, ZERO)
        self._check_period(period)
        return row[period - 1]

    def hierarchical_total(
        self,
        top_id: str,
        period: Optional[int] = None,
        kind: AmountKind = AmountKind.BUDGETED,
    ) -> Decimal:
        """Rollup of a top-level head: its direct total plus each direct subhead's."""
        total = self.head_direct_total(top_id, period, kind)
        for sub in self.index.children_of(top_id):
            total += self.head_direct_total(sub.id, period, kind)
        return total

    def combined_period_row(
        self, top_id: str, kind: AmountKind = AmountKind.BUDGETED
    ) -> tuple[Decimal, ...]:
        """Per-period rollup of a top-level head and its subheads."""
        return tuple(
            self.hierarchical_total(top_id, p, kind)
            for p in range(1, self.period_count + 1)
        )

    def type_aggregate(
        self, head_type: HeadType, kind: AmountKind = AmountKind.BUDGETED
    ) -> Decimal:
        return sum(
            (self.hierarchical_total(h.id, None, kind)
             for h in self.index.top_level_of_type(head_type)),
            ZERO,
        )

    def type_period_total(
        self,
        head_type: HeadType,
        period: int,
        kind: AmountKind = AmountKind.BUDGETED,
    ) -> Decimal:
        self._check_period(period)
        return sum(
            (self.head_direct_total(h.id, period, kind)
             for h in self.index.heads_of_type(head_type)),
            ZERO,
        )
