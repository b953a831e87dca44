import logging
from collections import defaultdict
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, Optional, Set

from budgetcore.domain import ZERO, Allocation, AllocationStatus, AmountKind, DepartmentStatus
from budgetcore.filters import by_cycle, iter_allocations

logger = logging.getLogger(__name__)

IN_FLIGHT = frozenset({AllocationStatus.SUBMITTED, AllocationStatus.UNDER_REVIEW})

DISTRIBUTION_LABELS = (
    (DepartmentStatus.DRAFT, "Draft"),
    (DepartmentStatus.PENDING, "Pending"),
    (DepartmentStatus.APPROVED, "Approved"),
    (DepartmentStatus.REJECTED, "Rejected"),
    (DepartmentStatus.REVISION, "Revision"),
)


def _coerce(statuses: Iterable) -> frozenset:
    known = set()
    for s in statuses:
        try:
            known.add(AllocationStatus(s))
        except ValueError:
            logger.debug("Ignoring unknown allocation status %r", s)
    return frozenset(known)


def classify_statuses(statuses: Iterable) -> DepartmentStatus:
    """Reduce the statuses of one department's allocations to a single bucket.

    First match wins: anything in flight is pending; only-draft is draft;
    then approved, rejected and revision in that order.
    """
    s = _coerce(statuses)
    if s & IN_FLIGHT:
        return DepartmentStatus.PENDING
    if s == {AllocationStatus.DRAFT}:
        return DepartmentStatus.DRAFT
    if AllocationStatus.APPROVED in s:
        return DepartmentStatus.APPROVED
    if AllocationStatus.REJECTED in s:
        return DepartmentStatus.REJECTED
    if AllocationStatus.REVISION_REQUESTED in s:
        return DepartmentStatus.REVISION
    return DepartmentStatus.UNCLASSIFIED


def department_statuses(
    allocs: Iterable[Allocation], cycle_id: Optional[str] = None
) -> Dict[str, Set[AllocationStatus]]:
    if cycle_id is not None:
        allocs = iter_allocations(allocs, by_cycle(cycle_id))
    grouped: Dict[str, Set[AllocationStatus]] = defaultdict(set)
    for a in allocs:
        grouped[a.department_id].add(a.status)
    return dict(grouped)


def classify_departments(
    allocs: Iterable[Allocation], cycle_id: Optional[str] = None
) -> Dict[str, DepartmentStatus]:
    return {
        dept: classify_statuses(statuses)
        for dept, statuses in department_statuses(allocs, cycle_id).items()
    }


@dataclass(frozen=True)
class StatusSummary:
    draft: int = 0
    pending: int = 0
    approved: int = 0
    rejected: int = 0
    revision: int = 0
    unclassified: int = 0  # not part of total

    @property
    def total(self) -> int:
        return self.draft + self.pending + self.approved + self.rejected + self.revision

    def count(self, bucket: DepartmentStatus) -> int:
        return getattr(self, bucket.value)

    def as_dict(self) -> dict:
        return {
            "draft": self.draft,
            "pending": self.pending,
            "approved": self.approved,
            "rejected": self.rejected,
            "revision": self.revision,
            "total": self.total,
        }


def summarize_department_statuses(
    allocs: Iterable[Allocation], cycle_id: Optional[str] = None
) -> StatusSummary:
    counts: Dict[str, int] = defaultdict(int)
    for dept, bucket in classify_departments(allocs, cycle_id).items():
        counts[bucket.value] += 1
        if bucket == DepartmentStatus.UNCLASSIFIED:
            logger.info("Department %s matches no status bucket", dept)
    return StatusSummary(**counts)


def status_distribution(summary: StatusSummary) -> tuple[tuple[str, int], ...]:
    """Non-empty (label, count) pairs for a department status chart."""
    return tuple(
        (label, summary.count(bucket))
        for bucket, label in DISTRIBUTION_LABELS
        if summary.count(bucket) > 0
    )


@dataclass(frozen=True)
class AllocationStats:
    total_approved: Decimal = ZERO
    pending_count: int = 0
    draft_count: int = 0


def allocation_stats(
    allocs: Iterable[Allocation], department_ids: Iterable[str]
) -> AllocationStats:
    """Allocation-level counters across a manager's departments."""
    depts = frozenset(department_ids)
    total_approved = ZERO
    pending = draft = 0
    for a in allocs:
        if a.department_id not in depts:
            continue
        if a.status == AllocationStatus.APPROVED:
            total_approved += a.contribution(AmountKind.APPROVED)
        elif a.status in IN_FLIGHT:
            pending += 1
        elif a.status == AllocationStatus.DRAFT:
            draft += 1
    return AllocationStats(total_approved, pending, draft)
