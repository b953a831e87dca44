from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Optional, Union

from budgetcore.config import MONTH_LABELS, QUARTER_LABELS


ZERO = Decimal(0)


def to_amount(value: Union[Decimal, int, float, str, None]) -> Optional[Decimal]:
    """Money as Decimal; floats go through str so 0.1 stays 0.1."""
    if value is None or isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(str(value))
    return Decimal(value)


class HeadType(str, Enum):
    INCOME = "income"
    EXPENDITURE = "expenditure"


class PeriodType(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"


class AllocationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_REVIEW = "under_review"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION_REQUESTED = "revision_requested"


class DepartmentStatus(str, Enum):
    """Summary bucket of one department's allocations within a cycle."""

    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    REVISION = "revision"
    UNCLASSIFIED = "unclassified"


class AmountKind(str, Enum):
    BUDGETED = "budgeted"  # allocated_amount
    APPROVED = "approved"  # approved_amount, approved allocations only


@dataclass(frozen=True)
class BudgetHead:
    id: str
    code: str
    name: str
    type: HeadType
    parent_id: Optional[str] = None  # None for a top-level head
    display_order: int = 0

    @property
    def is_top_level(self) -> bool:
        return self.parent_id is None


@dataclass(frozen=True)
class Department:
    id: str
    name: str


@dataclass(frozen=True)
class BudgetCycle:
    id: str
    fiscal_year: str
    period_type: PeriodType
    status: str
    name: str = ""

    @property
    def period_count(self) -> int:
        if self.period_type == PeriodType.MONTHLY:
            return 12
        if self.period_type == PeriodType.QUARTERLY:
            return 4
        raise ValueError(f"Unknown period type: {self.period_type!r}")

    @property
    def period_labels(self) -> tuple[str, ...]:
        if self.period_type == PeriodType.MONTHLY:
            return MONTH_LABELS
        if self.period_type == PeriodType.QUARTERLY:
            return QUARTER_LABELS
        raise ValueError(f"Unknown period type: {self.period_type!r}")

    def period_label(self, period_number: int) -> str:
        if not 1 <= period_number <= self.period_count:
            raise ValueError(
                f"Period {period_number} outside 1..{self.period_count} for cycle {self.id}"
            )
        return self.period_labels[period_number - 1]


@dataclass(frozen=True)
class Allocation:
    id: str
    cycle_id: str
    head_id: Optional[str]
    department_id: str
    period_number: int
    allocated_amount: Optional[Decimal]
    status: AllocationStatus = AllocationStatus.DRAFT
    approved_amount: Optional[Decimal] = None

    def __post_init__(self):
        object.__setattr__(self, "allocated_amount", to_amount(self.allocated_amount))
        object.__setattr__(self, "approved_amount", to_amount(self.approved_amount))

    @property
    def is_malformed(self) -> bool:
        return self.head_id is None or self.allocated_amount is None

    def contribution(self, kind: AmountKind) -> Decimal:
        """Amount this allocation adds to an aggregate of the given kind."""
        if kind == AmountKind.BUDGETED:
            return self.allocated_amount or ZERO
        if kind == AmountKind.APPROVED:
            if self.status != AllocationStatus.APPROVED:
                return ZERO
            if self.approved_amount is not None:
                return self.approved_amount
            return self.allocated_amount or ZERO
        raise ValueError(f"Unknown amount kind: {kind!r}")


@dataclass(frozen=True)
class Snapshot:
    """Immutable working set for one cycle; hashable so it can key a cache."""

    cycle: BudgetCycle
    heads: tuple[BudgetHead, ...]
    departments: tuple[Department, ...]
    allocations: tuple[Allocation, ...]
