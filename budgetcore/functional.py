from abc import ABC, abstractmethod
from typing import TypeVar, Generic, Optional

from budgetcore.domain import Allocation, BudgetCycle, BudgetHead

T = TypeVar('T')
E = TypeVar('E')


class Maybe(Generic[T], ABC):

    @abstractmethod
    def get_or_else(self, default: T) -> T:
        pass

    @abstractmethod
    def is_some(self) -> bool:
        pass

    def is_none(self) -> bool:
        return not self.is_some()


class Some(Maybe[T]):

    def __init__(self, value: T):
        self._value = value

    def get_or_else(self, default: T) -> T:
        return self._value

    def is_some(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"Some({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Some) and self._value == other._value


class Nothing(Maybe[T]):

    def get_or_else(self, default: T) -> T:
        return default

    def is_some(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "Nothing()"

    def __eq__(self, other) -> bool:
        return isinstance(other, Nothing)


class Either(Generic[E, T], ABC):

    @abstractmethod
    def is_right(self) -> bool:
        pass

    @abstractmethod
    def get_error(self) -> E:
        pass

    def is_left(self) -> bool:
        return not self.is_right()


class Right(Either[E, T]):

    def __init__(self, value: T):
        self._value = value

    def is_right(self) -> bool:
        return True

    def get_error(self) -> E:
        raise ValueError("Cannot get error from Right")

    def __repr__(self) -> str:
        return f"Right({self._value!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Right) and self._value == other._value


class Left(Either[E, T]):

    def __init__(self, error: E):
        self._error = error

    def is_right(self) -> bool:
        return False

    def get_error(self) -> E:
        return self._error

    def __repr__(self) -> str:
        return f"Left({self._error!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Left) and self._error == other._error


def safe_head(heads: tuple[BudgetHead, ...], head_id: Optional[str]) -> Maybe[BudgetHead]:
    for head in heads:
        if head.id == head_id:
            return Some(head)
    return Nothing()


def validate_head(
    h: BudgetHead,
    heads: tuple[BudgetHead, ...]
) -> Either[dict, BudgetHead]:
    """Check the two-level invariant for one head against the full head list."""
    if h.is_top_level:
        return Right(h)

    parent = safe_head(heads, h.parent_id)
    if parent.is_none():
        return Left({
            "error": "orphan_subhead",
            "message": f"Subhead {h.code} references unknown parent {h.parent_id}",
            "head_id": h.id,
            "parent_id": h.parent_id
        })

    if not parent.get_or_else(None).is_top_level:
        return Left({
            "error": "nested_subhead",
            "message": f"Subhead {h.code} is nested under another subhead {h.parent_id}",
            "head_id": h.id,
            "parent_id": h.parent_id
        })

    return Right(h)


def validate_allocation(
    a: Allocation,
    cycle: BudgetCycle,
    heads: tuple[BudgetHead, ...]
) -> Either[dict, Allocation]:

    if a.head_id is None:
        return Left({
            "error": "missing_head",
            "message": f"Allocation {a.id} has no budget head",
            "allocation_id": a.id
        })

    if a.allocated_amount is None:
        return Left({
            "error": "missing_amount",
            "message": f"Allocation {a.id} has no allocated amount",
            "allocation_id": a.id
        })

    if safe_head(heads, a.head_id).is_none():
        return Left({
            "error": "unknown_head",
            "message": f"Allocation {a.id} references unknown head {a.head_id}",
            "allocation_id": a.id,
            "head_id": a.head_id
        })

    if not 1 <= a.period_number <= cycle.period_count:
        return Left({
            "error": "period_out_of_range",
            "message": f"Allocation {a.id} has period {a.period_number} outside 1..{cycle.period_count}",
            "allocation_id": a.id,
            "period_number": a.period_number
        })

    if a.allocated_amount < 0 or (a.approved_amount is not None and a.approved_amount < 0):
        return Left({
            "error": "negative_amount",
            "message": f"Allocation {a.id} has a negative amount",
            "allocation_id": a.id,
            "allocated_amount": a.allocated_amount,
            "approved_amount": a.approved_amount
        })

    return Right(a)
