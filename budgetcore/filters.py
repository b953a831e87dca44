from typing import Callable, Iterable, Iterator, Optional

from budgetcore.config import ALL_DEPARTMENTS
from budgetcore.domain import Allocation

Predicate = Callable[[Allocation], bool]


def by_department(department_id: Optional[str]) -> Predicate:
    """``None`` or ``"all"`` matches every department."""
    if department_id is None or department_id == ALL_DEPARTMENTS:
        return lambda a: True

    def _filter(a: Allocation) -> bool:
        return a.department_id == department_id

    return _filter


def by_cycle(cycle_id: str) -> Predicate:
    def _filter(a: Allocation) -> bool:
        return a.cycle_id == cycle_id

    return _filter


def all_of(*preds: Predicate) -> Predicate:
    def _filter(a: Allocation) -> bool:
        return all(p(a) for p in preds)

    return _filter


def iter_allocations(
    allocs: Iterable[Allocation], pred: Predicate
) -> Iterator[Allocation]:
    for a in allocs:
        if pred(a):
            yield a
