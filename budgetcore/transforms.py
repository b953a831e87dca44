import json
import logging
from dataclasses import fields, replace
from decimal import Decimal
from pathlib import Path
from typing import Iterable, Mapping, Union

from budgetcore.config import DEFAULT_SEED_PATH
from budgetcore.domain import (
    Allocation,
    AllocationStatus,
    BudgetCycle,
    BudgetHead,
    Department,
    HeadType,
    PeriodType,
    Snapshot,
    to_amount,
)

logger = logging.getLogger(__name__)


def _pick(cls, record: Mapping) -> dict:
    # rows may arrive pre-joined (e.g. with a nested "head" object)
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in record.items() if k in names}


def head_from_record(record: Mapping) -> BudgetHead:
    data = _pick(BudgetHead, record)
    data["type"] = HeadType(data["type"])
    return BudgetHead(**data)


def cycle_from_record(record: Mapping) -> BudgetCycle:
    data = _pick(BudgetCycle, record)
    data["period_type"] = PeriodType(data["period_type"])
    data["fiscal_year"] = str(data["fiscal_year"])
    return BudgetCycle(**data)


def allocation_from_record(record: Mapping) -> Allocation:
    data = _pick(Allocation, record)
    data.setdefault("head_id", None)
    data["allocated_amount"] = to_amount(data.get("allocated_amount"))
    data["approved_amount"] = to_amount(data.get("approved_amount"))
    # a row saved before submission may carry no status at all
    data["status"] = AllocationStatus(data.get("status") or AllocationStatus.DRAFT)
    return Allocation(**data)


def snapshot_from_records(
    cycle: Mapping,
    heads: Iterable[Mapping],
    departments: Iterable[Mapping],
    allocations: Iterable[Mapping],
) -> Snapshot:
    return Snapshot(
        cycle=cycle_from_record(cycle),
        heads=tuple(head_from_record(h) for h in heads),
        departments=tuple(Department(**_pick(Department, d)) for d in departments),
        allocations=tuple(allocation_from_record(a) for a in allocations),
    )


def load_snapshot(path: Union[str, Path] = DEFAULT_SEED_PATH) -> Snapshot:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f, parse_float=Decimal)

    snapshot = snapshot_from_records(
        data["cycle"], data["heads"], data["departments"], data["allocations"]
    )
    logger.info(
        "Loaded cycle %s: %d heads, %d departments, %d allocations",
        snapshot.cycle.id, len(snapshot.heads), len(snapshot.departments), len(snapshot.allocations),
    )
    return snapshot


def add_allocation(snapshot: Snapshot, a: Allocation) -> Snapshot:
    return replace(snapshot, allocations=snapshot.allocations + (a,))


def update_allocation(snapshot: Snapshot, allocation_id: str, **changes) -> Snapshot:
    return replace(
        snapshot,
        allocations=tuple(
            replace(a, **changes) if a.id == allocation_id else a
            for a in snapshot.allocations
        ),
    )
