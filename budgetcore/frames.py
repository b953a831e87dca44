from typing import Mapping

import pandas as pd

from budgetcore.config import EMPTY_CELL_TEXT
from budgetcore.domain import HeadType
from budgetcore.projector import EMPTY, DepartmentBudget, GridSection, HeadTotal, PeriodTotals


def period_breakdown_frame(periods: tuple[PeriodTotals, ...]) -> pd.DataFrame:
    df = pd.DataFrame(
        [{"period": p.label, "income": p.income, "expense": p.expense} for p in periods],
        columns=["period", "income", "expense"],
    )
    df["net"] = df["income"] - df["expense"]
    return df


def head_wise_frame(head_wise: Mapping[HeadType, tuple[HeadTotal, ...]]) -> pd.DataFrame:
    rows = []
    for head_type, heads in head_wise.items():
        for h in heads:
            rows.append({"type": head_type.value, "code": h.head.code, "name": h.head.name,
                         "level": 0, "total": h.total})
            for s in h.subheads:
                rows.append({"type": head_type.value, "code": s.subhead.code, "name": s.subhead.name,
                             "level": 1, "total": s.total})
    return pd.DataFrame(rows, columns=["type", "code", "name", "level", "total"])


def grid_frame(section: GridSection, empty: str = EMPTY_CELL_TEXT) -> pd.DataFrame:
    """One row per head; empty period cells become ``empty`` text, totals stay numeric."""
    records = []
    for row in section.rows:
        rec = {"head": f"{row.head.code} - {row.head.name}", "subhead": row.is_subhead}
        for label, cell in zip(section.period_labels, row.cells):
            rec[label] = empty if cell is EMPTY else cell
        rec["Total"] = row.total
        records.append(rec)
    columns = ["head", "subhead", *section.period_labels, "Total"]
    return pd.DataFrame(records, columns=columns)


def department_breakdown_frame(departments: tuple[DepartmentBudget, ...]) -> pd.DataFrame:
    df = pd.DataFrame(
        [{"department": d.name, "allocated": d.allocated, "approved": d.approved,
          "pending": d.pending, "status": d.status.value if d.status else None}
         for d in departments],
        columns=["department", "allocated", "approved", "pending", "status"],
    )
    return df
