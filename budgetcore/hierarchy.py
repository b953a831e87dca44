import logging
from enum import Enum
from typing import Dict, Iterable, List, NamedTuple, Optional

from budgetcore.domain import BudgetHead, HeadType

logger = logging.getLogger(__name__)


class HeadRole(str, Enum):
    TOP_LEVEL = "top_level"
    SUBHEAD = "subhead"


class HeadPosition(NamedTuple):
    role: HeadRole
    parent_id: Optional[str]


def _ordered(heads: Iterable[BudgetHead]) -> tuple[BudgetHead, ...]:
    return tuple(sorted(heads, key=lambda h: h.display_order))


class HeadHierarchyIndex:
    """Two-level head tree: id-indexed arena plus a parent -> children map.

    Subheads whose parent is unknown (orphans) or is itself a subhead
    (nested) are kept out of the tree and listed separately; they take
    no part in any rollup.
    """

    def __init__(self, heads: Iterable[BudgetHead]):
        arena: Dict[str, BudgetHead] = {}
        duplicates: List[BudgetHead] = []
        for h in heads:
            if h.id in arena:
                duplicates.append(h)
                continue
            arena[h.id] = h

        top_level = [h for h in arena.values() if h.is_top_level]
        children: Dict[str, List[BudgetHead]] = {h.id: [] for h in top_level}
        orphans: List[BudgetHead] = []
        nested: List[BudgetHead] = []

        for h in arena.values():
            if h.is_top_level:
                continue
            parent = arena.get(h.parent_id)
            if parent is None:
                orphans.append(h)
            elif not parent.is_top_level:
                nested.append(h)
            else:
                children[parent.id].append(h)

        self._arena = arena
        self.top_level: tuple[BudgetHead, ...] = _ordered(top_level)
        self._children: Dict[str, tuple[BudgetHead, ...]] = {
            pid: _ordered(subs) for pid, subs in children.items()
        }
        self.orphans: tuple[BudgetHead, ...] = tuple(orphans)
        self.nested: tuple[BudgetHead, ...] = tuple(nested)
        self.duplicates: tuple[BudgetHead, ...] = tuple(duplicates)

        if orphans:
            logger.warning(
                "Dropping %d orphan subhead(s) from rollups: %s",
                len(orphans), ", ".join(h.code for h in orphans),
            )
        if nested:
            logger.warning(
                "Dropping %d subhead(s) nested below another subhead: %s",
                len(nested), ", ".join(h.code for h in nested),
            )
        if duplicates:
            logger.warning("Ignoring %d duplicate head id(s)", len(duplicates))

    def get(self, head_id: Optional[str]) -> Optional[BudgetHead]:
        return self._arena.get(head_id)

    def position(self, head_id: Optional[str]) -> Optional[HeadPosition]:
        """Top-level or subhead-of-whom; ``None`` for unknown or excluded heads."""
        h = self._arena.get(head_id)
        if h is None:
            return None
        if h.is_top_level:
            return HeadPosition(HeadRole.TOP_LEVEL, None)
        if h.parent_id in self._children:
            return HeadPosition(HeadRole.SUBHEAD, h.parent_id)
        return None

    def is_indexed(self, head_id: Optional[str]) -> bool:
        return self.position(head_id) is not None

    def children_of(self, top_id: str) -> tuple[BudgetHead, ...]:
        if top_id not in self._children:
            raise KeyError(f"{top_id} is not a top-level head")
        return self._children[top_id]

    def effective_type(self, head_id: Optional[str]) -> Optional[HeadType]:
        """Type of the top-level ancestor; subheads inherit it for grouping."""
        pos = self.position(head_id)
        if pos is None:
            return None
        if pos.role == HeadRole.TOP_LEVEL:
            return self._arena[head_id].type
        return self._arena[pos.parent_id].type

    def top_level_of_type(self, head_type: HeadType) -> tuple[BudgetHead, ...]:
        return tuple(h for h in self.top_level if h.type == head_type)

    def heads_of_type(self, head_type: HeadType) -> tuple[BudgetHead, ...]:
        """Every indexed head of the type: each top-level head, then its subheads."""
        result: tuple[BudgetHead, ...] = ()
        for top in self.top_level_of_type(head_type):
            result += (top,) + self._children[top.id]
        return result

    def __len__(self) -> int:
        return len(self._arena)
