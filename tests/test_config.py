import logging

from budgetcore.config import configure_logging
from budgetcore.hierarchy import HeadHierarchyIndex
from budgetcore.domain import BudgetHead, HeadType


def test_configure_logging_is_idempotent():
    logger = configure_logging(logging.DEBUG)
    configure_logging(logging.DEBUG)
    ours = [h for h in logger.handlers if getattr(h, "_budgetcore", False)]
    assert len(ours) == 1
    assert logger.level == logging.DEBUG


def test_orphan_heads_are_logged(caplog):
    heads = (BudgetHead("Z", "I900", "Lost", HeadType.INCOME, "gone", 1),)
    with caplog.at_level(logging.WARNING, logger="budgetcore"):
        HeadHierarchyIndex(heads)
    assert "orphan" in caplog.text
    assert "I900" in caplog.text
