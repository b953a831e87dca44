import logging
from pathlib import Path

ALL_DEPARTMENTS = "all"

# Upper bound of the working set fetched per cycle.
MAX_ALLOCATIONS = 2000

MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)
QUARTER_LABELS = ("Q1", "Q2", "Q3", "Q4")

EMPTY_CELL_TEXT = "-"

DEFAULT_SEED_PATH = Path(__file__).resolve().parent.parent / "data" / "seed.json"

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: int | str = logging.INFO) -> logging.Logger:
    """Attach a stream handler to the ``budgetcore`` logger tree (idempotent)."""
    logger = logging.getLogger("budgetcore")
    logger.setLevel(level)
    if not any(getattr(h, "_budgetcore", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._budgetcore = True
        logger.addHandler(handler)
    return logger
