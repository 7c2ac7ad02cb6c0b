from .snapshot import HoldingEntry, load_snapshot, parse_snapshot
from .engine import (
    ReconciledEntry,
    ReconciliationEngine,
    StakeDistribution,
    aggregate,
    to_ui_amount,
    write_reconciled_csv,
)

__all__ = [
    "HoldingEntry",
    "load_snapshot",
    "parse_snapshot",
    "ReconciledEntry",
    "ReconciliationEngine",
    "StakeDistribution",
    "aggregate",
    "to_ui_amount",
    "write_reconciled_csv",
]
