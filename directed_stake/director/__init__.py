from .client import DirectorLedgerClient
from .lifecycle import (
    DirectorLifecycleManager,
    DirectorState,
    LifecycleResult,
    compose_set_target,
)

__all__ = [
    "DirectorLedgerClient",
    "DirectorLifecycleManager",
    "DirectorState",
    "LifecycleResult",
    "compose_set_target",
]
