"""
Directed Stake Package

Director-record lifecycle client and holder snapshot reconciliation.

Core imports are lazily loaded so that importing a submodule does not
pull in the HTTP transport. For direct access, import from submodules:

    from directed_stake.crypto import PublicKey, Keypair
    from directed_stake.director import DirectorLifecycleManager
    from directed_stake.reconcile import ReconciliationEngine
"""

_LAZY = {
    'PublicKey': ('.crypto', 'PublicKey'),
    'Keypair': ('.crypto', 'Keypair'),
    'AddressDeriver': ('.crypto', 'AddressDeriver'),
    'DirectorLedgerClient': ('.director', 'DirectorLedgerClient'),
    'DirectorLifecycleManager': ('.director', 'DirectorLifecycleManager'),
    'ReconciliationEngine': ('.reconcile', 'ReconciliationEngine'),
    'HttpLedgerTransport': ('.rpc', 'HttpLedgerTransport'),
}


def __getattr__(name):
    """Lazy module loading."""
    if name in _LAZY:
        from importlib import import_module
        module, attr = _LAZY[name]
        return getattr(import_module(module, __name__), attr)
    raise AttributeError(f"module 'directed_stake' has no attribute {name!r}")

__all__ = list(_LAZY)
