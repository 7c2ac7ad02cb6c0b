"""
Directed Stake Ledger Transports

`LedgerTransport` is the boundary every component depends on;
`HttpLedgerTransport` is the JSON-RPC implementation.
"""

from .transport import AccountInfo, LedgerTransport, MemcmpFilter
from .http import HttpLedgerTransport

__all__ = [
    "AccountInfo",
    "LedgerTransport",
    "MemcmpFilter",
    "HttpLedgerTransport",
]
