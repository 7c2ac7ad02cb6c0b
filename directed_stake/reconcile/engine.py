"""
Reconciliation Engine

Matches a holder snapshot against director records and totals the
directed stake per validator.

All amounts stay integers in smallest token units through matching and
aggregation. Scaling to whole tokens happens only at presentation, via
`to_ui_amount`, so rounding never compounds across entries.
"""

import csv
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Union

from ..crypto.address import AddressDeriver
from ..crypto.keys import PublicKey
from ..logger import get_logger
from ..constants import RECONCILED_HEADER
from ..program.layout import Director, DirectorRecord
from .snapshot import HoldingEntry, parse_snapshot

logger = get_logger(__name__)

RecordInput = Union[DirectorRecord, Director]


@dataclass(frozen=True)
class ReconciledEntry:
    """
    One snapshot wallet matched to its directed validator.

    Attributes:
        wallet: Holder wallet
        validator: Validator the holder directs to
        amount: Holder balance in smallest token units
    """
    wallet: PublicKey
    validator: Optional[PublicKey]
    amount: int


@dataclass
class StakeDistribution:
    """
    Aggregated view of one reconciliation run.

    Attributes:
        per_validator: Directed amount per validator
        directed_total: Sum over all reconciled entries
        snapshot_total: Sum over every snapshot balance
    """
    per_validator: Dict[PublicKey, int] = field(default_factory=dict)
    directed_total: int = 0
    snapshot_total: int = 0

    @property
    def undirected_total(self) -> int:
        return self.snapshot_total - self.directed_total

    def ranked(self) -> List[tuple]:
        """Validators by directed amount, largest first, ties by key."""
        return sorted(self.per_validator.items(), key=lambda kv: (-kv[1], kv[0].to_base58()))

    def to_dict(self, decimals: Optional[int] = None) -> dict:
        def fmt(amount: int):
            return format(to_ui_amount(amount, decimals), "f") if decimals is not None else amount
        return {
            'per_validator': {str(k): fmt(v) for k, v in self.ranked()},
            'directed_total': fmt(self.directed_total),
            'undirected_total': fmt(self.undirected_total),
            'snapshot_total': fmt(self.snapshot_total),
        }


def to_ui_amount(amount: int, decimals: int) -> Decimal:
    """
    Scale smallest units to whole tokens for display.

    Built from the digit tuple, so no context precision applies and
    arbitrarily large amounts stay exact.
    """
    digits = tuple(int(d) for d in str(abs(amount)))
    return Decimal((1 if amount < 0 else 0, digits, -decimals))


class ReconciliationEngine:
    """
    Computes which validator each snapshot wallet's balance is directed to.

    Stateless between runs; each call builds its own lookup.

    Args:
        deriver: Director address derivation bound to the program
    """

    def __init__(self, deriver: AddressDeriver):
        self.deriver = deriver

    def _index(self, records: Iterable[RecordInput]) -> Dict[PublicKey, Director]:
        lookup: Dict[PublicKey, Director] = {}
        for record in records:
            if isinstance(record, DirectorRecord):
                address = record.address or self.deriver.derive(record.authority)
                director = record.director
            else:
                address = self.deriver.derive(record.authority)
                director = record
            lookup[address] = director
        return lookup

    def reconcile(
        self,
        snapshot: Sequence[HoldingEntry],
        records: Iterable[RecordInput],
    ) -> List[ReconciledEntry]:
        """
        Match every snapshot wallet to its active director record.

        Wallets without an active record contribute nothing. Zero balances
        of directed wallets are kept. Output is sorted by validator, then
        wallet.

        Args:
            snapshot: Holder balances
            records: Director records, keyed by address when read from a
                full scan, otherwise keyed by deriving from their authority

        Returns:
            Reconciled entries
        """
        lookup = self._index(records)

        entries = []
        for holding in snapshot:
            director = lookup.get(self.deriver.derive(holding.wallet))
            if director is None or not director.is_active:
                continue
            entries.append(ReconciledEntry(holding.wallet, director.stake_target, holding.balance))

        entries.sort(key=lambda e: (e.validator.to_base58(), e.wallet.to_base58()))
        logger.info(
            f"[reconcile] {len(snapshot)} holders, {len(lookup)} records, "
            f"{len(entries)} directed, {len(snapshot) - len(entries)} undirected"
        )
        return entries

    def reconcile_csv(self, text: str, records: Iterable[RecordInput]) -> List[ReconciledEntry]:
        """Parse snapshot text and reconcile; any malformed row fails the whole call."""
        return self.reconcile(parse_snapshot(text), records)


def aggregate(
    entries: Iterable[ReconciledEntry],
    snapshot: Iterable[HoldingEntry],
) -> StakeDistribution:
    """
    Total directed stake per validator.

    Args:
        entries: Output of `ReconciliationEngine.reconcile`
        snapshot: The snapshot that was reconciled

    Returns:
        StakeDistribution with per-validator, directed and undirected totals
    """
    distribution = StakeDistribution()
    for entry in entries:
        distribution.per_validator[entry.validator] = (
            distribution.per_validator.get(entry.validator, 0) + entry.amount
        )
        distribution.directed_total += entry.amount
    distribution.snapshot_total = sum(h.balance for h in snapshot)
    return distribution


def write_reconciled_csv(entries: Iterable[ReconciledEntry], path: Path) -> int:
    """Write entries as `wallet,validator,amount`; returns the row count."""
    count = 0
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(RECONCILED_HEADER)
        for entry in entries:
            writer.writerow([str(entry.wallet), str(entry.validator), entry.amount])
            count += 1
    return count
