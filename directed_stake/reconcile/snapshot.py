"""
Holder Snapshot Parsing

Strict reader for the holder snapshot:

    wallet,balance
    <base58 public key>,<base-10 integer in smallest token units>

Any bad row fails the whole batch. Dropping a row would silently
under-report directed stake.
"""

import csv
import io
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List, Union

from ..constants import SNAPSHOT_HEADER
from ..crypto.keys import PublicKey
from ..exceptions import InvalidKeyError, MalformedSnapshotError
from ..logger import get_logger

logger = get_logger(__name__)

_BALANCE_RE = re.compile(r"^[0-9]+$")


@dataclass(frozen=True)
class HoldingEntry:
    """One holder's balance in smallest token units."""
    wallet: PublicKey
    balance: int

    def __post_init__(self):
        if isinstance(self.balance, bool) or not isinstance(self.balance, int):
            raise TypeError(f"Balance must be an integer, got {type(self.balance).__name__}")
        if self.balance < 0:
            raise ValueError(f"Balance cannot be negative: {self.balance}")


def _read_entries(reader) -> List[HoldingEntry]:
    header = next(reader, None)
    if header is None:
        raise MalformedSnapshotError(1, "missing header row")
    header = [h.strip().lstrip("\ufeff") for h in header]
    if tuple(header) != SNAPSHOT_HEADER:
        raise MalformedSnapshotError(1, f"expected header {','.join(SNAPSHOT_HEADER)}, got {','.join(header)}")

    entries = []
    seen = set()
    for row in reader:
        line = reader.line_num
        if not row or all(not cell.strip() for cell in row):
            continue
        if len(row) != 2:
            raise MalformedSnapshotError(line, f"expected 2 columns, got {len(row)}")

        wallet_text, balance_text = row[0].strip(), row[1].strip()
        try:
            wallet = PublicKey.from_string(wallet_text)
        except InvalidKeyError as e:
            raise MalformedSnapshotError(line, f"invalid wallet: {e}") from e
        if not _BALANCE_RE.match(balance_text):
            raise MalformedSnapshotError(line, f"balance is not a non-negative integer: {balance_text!r}")
        if wallet in seen:
            raise MalformedSnapshotError(line, f"duplicate wallet {wallet}")
        seen.add(wallet)
        entries.append(HoldingEntry(wallet=wallet, balance=int(balance_text)))
    return entries


def parse_snapshot(source: Union[str, Iterable[str]]) -> List[HoldingEntry]:
    """
    Parse snapshot text.

    Args:
        source: Whole CSV text or an iterable of lines

    Returns:
        Entries in file order

    Raises:
        MalformedSnapshotError: Bad header, bad row, duplicate wallet, a row
            the csv reader cannot tokenize, or undecodable input
    """
    lines = io.StringIO(source) if isinstance(source, str) else source
    reader = csv.reader(lines)
    try:
        entries = _read_entries(reader)
    except csv.Error as e:
        raise MalformedSnapshotError(max(reader.line_num, 1), f"unreadable row: {e}") from e
    except UnicodeDecodeError as e:
        raise MalformedSnapshotError(reader.line_num + 1, f"not valid UTF-8: {e}") from e

    logger.info(f"[snapshot] {len(entries)} holder entries parsed")
    return entries


def load_snapshot(path: Path) -> List[HoldingEntry]:
    """
    Read and parse a UTF-8 snapshot file.

    The file is decoded up front so a bad byte is reported on its own line.
    """
    raw = Path(path).read_bytes()
    try:
        text = raw.decode("utf-8")
    except UnicodeDecodeError as e:
        line = raw.count(b"\n", 0, e.start) + 1
        raise MalformedSnapshotError(line, f"not valid UTF-8: {e.reason} at byte {e.start}") from e
    return parse_snapshot(text)
