"""
Director Ledger Client

Read access to director records. Nothing is cached and nothing is
retried: every call goes to the transport and any failure propagates
unchanged.
"""

from typing import List, Optional

from ..constants import DIRECTOR_ACCOUNT_SIZE
from ..crypto.address import AddressDeriver
from ..crypto.keys import PublicKey
from ..logger import get_logger
from ..program.layout import DIRECTOR_DISCRIMINATOR, Director, DirectorRecord
from ..rpc.transport import LedgerTransport, MemcmpFilter

logger = get_logger(__name__)


class DirectorLedgerClient:
    """
    Fetches Director accounts owned by one program.

    Args:
        transport: Ledger transport
        program_id: Directed stake program
    """

    def __init__(self, transport: LedgerTransport, program_id: PublicKey):
        self.transport = transport
        self.program_id = program_id
        self.deriver = AddressDeriver(program_id)

    async def fetch_one(self, address: PublicKey) -> Optional[Director]:
        """
        Fetch the record at `address`.

        Returns:
            The decoded Director, or None if no account exists there

        Raises:
            AccountDecodeError: The account exists but is not a Director
            TransportError: Ledger communication failed
        """
        accounts = await self.transport.get_multiple_accounts([address])
        account = accounts[0] if accounts else None
        if account is None:
            return None
        if account.owner != self.program_id:
            # Only accounts owned by the program hold director data
            logger.warning(f"Account {address} is owned by {account.owner}, not the program")
            return None
        return Director.decode(account.data)

    async def fetch_for_authority(self, authority: PublicKey) -> Optional[Director]:
        return await self.fetch_one(self.deriver.derive(authority))

    async def fetch_all(self) -> List[DirectorRecord]:
        """
        Scan every Director account owned by the program.

        Cost grows with the total number of records; the ledger offers no
        cursor for this scan, so it is only suitable while that count is
        modest. The result is a point-in-time view: records changed after
        the scan are not reflected until it is run again.
        """
        accounts = await self.transport.get_program_accounts(
            self.program_id,
            data_size=DIRECTOR_ACCOUNT_SIZE,
            memcmp=[MemcmpFilter(offset=0, data=DIRECTOR_DISCRIMINATOR)],
        )
        records = [
            DirectorRecord(director=Director.decode(info.data), address=address)
            for address, info in accounts
        ]
        logger.info(f"[scan] {len(records)} director records under {self.program_id}")
        return records
