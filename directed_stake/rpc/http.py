"""
JSON-RPC Ledger Transport

Implements LedgerTransport over the ledger's HTTP JSON-RPC API using
httpx.AsyncClient. Account data is requested base64-encoded; submitted
transactions go through preflight simulation, then signature statuses are
polled until the configured commitment is reached.
"""

import asyncio
import base64
import itertools
import json
import time
from typing import Any, Dict, List, Optional, Sequence, Tuple

import base58
import httpx

from ..constants import (
    COMMITMENT_LEVELS,
    DEFAULT_COMMITMENT,
    DEFAULT_CONFIRM_TIMEOUT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
    LOG_INCLUDE_RPC_PAYLOADS,
    LOG_MAX_PAYLOAD_LENGTH,
)
from ..crypto.keys import PublicKey
from ..exceptions import InvalidKeyError, TransactionRejectedError, TransportError
from ..logger import get_logger
from ..transactions.message import Transaction
from .transport import AccountInfo, LedgerTransport, MemcmpFilter

logger = get_logger(__name__)

# getMultipleAccounts accepts at most this many keys per request
MAX_ACCOUNTS_PER_REQUEST = 100

# JSON-RPC error code for a transaction that failed preflight simulation
SEND_TRANSACTION_PREFLIGHT_FAILURE = -32002


def _truncate(text: str) -> str:
    if len(text) > LOG_MAX_PAYLOAD_LENGTH:
        return text[:LOG_MAX_PAYLOAD_LENGTH] + "...[TRUNCATED]"
    return text


def parse_account(value: Optional[Dict[str, Any]]) -> Optional[AccountInfo]:
    """Convert a JSON-RPC account object (base64 encoding) to AccountInfo."""
    if value is None:
        return None
    try:
        encoded, encoding = value["data"]
        if encoding != "base64":
            raise TransportError(f"Unexpected account data encoding: {encoding}")
        return AccountInfo(
            owner=PublicKey.from_string(value["owner"]),
            lamports=int(value["lamports"]),
            data=base64.b64decode(encoded),
            executable=bool(value.get("executable", False)),
        )
    except (KeyError, TypeError, ValueError, InvalidKeyError) as e:
        raise TransportError(f"Malformed account in RPC response: {e}")


class HttpLedgerTransport(LedgerTransport):
    """
    Ledger transport speaking JSON-RPC 2.0 over HTTP.

    Usage:
        >>> async with HttpLedgerTransport("https://api.mainnet-beta.solana.com") as transport:
        ...     blockhash = await transport.get_latest_blockhash()
    """

    def __init__(
        self,
        rpc_url: str,
        commitment: str = DEFAULT_COMMITMENT,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
        confirm_timeout: float = DEFAULT_CONFIRM_TIMEOUT,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if commitment not in COMMITMENT_LEVELS:
            raise ValueError(f"Unknown commitment: {commitment}")
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.confirm_timeout = confirm_timeout
        self.poll_interval = poll_interval
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=request_timeout)
        self._ids = itertools.count(1)

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    # ── JSON-RPC plumbing ───────────────────────────────────────────

    async def _call(self, method: str, params: List[Any]) -> Any:
        """
        Perform one JSON-RPC call and return its `result`.

        Raises:
            TransactionRejectedError: Preflight simulation rejected a transaction
            TransportError: Network, HTTP or JSON-RPC failure
        """
        payload = {"jsonrpc": "2.0", "id": next(self._ids), "method": method, "params": params}
        body = f"\n\nOutgoing Request:\n\"{_truncate(json.dumps(params))}\"\n" if LOG_INCLUDE_RPC_PAYLOADS else ""
        logger.info(f"--> \"{method}\" {self.rpc_url}{body}")

        start_time = time.time()
        try:
            response = await self._client.post(self.rpc_url, json=payload)
            response.raise_for_status()
            reply = response.json()
        except httpx.RequestError as e:
            logger.warning(f"<-- \"{method}\" NETWORK_ERROR ({time.time() - start_time:.3f}s)")
            raise TransportError(f"{method}: network error: {e}") from e
        except httpx.HTTPStatusError as e:
            logger.warning(
                f"<-- \"{method}\" {e.response.status_code} ERROR ({time.time() - start_time:.3f}s)"
            )
            raise TransportError(f"{method}: HTTP {e.response.status_code}") from e
        except json.JSONDecodeError as e:
            logger.warning(f"<-- \"{method}\" ERROR ({time.time() - start_time:.3f}s): invalid JSON")
            raise TransportError(f"{method}: invalid JSON response") from e

        elapsed = time.time() - start_time
        if not isinstance(reply, dict):
            raise TransportError(f"{method}: unexpected response shape")

        error = reply.get("error")
        if error is not None:
            logger.warning(f"<-- \"{method}\" RPC_ERROR ({elapsed:.3f}s): {error.get('message')}")
            data = error.get("data") or {}
            if error.get("code") == SEND_TRANSACTION_PREFLIGHT_FAILURE and isinstance(data, dict) and data.get("err"):
                raise TransactionRejectedError(
                    error.get("message", "Transaction rejected"),
                    err=data.get("err"),
                    logs=data.get("logs") or [],
                )
            raise TransportError(f"{method}: RPC error {error.get('code')}: {error.get('message')}")

        reply_body = (
            f"\n\nIncoming Response:\n\"{_truncate(json.dumps(reply.get('result')))}\"\n"
            if LOG_INCLUDE_RPC_PAYLOADS else ""
        )
        logger.info(f"<-- \"{method}\" OK ({elapsed:.3f}s){reply_body}")
        if "result" not in reply:
            raise TransportError(f"{method}: response has no result")
        return reply["result"]

    # ── Reads ───────────────────────────────────────────────────────

    async def get_multiple_accounts(
        self, addresses: Sequence[PublicKey]
    ) -> List[Optional[AccountInfo]]:
        accounts: List[Optional[AccountInfo]] = []
        for start in range(0, len(addresses), MAX_ACCOUNTS_PER_REQUEST):
            chunk = addresses[start:start + MAX_ACCOUNTS_PER_REQUEST]
            result = await self._call(
                "getMultipleAccounts",
                [[str(a) for a in chunk], {"encoding": "base64", "commitment": self.commitment}],
            )
            try:
                values = result["value"]
            except (KeyError, TypeError) as e:
                raise TransportError(f"getMultipleAccounts: malformed result: {e}")
            if len(values) != len(chunk):
                raise TransportError(
                    f"getMultipleAccounts: asked for {len(chunk)} accounts, got {len(values)}"
                )
            accounts.extend(parse_account(v) for v in values)
        return accounts

    async def get_program_accounts(
        self,
        program_id: PublicKey,
        data_size: Optional[int] = None,
        memcmp: Sequence[MemcmpFilter] = (),
    ) -> List[Tuple[PublicKey, AccountInfo]]:
        filters: List[Dict[str, Any]] = []
        if data_size is not None:
            filters.append({"dataSize": data_size})
        for f in memcmp:
            filters.append({
                "memcmp": {
                    "offset": f.offset,
                    "bytes": base58.b58encode(f.data).decode("ascii"),
                    "encoding": "base58",
                }
            })

        options: Dict[str, Any] = {"encoding": "base64", "commitment": self.commitment}
        if filters:
            options["filters"] = filters
        result = await self._call("getProgramAccounts", [str(program_id), options])

        accounts = []
        try:
            for item in result:
                accounts.append((PublicKey.from_string(item["pubkey"]), parse_account(item["account"])))
        except (KeyError, TypeError, ValueError, InvalidKeyError) as e:
            raise TransportError(f"getProgramAccounts: malformed result: {e}")
        return accounts

    async def get_latest_blockhash(self) -> bytes:
        result = await self._call("getLatestBlockhash", [{"commitment": self.commitment}])
        try:
            blockhash = base58.b58decode(result["value"]["blockhash"])
        except (KeyError, TypeError, ValueError, InvalidKeyError) as e:
            raise TransportError(f"getLatestBlockhash: malformed result: {e}")
        if len(blockhash) != 32:
            raise TransportError(f"getLatestBlockhash: blockhash is {len(blockhash)} bytes")
        return blockhash

    # ── Submission ──────────────────────────────────────────────────

    async def send_transaction(self, transaction: Transaction) -> str:
        signature = await self._call(
            "sendTransaction",
            [
                transaction.to_base64(),
                {"encoding": "base64", "preflightCommitment": self.commitment},
            ],
        )
        logger.info(f"Submitted transaction {signature}")
        await self.confirm_transaction(signature)
        return signature

    async def confirm_transaction(self, signature: str) -> None:
        """
        Poll until `signature` reaches the configured commitment.

        Raises:
            TransactionRejectedError: The transaction landed but failed
            TransportError: Not confirmed within `confirm_timeout`
        """
        wanted = COMMITMENT_LEVELS.index(self.commitment)
        deadline = time.monotonic() + self.confirm_timeout
        while True:
            result = await self._call(
                "getSignatureStatuses",
                [[signature], {"searchTransactionHistory": False}],
            )
            try:
                status = result["value"][0]
            except (KeyError, TypeError, IndexError) as e:
                raise TransportError(f"getSignatureStatuses: malformed result: {e}")

            if status is not None:
                if status.get("err") is not None:
                    raise TransactionRejectedError(
                        f"Transaction {signature} failed", err=status["err"]
                    )
                reached = status.get("confirmationStatus")
                if reached in COMMITMENT_LEVELS and COMMITMENT_LEVELS.index(reached) >= wanted:
                    logger.info(f"Transaction {signature} reached {reached}")
                    return

            if time.monotonic() >= deadline:
                raise TransportError(
                    f"Transaction {signature} not {self.commitment} after {self.confirm_timeout}s"
                )
            await asyncio.sleep(self.poll_interval)
