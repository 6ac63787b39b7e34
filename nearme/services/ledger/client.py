"""
Solana ledger client.

Looks up settlement transactions by signature over Solana JSON-RPC and
reduces them to the facts the settlement verifier needs: did it succeed,
who paid the fee, which accounts took part, when was it included.
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

import aiohttp
from loguru import logger

from nearme.config.constants import DEFAULT_COMMITMENT, LEDGER_HTTP_TIMEOUT
from nearme.utils.exceptions import LedgerError, LedgerRPCError
from nearme.utils.security import mask_signature


@dataclass(frozen=True)
class LedgerTransaction:
    """Settlement facts reported by the ledger for one signature."""

    signature: str
    succeeded: bool
    initiator_account: str | None
    participant_accounts: tuple[str, ...] = field(default_factory=tuple)
    block_time: int | None = None
    slot: int | None = None
    error: Any = None

    def involves(self, account: str) -> bool:
        """Check if account took part in the transaction."""
        return account in self.participant_accounts


class LedgerClient(Protocol):
    """Anything that can answer "did this signature settle"."""

    async def get_transaction(self, signature: str) -> LedgerTransaction | None:
        """Return transaction facts, or None if the ledger does not know it."""
        ...


def _account_key(entry: Any) -> str | None:
    """Account keys are plain strings in json encoding, objects in jsonParsed."""
    if isinstance(entry, str):
        return entry
    if isinstance(entry, dict):
        return entry.get("pubkey")
    return None


def parse_transaction(signature: str, payload: dict[str, Any]) -> LedgerTransaction:
    """
    Build LedgerTransaction from a getTransaction result.

    Participants are the message account keys (fee payer first), accounts
    loaded from address lookup tables, and the owners of token accounts whose
    balances the transaction touched. The owners matter for SPL-token
    transfers: the merchant's wallet only shows up there, its associated
    token account is what appears in the account keys.
    """
    meta = payload.get("meta") or {}
    message = (payload.get("transaction") or {}).get("message") or {}

    static_keys = [k for k in (_account_key(e) for e in message.get("accountKeys") or []) if k]

    loaded = meta.get("loadedAddresses") or {}
    loaded_keys = list(loaded.get("writable") or []) + list(loaded.get("readonly") or [])

    token_owners = [
        balance["owner"]
        for balance in (meta.get("preTokenBalances") or []) + (meta.get("postTokenBalances") or [])
        if balance.get("owner")
    ]

    participants: list[str] = []
    for key in static_keys + loaded_keys + token_owners:
        if key not in participants:
            participants.append(key)

    error = meta.get("err")

    return LedgerTransaction(
        signature=signature,
        succeeded=error is None,
        initiator_account=static_keys[0] if static_keys else None,
        participant_accounts=tuple(participants),
        block_time=payload.get("blockTime"),
        slot=payload.get("slot"),
        error=error,
    )


class SolanaLedgerClient:
    """
    Ledger client backed by a Solana JSON-RPC node.

    Single attempt per call; timeout and retry are applied by the caller
    through rpc_call_with_retry so any LedgerClient gets the same treatment.
    """

    def __init__(
        self,
        rpc_url: str,
        commitment: str = DEFAULT_COMMITMENT,
        http_timeout: float = LEDGER_HTTP_TIMEOUT,
    ) -> None:
        """
        Initialize ledger client.

        Args:
            rpc_url: Solana JSON-RPC endpoint
            commitment: confirmed or finalized
            http_timeout: aiohttp total timeout per request
        """
        self.rpc_url = rpc_url
        self.commitment = commitment
        self.http_timeout = http_timeout
        self._session: aiohttp.ClientSession | None = None

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create aiohttp session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        if self._session is not None and not self._session.closed:
            await self._session.close()

    async def _rpc_call(self, method: str, params: list) -> Any:
        """
        Make JSON-RPC call.

        Args:
            method: RPC method name
            params: RPC parameters

        Returns:
            The "result" member of the response

        Raises:
            LedgerRPCError: Node answered with an error object
            LedgerError: Transport failure or non-200 response
        """
        payload = {
            "jsonrpc": "2.0",
            "id": 1,
            "method": method,
            "params": params,
        }

        session = await self._get_session()
        try:
            async with session.post(
                self.rpc_url,
                json=payload,
                timeout=aiohttp.ClientTimeout(total=self.http_timeout),
                headers={"Content-Type": "application/json"},
            ) as response:
                if response.status != 200:
                    raise LedgerError(f"{method}: HTTP {response.status}")
                data = await response.json()
        except aiohttp.ClientError as e:
            raise LedgerError(f"{method}: {e}") from e

        if "error" in data:
            error = data["error"] or {}
            raise LedgerRPCError(
                f"{method}: {error.get('message', error)}",
                code=error.get("code"),
            )
        return data.get("result")

    async def get_transaction(self, signature: str) -> LedgerTransaction | None:
        """
        Look up a transaction by signature.

        Returns:
            LedgerTransaction, or None if the node has no such transaction
            at the configured commitment
        """
        result = await self._rpc_call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

        if result is None:
            logger.info(f"[Ledger] Transaction not found: {mask_signature(signature)}")
            return None

        return parse_transaction(signature, result)
