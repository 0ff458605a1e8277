"""
Derby Rounds - Web3 Ledger Gateway

LedgerGateway backed by the on-chain race contract through web3.py's async
API. Every operation is bounded by a timeout so a dead RPC endpoint degrades
the round instead of stalling it.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, TypeVar

from web3 import AsyncHTTPProvider, AsyncWeb3, Web3
from web3.exceptions import ContractLogicError

from src.config.settings import Settings
from src.exceptions import CommitmentMismatch, LedgerCallFailed, LedgerUnavailable
from src.ledger.gateway import LedgerRound

logger = logging.getLogger(__name__)

T = TypeVar("T")

CONTRACT_ABI: list[dict[str, Any]] = [
    {
        "name": "createRace",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "_seedHash", "type": "bytes32"}],
        "outputs": [],
    },
    {
        "name": "lockRace",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "_raceId", "type": "uint256"}],
        "outputs": [],
    },
    {
        "name": "settleRace",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "_raceId", "type": "uint256"},
            {"name": "_winningHorse", "type": "uint8"},
            {"name": "_serverSeed", "type": "bytes32"},
        ],
        "outputs": [],
    },
    {
        "name": "getRace",
        "type": "function",
        "stateMutability": "view",
        "inputs": [{"name": "_raceId", "type": "uint256"}],
        "outputs": [
            {
                "name": "",
                "type": "tuple",
                "components": [
                    {"name": "id", "type": "uint256"},
                    {"name": "createdAt", "type": "uint256"},
                    {"name": "lockedAt", "type": "uint256"},
                    {"name": "settledAt", "type": "uint256"},
                    {"name": "status", "type": "uint8"},
                    {"name": "winningHorse", "type": "uint8"},
                    {"name": "totalPool", "type": "uint256"},
                    {"name": "seedHash", "type": "bytes32"},
                    {"name": "revealedSeed", "type": "bytes32"},
                ],
            }
        ],
    },
    {
        "name": "nextRaceId",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "uint256"}],
    },
    {
        "name": "getRaceHorsePool",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "_raceId", "type": "uint256"},
            {"name": "_horseId", "type": "uint8"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


def _wei_to_ether(value: int) -> float:
    return float(Web3.from_wei(value, "ether"))


class Web3LedgerGateway:
    """Talks to the race contract with the owner account."""

    def __init__(
        self,
        w3: AsyncWeb3,
        contract_address: str,
        private_key: str,
        timeout_s: float = 60.0,
    ) -> None:
        self._w3 = w3
        self._contract = w3.eth.contract(
            address=Web3.to_checksum_address(contract_address), abi=CONTRACT_ABI
        )
        self._account = w3.eth.account.from_key(private_key)
        self._timeout = timeout_s
        self._tx_lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> Web3LedgerGateway | None:
        """Build a gateway, or None when the ledger is not configured."""
        if not settings.ledger_configured:
            return None
        w3 = AsyncWeb3(AsyncHTTPProvider(settings.ledger_rpc_url))
        gateway = cls(
            w3,
            settings.ledger_contract_address,
            settings.ledger_owner_private_key,
            timeout_s=settings.ledger_timeout_s,
        )
        logger.info("Ledger gateway configured for %s", settings.ledger_contract_address)
        return gateway

    # -- Operations ------------------------------------------------------

    async def create_round(self, commitment: bytes) -> int:
        async def run() -> int:
            await self._transact(self._contract.functions.createRace(bytes(commitment)))
            next_id = await self._contract.functions.nextRaceId().call()
            return int(next_id) - 1

        return await self._bounded("createRound", run())

    async def lock_round(self, round_id: int) -> None:
        await self._bounded(
            "lockRound", self._transact(self._contract.functions.lockRace(round_id))
        )

    async def settle_round(self, round_id: int, winner_index: int, revealed_seed: bytes) -> None:
        fn = self._contract.functions.settleRace(round_id, winner_index, bytes(revealed_seed))
        try:
            await self._bounded("settleRound", self._transact(fn))
        except LedgerCallFailed as exc:
            if _is_seed_rejection(exc.cause):
                raise CommitmentMismatch(
                    round_id, f"Ledger rejected revealed seed for round {round_id}: {exc.cause}"
                ) from exc
            raise

    async def get_round_participant_pool(self, round_id: int, participant_index: int) -> float:
        pool = await self._bounded(
            "getRoundParticipantPool",
            self._contract.functions.getRaceHorsePool(round_id, participant_index).call(),
        )
        return _wei_to_ether(pool)

    async def get_current_round_id(self) -> int:
        next_id = await self._bounded(
            "getCurrentRoundId", self._contract.functions.nextRaceId().call()
        )
        return int(next_id) - 1

    async def get_round(self, round_id: int) -> LedgerRound:
        raw = await self._bounded(
            "getRound", self._contract.functions.getRace(round_id).call()
        )
        return LedgerRound(
            id=int(raw[0]),
            created_at=int(raw[1]),
            locked_at=int(raw[2]),
            settled_at=int(raw[3]),
            status=int(raw[4]),
            winning_participant=int(raw[5]),
            total_pool=_wei_to_ether(raw[6]),
            commitment=bytes(raw[7]),
            revealed_seed=bytes(raw[8]),
        )

    # -- Internals -------------------------------------------------------

    async def _bounded(self, operation: str, awaitable: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(awaitable, timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise LedgerCallFailed(operation, f"timed out after {self._timeout}s") from exc
        except LedgerCallFailed:
            raise
        except OSError as exc:
            raise LedgerUnavailable(f"Ledger unreachable during {operation}: {exc}") from exc
        except Exception as exc:
            raise LedgerCallFailed(operation, exc) from exc

    async def _transact(self, fn: Any) -> Any:
        # one in-flight transaction at a time keeps nonces sequential
        async with self._tx_lock:
            address = self._account.address
            nonce = await self._w3.eth.get_transaction_count(address, "pending")
            tx = await fn.build_transaction({"from": address, "nonce": nonce})
            signed = self._account.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._timeout
            )
        if receipt["status"] != 1:
            raise LedgerCallFailed(fn.fn_name, f"transaction {tx_hash.hex()} reverted")
        return receipt


def _is_seed_rejection(cause: Any) -> bool:
    return isinstance(cause, ContractLogicError) and "seed" in str(cause).lower()
