"""
Derby Rounds - Test Configuration and Fixtures

Common fixtures, fakes and test data for all test modules.
"""

import asyncio
from typing import Any

import pytest

from src.config.settings import Settings
from src.engine.seed import SeedCommitment
from src.exceptions import LedgerCallFailed
from src.ledger.gateway import LedgerRound
from src.realtime.events import EventPayload, RoundEvent


# =============================================================================
# SEEDS
# =============================================================================

FIXED_SEED = bytes(range(32))
ZERO_SEED = bytes(32)

# keccak256 of 32 zero bytes, i.e. keccak256(abi.encodePacked(bytes32(0)))
ZERO_SEED_COMMITMENT = bytes.fromhex(
    "290decd9548b62a8d60345a988386fc84ba6bc95484008f6362f93160ef3e563"
)


@pytest.fixture
def fixed_seed() -> bytes:
    return FIXED_SEED


# =============================================================================
# SETTINGS
# =============================================================================

def make_settings(**overrides: Any) -> Settings:
    """Settings with millisecond-scale timings, ignoring any .env file."""
    values: dict[str, Any] = {
        "bet_window_ms": 80,
        "race_duration_ms": 10,
        "countdown_interval_ms": 20,
        "lock_delay_ms": 0,
        "result_buffer_ms": 0,
        "cooldown_ms": 0,
        "skip_delay_ms": 0,
        "error_delay_ms": 0,
        "supabase_url": None,
        "supabase_anon_key": None,
        "ledger_contract_address": "",
        "ledger_owner_private_key": "",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def fast_settings() -> Settings:
    return make_settings()


# =============================================================================
# FAKES
# =============================================================================

class RecordingBroadcast:
    """BroadcastChannel that remembers everything published."""

    def __init__(self) -> None:
        self.payloads: list[EventPayload] = []

    async def publish(self, payload: EventPayload) -> None:
        self.payloads.append(payload)

    @property
    def events(self) -> list[RoundEvent]:
        return [p.event for p in self.payloads]

    def of(self, event: RoundEvent) -> list[EventPayload]:
        return [p for p in self.payloads if p.event is event]

    def first(self, event: RoundEvent) -> EventPayload:
        matches = self.of(event)
        assert matches, f"{event.value} was never published"
        return matches[0]


class FakeLedger:
    """In-memory LedgerGateway with switchable failures."""

    def __init__(self, first_id: int = 1) -> None:
        self.next_id = first_id
        self.calls: list[tuple[str, tuple]] = []
        self.pools: dict[tuple[int, int], float] = {}
        self.commitments: dict[int, bytes] = {}
        self.fail: dict[str, BaseException] = {}

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.fail:
            raise self.fail[name]

    def called(self, name: str) -> list[tuple]:
        return [args for call, args in self.calls if call == name]

    async def create_round(self, commitment: bytes) -> int:
        self._record("create_round", commitment)
        round_id = self.next_id
        self.next_id += 1
        self.commitments[round_id] = commitment
        return round_id

    async def lock_round(self, round_id: int) -> None:
        self._record("lock_round", round_id)

    async def settle_round(self, round_id: int, winner_index: int, revealed_seed: bytes) -> None:
        self._record("settle_round", round_id, winner_index, revealed_seed)

    async def get_round_participant_pool(self, round_id: int, participant_index: int) -> float:
        self._record("get_round_participant_pool", round_id, participant_index)
        return self.pools.get((round_id, participant_index), 0.0)

    async def get_current_round_id(self) -> int:
        self._record("get_current_round_id")
        return self.next_id - 1

    async def get_round(self, round_id: int) -> LedgerRound:
        self._record("get_round", round_id)
        return LedgerRound(
            id=round_id,
            created_at=0,
            locked_at=0,
            settled_at=0,
            status=0,
            winning_participant=0,
            total_pool=0.0,
            commitment=self.commitments.get(round_id, bytes(32)),
            revealed_seed=bytes(32),
        )


@pytest.fixture
def broadcast() -> RecordingBroadcast:
    return RecordingBroadcast()


@pytest.fixture
def ledger() -> FakeLedger:
    return FakeLedger()


def ledger_failure(operation: str) -> LedgerCallFailed:
    return LedgerCallFailed(operation, "connection refused")


# =============================================================================
# ASYNC HELPERS
# =============================================================================

async def wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll ``predicate`` until it is true or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("Condition not reached in time")
        await asyncio.sleep(0.001)


def recompute_commitment(seed_hex: str) -> bytes:
    return SeedCommitment.commit(SeedCommitment.from_hex(seed_hex))
