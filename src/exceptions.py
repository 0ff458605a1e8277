"""
Derby Rounds - Exceptions

All race-service errors share one base class so the lifecycle can tell its
own failures from unexpected ones.
"""

from enum import Enum


class RaceError(Exception):
    """Base class for all race-service errors."""
    pass


# ============ Bets ============

class BetRejection(Enum):
    """Why a bet was refused."""
    ROUND_NOT_OPEN = "Round not open for bets"
    INVALID_PARTICIPANT = "Invalid participant"
    AMOUNT_OUT_OF_BOUNDS = "Bet amount out of bounds"
    ROUND_MISMATCH = "Bet is for a different round"
    MALFORMED_REQUEST = "Malformed bet request"


class BetRejected(RaceError):
    """A bet failed validation. Nothing was mutated."""
    def __init__(self, reason: BetRejection, detail: str | None = None):
        self.reason = reason
        self.detail = detail
        super().__init__(detail or reason.value)


# ============ Round state ============

class InvalidStateTransition(RaceError):
    """A round was asked to move backwards or to an unreachable status."""
    pass


# ============ Ledger ============

class LedgerUnavailable(RaceError):
    """No ledger client is configured or the ledger cannot be reached."""
    pass


class LedgerCallFailed(RaceError):
    """A ledger round-trip failed (timeout, revert, RPC error)."""
    def __init__(self, operation: str, cause: BaseException | str):
        self.operation = operation
        self.cause = cause
        super().__init__(f"Ledger {operation} failed: {cause}")


class CommitmentMismatch(RaceError):
    """The revealed seed does not hash to the published commitment.

    Indicates a bug or tampering. The round must not be settled again
    automatically.
    """
    def __init__(self, round_id: int, detail: str | None = None):
        self.round_id = round_id
        super().__init__(detail or f"Revealed seed does not match commitment for round {round_id}")


# ============ Persistence ============

class PersistenceUnavailable(RaceError):
    """The history store is missing or failed. Always non-fatal."""
    pass
