"""
Derby Rounds - Seed Commitment

Per-round secret seeds and their publishable commitments.

The settlement ledger verifies a revealed seed with
``keccak256(abi.encodePacked(bytes32 seed))``. For a ``bytes32`` argument the
packed encoding is the raw 32 bytes, so the commitment is Keccak-256 over the
seed bytes with no padding or prefix. Any other encoding makes the ledger
reject settlement.
"""

import hmac
import secrets

from web3 import Web3


SEED_BYTES = 32


class SeedCommitment:
    """
    Stateless helpers for the commit/reveal protocol.

    All methods are class methods; seeds are plain ``bytes``.
    """

    SEED_BYTES = SEED_BYTES

    @classmethod
    def generate_seed(cls) -> bytes:
        """Return 32 bytes from the OS CSPRNG."""
        return secrets.token_bytes(cls.SEED_BYTES)

    @classmethod
    def commit(cls, seed: bytes) -> bytes:
        """Compute the 32-byte commitment the ledger will check against.

        Raises:
            ValueError: If the seed is not exactly 32 bytes
        """
        cls.check_seed(seed)
        return bytes(Web3.keccak(primitive=seed))

    @classmethod
    def verify(cls, seed: bytes, commitment: bytes) -> bool:
        """Check that a revealed seed matches a published commitment."""
        try:
            expected = cls.commit(seed)
        except ValueError:
            return False
        return hmac.compare_digest(expected, bytes(commitment))

    @staticmethod
    def to_hex(value: bytes) -> str:
        """0x-prefixed lowercase hex, the form used on the wire."""
        return "0x" + bytes(value).hex()

    @staticmethod
    def from_hex(value: str) -> bytes:
        return bytes.fromhex(value[2:] if value.startswith("0x") else value)

    @classmethod
    def check_seed(cls, seed: bytes) -> None:
        if not isinstance(seed, (bytes, bytearray)):
            raise ValueError(f"Seed must be bytes, got {type(seed).__name__}.")
        if len(seed) != cls.SEED_BYTES:
            raise ValueError(
                f"Seed must be exactly {cls.SEED_BYTES} bytes, got {len(seed)}."
            )
