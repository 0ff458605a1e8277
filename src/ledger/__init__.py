"""
Derby Rounds Ledger Layer.

Settlement-contract client used by the round lifecycle.
"""

from src.ledger.gateway import LedgerGateway, LedgerRound
from src.ledger.web3_gateway import CONTRACT_ABI, Web3LedgerGateway

__all__ = [
    "CONTRACT_ABI",
    "LedgerGateway",
    "LedgerRound",
    "Web3LedgerGateway",
]
