"""
Solana exact scheme - normalizer, builder, verifier, settlement and facilitator mechanism.
"""

from x402_solana.mechanisms.solana.exact.builder import (
    SponsoredTransaction,
    SponsoredTransactionBuilder,
)
from x402_solana.mechanisms.solana.exact.facilitator import ExactSolanaFacilitatorMechanism
from x402_solana.mechanisms.solana.exact.normalizer import normalize
from x402_solana.mechanisms.solana.exact.settlement import SettlementEngine
from x402_solana.mechanisms.solana.exact.transaction import PartiallySignedTransaction
from x402_solana.mechanisms.solana.exact.verifier import TransactionVerifier

__all__ = [
    "ExactSolanaFacilitatorMechanism",
    "PartiallySignedTransaction",
    "SettlementEngine",
    "SponsoredTransaction",
    "SponsoredTransactionBuilder",
    "TransactionVerifier",
    "normalize",
]
