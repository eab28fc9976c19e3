"""
x402 Mechanisms - Payment mechanisms per chain

Structure:
    solana/                 - Solana implementations
        exact/              - exact scheme (normalizer, builder, verifier,
                              settlement, facilitator)
"""

from x402_solana.mechanisms import solana
from x402_solana.mechanisms.solana import ExactSolanaFacilitatorMechanism

__all__ = [
    "ExactSolanaFacilitatorMechanism",
    "solana",
]
