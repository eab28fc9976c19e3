"""
Solana mechanisms
"""

from x402_solana.mechanisms.solana.exact import ExactSolanaFacilitatorMechanism

__all__ = ["ExactSolanaFacilitatorMechanism"]
