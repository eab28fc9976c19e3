"""
x402 Signers
"""

from x402_solana.signers.facilitator import FacilitatorSigner, SolanaFacilitatorSigner

__all__ = ["FacilitatorSigner", "SolanaFacilitatorSigner"]
