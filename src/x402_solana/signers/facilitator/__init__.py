"""
Facilitator Signers
"""

from x402_solana.signers.facilitator.base import FacilitatorSigner
from x402_solana.signers.facilitator.solana_signer import SolanaFacilitatorSigner

__all__ = ["FacilitatorSigner", "SolanaFacilitatorSigner"]
