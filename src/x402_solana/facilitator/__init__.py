"""
x402 Facilitator
"""

from x402_solana.facilitator.facilitator_client import FacilitatorClient
from x402_solana.facilitator.x402_facilitator import FacilitatorMechanism, X402Facilitator

__all__ = ["FacilitatorClient", "FacilitatorMechanism", "X402Facilitator"]
