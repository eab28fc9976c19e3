"""
FastAPI application for the x402 facilitator
"""

from x402_solana.fastapi.facilitator_app import create_facilitator_app

__all__ = ["create_facilitator_app"]
