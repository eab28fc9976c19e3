"""
x402-solana utility functions
"""

from x402_solana.utils.polling import PollResult, poll_until
from x402_solana.utils.solana_client import create_async_solana_client

__all__ = [
    "PollResult",
    "poll_until",
    "create_async_solana_client",
]
