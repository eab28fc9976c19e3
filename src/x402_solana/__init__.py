"""
x402-solana - x402 payment facilitator for Solana

Verifies and settles SPL token payments, optionally paying network fees
on the payer's behalf.
"""

__version__ = "0.1.0"

from x402_solana.exceptions import (
    BroadcastError,
    ConfigurationError,
    ConstructionError,
    FeePayerMismatchError,
    PayloadFormatError,
    ReplayError,
    SettlementError,
    SimulationError,
    TransactionFailedError,
    TransactionNotFoundError,
    TransactionTimeoutError,
    UnsupportedNetworkError,
    ValidationError,
    X402Error,
)
from x402_solana.networks import NetworkRegistry
from x402_solana.types import (
    PaymentPayload,
    PaymentRequirements,
    SettlementReceipt,
    SettleResponse,
    SponsoredTransactionResponse,
    SupportedResponse,
    VerifyResponse,
)

__all__ = [
    "__version__",
    # Types
    "PaymentPayload",
    "PaymentRequirements",
    "SettlementReceipt",
    "VerifyResponse",
    "SettleResponse",
    "SupportedResponse",
    "SponsoredTransactionResponse",
    # Exceptions
    "X402Error",
    "PayloadFormatError",
    "ValidationError",
    "FeePayerMismatchError",
    "SimulationError",
    "ReplayError",
    "TransactionNotFoundError",
    "ConstructionError",
    "SettlementError",
    "BroadcastError",
    "TransactionFailedError",
    "TransactionTimeoutError",
    "ConfigurationError",
    "UnsupportedNetworkError",
    # Networks
    "NetworkRegistry",
]
