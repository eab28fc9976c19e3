"""
x402 custom exception hierarchy
"""


class X402Error(Exception):
    """x402 base exception"""

    pass


class PayloadFormatError(X402Error):
    """Payment payload does not match any recognized encoding"""

    pass


class ValidationError(X402Error):
    """Validation-related error"""

    pass


class FeePayerMismatchError(ValidationError):
    """Sponsored transaction does not name the facilitator as fee payer"""

    def __init__(self, expected: str, actual: str):
        self.expected = expected
        self.actual = actual
        super().__init__("Transaction fee payer is not the facilitator")


class SimulationError(ValidationError):
    """Transaction simulation reported an execution error"""

    pass


class ReplayError(ValidationError):
    """Transaction with the claimed signature already landed on-chain"""

    pass


class TransactionNotFoundError(X402Error):
    """Claimed signature is absent on the ledger"""

    def __init__(self, signature: str, message: str = "Transaction not found on blockchain"):
        self.signature = signature
        super().__init__(message)


class ConstructionError(X402Error):
    """Sponsored transaction could not be built"""

    pass


class SettlementError(X402Error):
    """Settlement-related error"""

    def __init__(self, message: str, signature: str | None = None):
        self.signature = signature
        super().__init__(message)


class BroadcastError(SettlementError):
    """Ledger rejected the transaction at submission"""

    pass


class TransactionFailedError(SettlementError):
    """Transaction execution failed on-chain"""

    pass


class TransactionTimeoutError(SettlementError):
    """Transaction did not reach a confirmed state within the bound"""

    def __init__(self, message: str, signature: str | None = None, status: str = "processed"):
        self.status = status
        super().__init__(message, signature)


class ConfigurationError(X402Error):
    """Configuration-related error"""

    pass


class UnsupportedNetworkError(ConfigurationError):
    """Unsupported network"""

    pass
