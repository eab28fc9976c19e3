"""
Facilitator signer base interface
"""

from abc import ABC, abstractmethod

from solders.pubkey import Pubkey
from solders.signature import Signature


class FacilitatorSigner(ABC):
    """
    Abstract base class for facilitator signers.

    Holds the facilitator's identity and signs the fee-payer slot of
    sponsored transactions.
    """

    @abstractmethod
    def get_address(self) -> str:
        """Get the facilitator's account address (base58)"""
        pass

    @property
    @abstractmethod
    def pubkey(self) -> Pubkey:
        """Get the facilitator's public key"""
        pass

    @abstractmethod
    def sign_message(self, message: bytes) -> Signature:
        """
        Sign a serialized transaction message.

        Args:
            message: Serialized message bytes

        Returns:
            Ed25519 signature over the message
        """
        pass
