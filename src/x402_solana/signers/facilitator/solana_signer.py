"""
SolanaFacilitatorSigner - Solana facilitator signer implementation
"""

import logging

from solders.keypair import Keypair
from solders.pubkey import Pubkey
from solders.signature import Signature

from x402_solana.exceptions import ConfigurationError
from x402_solana.signers.facilitator.base import FacilitatorSigner

logger = logging.getLogger(__name__)


class SolanaFacilitatorSigner(FacilitatorSigner):
    """Solana facilitator signer backed by a single Keypair"""

    def __init__(self, keypair: Keypair, ephemeral: bool = False) -> None:
        self._keypair = keypair
        self._address = str(keypair.pubkey())
        self.ephemeral = ephemeral

    @classmethod
    def from_private_key(cls, private_key: str) -> "SolanaFacilitatorSigner":
        """Create signer from a base58-encoded 64-byte secret key

        Raises:
            ConfigurationError: If the key cannot be decoded
        """
        try:
            keypair = Keypair.from_base58_string(private_key.strip())
        except Exception as e:
            raise ConfigurationError(f"Invalid facilitator private key: {e}") from e
        return cls(keypair)

    @classmethod
    def generate(cls) -> "SolanaFacilitatorSigner":
        """Create signer with a fresh keypair that lives only as long as the process"""
        return cls(Keypair(), ephemeral=True)

    @classmethod
    def from_config(cls, private_key: str | None) -> "SolanaFacilitatorSigner":
        """Load the configured key, falling back to an ephemeral keypair"""
        if not private_key:
            signer = cls.generate()
            logger.warning(
                "No FACILITATOR_PRIVATE_KEY provided, using temporary keypair %s",
                signer.get_address(),
            )
            return signer
        try:
            return cls.from_private_key(private_key)
        except ConfigurationError as e:
            signer = cls.generate()
            logger.warning("%s; using temporary keypair %s", e, signer.get_address())
            return signer

    def get_address(self) -> str:
        return self._address

    @property
    def pubkey(self) -> Pubkey:
        return self._keypair.pubkey()

    def sign_message(self, message: bytes) -> Signature:
        return self._keypair.sign_message(message)
