"""
ExactSolanaFacilitatorMechanism - exact facilitator mechanism for Solana.
"""

import logging

from x402_solana.exceptions import ConstructionError, UnsupportedNetworkError
from x402_solana.mechanisms.solana.exact.builder import SponsoredTransactionBuilder
from x402_solana.mechanisms.solana.exact.settlement import SettlementEngine
from x402_solana.mechanisms.solana.exact.verifier import TransactionVerifier
from x402_solana.networks import NetworkRegistry
from x402_solana.signers.facilitator import FacilitatorSigner
from x402_solana.types import (
    SCHEME_EXACT,
    X402_VERSION,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SponsoredTransactionResponse,
    SupportedKind,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

SPONSORED_MESSAGE = (
    "Transaction created with facilitator as fee payer. "
    "User needs to sign for token transfer authority."
)


class ExactSolanaFacilitatorMechanism:
    """SPL token "exact" facilitator mechanism with optional fee sponsorship."""

    def __init__(
        self,
        signer: FacilitatorSigner,
        registry: NetworkRegistry,
        poll_interval: float = 2.0,
        confirm_timeout: float = 30.0,
    ) -> None:
        self._signer = signer
        self._registry = registry
        self._builder = SponsoredTransactionBuilder(signer, registry)
        self._verifier = TransactionVerifier(signer, registry)
        self._settlement = SettlementEngine(
            signer,
            registry,
            poll_interval=poll_interval,
            confirm_timeout=confirm_timeout,
        )

    def scheme(self) -> str:
        return SCHEME_EXACT

    def supported_kinds(self) -> list[SupportedKind]:
        return [
            SupportedKind(
                x402Version=X402_VERSION,
                scheme=self.scheme(),
                network=network,
                facilitatorPaysGas=True,
                facilitatorPublicKey=self._signer.get_address(),
            )
            for network in self._registry.networks
        ]

    async def verify(
        self,
        payload: PaymentPayload | None,
        requirements: PaymentRequirements | None,
    ) -> VerifyResponse:
        return await self._verifier.verify(payload, requirements)

    async def settle(
        self,
        payload: PaymentPayload | None,
        requirements: PaymentRequirements | None,
    ) -> SettleResponse:
        return await self._settlement.settle(payload, requirements)

    async def create_sponsored_transaction(
        self,
        user_public_key: str | None,
        requirements: PaymentRequirements | None,
    ) -> SponsoredTransactionResponse:
        """
        Build a transfer the facilitator pays fees for.

        Args:
            user_public_key: Payer wallet address
            requirements: Payment requirements

        Returns:
            SponsoredTransactionResponse with the partially signed transaction (base64)
        """
        if not user_public_key:
            return SponsoredTransactionResponse(success=False, error="Missing userPublicKey")
        if requirements is None:
            return SponsoredTransactionResponse(success=False, error="Missing paymentRequirements")

        try:
            sponsored = await self._builder.build(user_public_key, requirements)
        except UnsupportedNetworkError as e:
            return SponsoredTransactionResponse(success=False, error=str(e))
        except ConstructionError as e:
            logger.error("Error creating sponsored transaction: %s", e)
            return SponsoredTransactionResponse(
                success=False,
                error=f"Failed to create sponsored transaction: {e}",
            )

        return SponsoredTransactionResponse(
            success=True,
            transaction=sponsored.serialize(),
            facilitatorPublicKey=sponsored.fee_payer,
            message=SPONSORED_MESSAGE,
            blockhash=sponsored.blockhash,
            feePaidBy="facilitator",
        )
