"""
X402Facilitator - Core payment processor for x402 protocol
"""

from typing import Protocol

from x402_solana.types import (
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SponsoredTransactionResponse,
    SupportedKind,
    SupportedResponse,
    VerifyResponse,
)


class FacilitatorMechanism(Protocol):
    """Facilitator mechanism interface"""

    def scheme(self) -> str:
        """Get the payment scheme name"""
        ...

    def supported_kinds(self) -> list[SupportedKind]:
        """Network/scheme combinations this mechanism serves"""
        ...

    async def verify(
        self,
        payload: PaymentPayload | None,
        requirements: PaymentRequirements | None,
    ) -> VerifyResponse:
        """Verify payment without changing ledger state"""
        ...

    async def settle(
        self,
        payload: PaymentPayload | None,
        requirements: PaymentRequirements | None,
    ) -> SettleResponse:
        """Execute payment settlement"""
        ...

    async def create_sponsored_transaction(
        self,
        user_public_key: str | None,
        requirements: PaymentRequirements | None,
    ) -> SponsoredTransactionResponse:
        """Build a transaction whose fees the facilitator pays"""
        ...


class X402Facilitator:
    """
    Core payment processor for x402 protocol.

    Manages payment mechanisms and coordinates verification/settlement.
    Network checks are left to the mechanism, which owns the connections.
    """

    def __init__(self) -> None:
        self._mechanisms: dict[str, FacilitatorMechanism] = {}

    def register(self, mechanism: FacilitatorMechanism) -> "X402Facilitator":
        """
        Register a payment mechanism under its scheme.

        Args:
            mechanism: Facilitator mechanism instance

        Returns:
            self for method chaining
        """
        self._mechanisms[mechanism.scheme()] = mechanism
        return self

    def supported(self) -> SupportedResponse:
        """
        Return supported network/scheme combinations.

        Returns:
            SupportedResponse with all supported capabilities
        """
        kinds: list[SupportedKind] = []
        for mechanism in self._mechanisms.values():
            kinds.extend(mechanism.supported_kinds())
        return SupportedResponse(kinds=kinds)

    async def verify(
        self,
        payload: PaymentPayload | None,
        requirements: PaymentRequirements | None,
    ) -> VerifyResponse:
        """
        Verify payment payload validity.

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            VerifyResponse
        """
        scheme = self._scheme_of(payload, requirements)
        mechanism = self._mechanisms.get(scheme)
        if mechanism is None:
            return VerifyResponse(isValid=False, invalidReason=f"unsupported_scheme: {scheme}")
        return await mechanism.verify(payload, requirements)

    async def settle(
        self,
        payload: PaymentPayload | None,
        requirements: PaymentRequirements | None,
    ) -> SettleResponse:
        """
        Execute payment settlement.

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            SettleResponse with transaction signature
        """
        scheme = self._scheme_of(payload, requirements)
        mechanism = self._mechanisms.get(scheme)
        if mechanism is None:
            return SettleResponse(
                success=False,
                errorReason=f"unsupported_scheme: {scheme}",
                network=payload.network if payload else None,
            )
        return await mechanism.settle(payload, requirements)

    async def create_sponsored_transaction(
        self,
        user_public_key: str | None,
        requirements: PaymentRequirements | None,
    ) -> SponsoredTransactionResponse:
        """
        Build a facilitator-sponsored transaction for the payer to sign.

        Args:
            user_public_key: Payer wallet address
            requirements: Payment requirements

        Returns:
            SponsoredTransactionResponse
        """
        scheme = self._scheme_of(None, requirements)
        mechanism = self._mechanisms.get(scheme)
        if mechanism is None:
            return SponsoredTransactionResponse(
                success=False, error=f"unsupported_scheme: {scheme}"
            )
        return await mechanism.create_sponsored_transaction(user_public_key, requirements)

    def _scheme_of(
        self,
        payload: PaymentPayload | None,
        requirements: PaymentRequirements | None,
    ) -> str:
        """Scheme named by the requirements, else the payload, else the first registered"""
        if requirements is not None:
            return requirements.scheme
        if payload is not None:
            return payload.scheme
        return next(iter(self._mechanisms), "")
