"""
TransactionVerifier - read-only validation of payment payloads
"""

import logging

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.core import RPCException

from x402_solana.config import NetworkConfig
from x402_solana.exceptions import (
    FeePayerMismatchError,
    PayloadFormatError,
    ReplayError,
    SimulationError,
    TransactionNotFoundError,
    UnsupportedNetworkError,
    ValidationError,
)
from x402_solana.mechanisms.solana.exact import ledger
from x402_solana.mechanisms.solana.exact.normalizer import normalize
from x402_solana.mechanisms.solana.exact.transaction import (
    decode_transaction,
    fee_payer,
    parse_signature,
    primary_signature,
)
from x402_solana.networks import NetworkRegistry
from x402_solana.signers.facilitator import FacilitatorSigner
from x402_solana.types import (
    AuthorizationOnlyData,
    FacilitatorSponsoredData,
    FullTransactionData,
    MinimalTransactionData,
    PaymentPayload,
    PaymentRequirements,
    VerifyResponse,
)

logger = logging.getLogger(__name__)


def _invalid(reason: str) -> VerifyResponse:
    return VerifyResponse(isValid=False, invalidReason=reason)


class TransactionVerifier:
    """
    Decides whether a payment payload is acceptable without touching ledger state.

    Sponsored and signed transactions are simulated; authorization-only
    payloads are looked up by signature since the payer already broadcast them.
    """

    def __init__(self, signer: FacilitatorSigner, registry: NetworkRegistry) -> None:
        self._signer = signer
        self._registry = registry

    async def verify(
        self,
        payload: PaymentPayload | None,
        requirements: PaymentRequirements | None,
    ) -> VerifyResponse:
        """
        Verify a payment payload against the resource's requirements.

        Args:
            payload: Payment payload from client
            requirements: Payment requirements

        Returns:
            VerifyResponse; rejections carry a human-readable invalidReason
        """
        if payload is None or requirements is None:
            return _invalid("Missing paymentPayload or paymentRequirements")

        network = payload.network or requirements.network
        if not NetworkConfig.is_solana_network(network):
            return _invalid("Unsupported network - only Solana networks supported")

        try:
            client = self._registry.resolve(network)
        except UnsupportedNetworkError as e:
            return _invalid(str(e))

        try:
            data = normalize(payload)
        except PayloadFormatError as e:
            return _invalid(f"Invalid payload format: {e}")

        logger.info("Verifying %s payload on %s", data.format, network)

        try:
            if isinstance(data, FacilitatorSponsoredData):
                await self._verify_sponsored(client, data)
            elif isinstance(data, AuthorizationOnlyData):
                await self._verify_authorization(client, data)
            else:
                await self._verify_signed(client, data)
        except (ValidationError, TransactionNotFoundError) as e:
            logger.warning("Verification rejected (%s): %s", data.format, e)
            return _invalid(str(e))
        except (PayloadFormatError, RPCException, SolanaRpcException) as e:
            reason = ledger.rpc_error_message(e)
            logger.warning("Verification error (%s): %s", data.format, reason)
            return _invalid(f"Transaction validation failed: {reason}")

        payer = ledger.resolve_payer(data, self._signer.get_address())
        logger.info(
            "Payload verified: format=%s, network=%s, payer=%s", data.format, network, payer
        )
        return VerifyResponse(
            isValid=True,
            invalidReason=None,
            payer=payer,
            gasSponsoredByFacilitator=isinstance(data, FacilitatorSponsoredData),
        )

    async def _verify_sponsored(self, client: AsyncClient, data: FacilitatorSponsoredData) -> None:
        transaction = decode_transaction(data.facilitator_transaction)

        actual = fee_payer(transaction)
        if actual != self._signer.pubkey:
            raise FeePayerMismatchError(self._signer.get_address(), str(actual))

        err = await ledger.simulate(client, transaction)
        if err is not None:
            raise SimulationError(f"Transaction simulation failed: {err}")

    async def _verify_signed(
        self,
        client: AsyncClient,
        data: MinimalTransactionData | FullTransactionData,
    ) -> None:
        transaction = decode_transaction(data.transaction)

        err = await ledger.simulate(client, transaction)
        if err is not None:
            raise SimulationError(f"Transaction simulation failed: {err}")

        candidates = []
        try:
            candidates.append(parse_signature(data.signature))
        except PayloadFormatError:
            logger.debug("Claimed signature %s is not base58, skipping lookup", data.signature)
        embedded = primary_signature(transaction)
        if embedded is not None and embedded not in candidates:
            candidates.append(embedded)

        for signature in candidates:
            try:
                existing = await ledger.fetch_transaction(client, signature)
            except (RPCException, SolanaRpcException) as e:
                # Lookup failure counts as "not executed"
                logger.debug(
                    "Replay lookup for %s failed: %s", signature, ledger.rpc_error_message(e)
                )
                continue
            if existing is not None:
                raise ReplayError("Transaction already executed on blockchain")

    async def _verify_authorization(self, client: AsyncClient, data: AuthorizationOnlyData) -> None:
        signature = parse_signature(data.signature)
        try:
            existing = await ledger.fetch_transaction(client, signature)
        except (RPCException, SolanaRpcException) as e:
            logger.warning("Lookup of %s failed: %s", data.signature, ledger.rpc_error_message(e))
            raise ValidationError("Unable to verify transaction on blockchain") from e

        if existing is None:
            raise TransactionNotFoundError(
                data.signature,
                "Transaction not found on blockchain - payment may not have been submitted yet",
            )

        err = ledger.execution_error(existing)
        if err is not None:
            raise ValidationError(f"Transaction failed on blockchain: {err}")
