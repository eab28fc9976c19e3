"""
SettlementEngine - broadcasts or confirms payments and polls them to a terminal state
"""

import logging
from typing import Any

from solana.exceptions import SolanaRpcException
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solana.rpc.types import TxOpts
from solders.signature import Signature
from solders.transaction import Transaction

from x402_solana.config import NetworkConfig
from x402_solana.exceptions import (
    BroadcastError,
    FeePayerMismatchError,
    PayloadFormatError,
    SettlementError,
    TransactionFailedError,
    TransactionNotFoundError,
    TransactionTimeoutError,
    UnsupportedNetworkError,
    ValidationError,
    X402Error,
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
    BroadcastTransactionData,
    FacilitatorSponsoredData,
    NormalizedTransactionData,
    PaymentPayload,
    PaymentRequirements,
    SettlementReceipt,
    SettleResponse,
)
from x402_solana.utils.polling import poll_until

logger = logging.getLogger(__name__)


class SettlementEngine:
    """
    The only component that submits transactions to the ledger.

    Each call performs exactly one broadcast, or one lookup of a transaction
    the payer already broadcast, then reports a SettlementReceipt.
    """

    MAX_RETRIES = 3

    def __init__(
        self,
        signer: FacilitatorSigner,
        registry: NetworkRegistry,
        poll_interval: float = 2.0,
        confirm_timeout: float = 30.0,
    ) -> None:
        self._signer = signer
        self._registry = registry
        self._poll_interval = poll_interval
        self._confirm_timeout = confirm_timeout
        # Fee-payer signatures of broadcasts currently being settled
        self._in_flight: set[str] = set()

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
            SettleResponse; failures carry errorReason and the best-known signature
        """
        network = (payload.network if payload else None) or (
            requirements.network if requirements else None
        )
        if payload is None or requirements is None:
            return self._failed("Missing paymentPayload or paymentRequirements", network)
        if not NetworkConfig.is_solana_network(network):
            return self._failed("Unsupported network - only Solana networks supported", network)

        try:
            client = self._registry.resolve(network)
        except UnsupportedNetworkError as e:
            return self._failed(str(e), network)

        try:
            data = normalize(payload)
        except PayloadFormatError as e:
            return self._failed(f"Invalid payload format: {e}", network)

        sponsored = isinstance(data, FacilitatorSponsoredData)
        logger.info("Settlement starting for %s: format=%s", network, data.format)

        try:
            receipt = await self.settle_normalized(client, data)
            self._require_confirmed(receipt, sponsored)
        except TransactionTimeoutError as e:
            logger.warning("Settlement timed out: %s", e)
            return self._failed(str(e), network, signature=e.signature, status=e.status)
        except SettlementError as e:
            logger.error("Settlement failed: %s", e)
            return self._failed(str(e), network, signature=e.signature)
        except (X402Error, RPCException, SolanaRpcException) as e:
            reason = ledger.rpc_error_message(e)
            logger.error("Settlement failed: %s", reason)
            return self._failed(reason, network)

        logger.info(
            "Settlement completed: signature=%s, status=%s, slot=%s, fees=%s lamports",
            receipt.signature,
            receipt.confirmation_status,
            receipt.slot,
            receipt.fees_paid,
        )
        return SettleResponse(
            success=True,
            errorReason=None,
            transaction=receipt.signature,
            network=network,
            payer=ledger.resolve_payer(data, self._signer.get_address()),
            confirmationStatus=receipt.confirmation_status,
            slot=receipt.slot,
            blockTime=receipt.block_time,
            fees=receipt.fees_paid,
            gasSponsoredByFacilitator=sponsored,
            userPaidGas=not sponsored,
        )

    async def settle_normalized(
        self,
        client: AsyncClient,
        data: NormalizedTransactionData,
    ) -> SettlementReceipt:
        """
        Settle an already-normalized payload.

        Returns:
            SettlementReceipt; ``confirmed`` is False when polling timed out

        Raises:
            ValidationError: Sponsored transaction with a foreign fee payer
            TransactionNotFoundError: Authorization-only signature is absent
            BroadcastError: Ledger rejected the transaction at submission
            TransactionFailedError: Transaction landed with an execution error
            SettlementError: Same transaction is already being settled
        """
        if isinstance(data, AuthorizationOnlyData):
            return await self._confirm_existing(client, data)
        return await self._broadcast_and_confirm(client, data)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    async def _confirm_existing(
        self, client: AsyncClient, data: AuthorizationOnlyData
    ) -> SettlementReceipt:
        signature = parse_signature(data.signature)
        try:
            existing = await ledger.fetch_transaction(client, signature)
        except (RPCException, SolanaRpcException) as e:
            raise SettlementError(
                f"Failed to verify existing transaction: {ledger.rpc_error_message(e)}"
            ) from e

        if existing is None:
            raise TransactionNotFoundError(
                data.signature,
                "Failed to verify existing transaction: Transaction not found on blockchain",
            )

        err = ledger.execution_error(existing)
        if err is not None:
            raise TransactionFailedError(
                "Failed to verify existing transaction: "
                f"Transaction failed: {err}",
                signature=data.signature,
            )

        logger.info("Found existing transaction %s at slot %s", data.signature, existing.slot)
        return SettlementReceipt(
            signature=data.signature,
            confirmed=True,
            confirmationStatus="confirmed",
            slot=existing.slot,
            blockTime=existing.block_time,
            feesPaid=ledger.transaction_fee(existing),
        )

    async def _broadcast_and_confirm(
        self, client: AsyncClient, data: BroadcastTransactionData
    ) -> SettlementReceipt:
        transaction = decode_transaction(data.encoded_transaction)

        if isinstance(data, FacilitatorSponsoredData):
            actual = fee_payer(transaction)
            if actual != self._signer.pubkey:
                raise FeePayerMismatchError(self._signer.get_address(), str(actual))

        key = primary_signature(transaction)
        if key is None:
            raise ValidationError("Transaction is not signed by its fee payer")
        key_str = str(key)

        if key_str in self._in_flight:
            raise SettlementError(
                f"Settlement already in progress for {key_str}", signature=key_str
            )
        self._in_flight.add(key_str)
        try:
            signature = await self._broadcast(client, transaction, key_str)
            return await self._confirm(client, signature)
        finally:
            self._in_flight.discard(key_str)

    async def _broadcast(
        self, client: AsyncClient, transaction: Transaction, expected: str
    ) -> Signature:
        logger.info("Broadcasting transaction, fee payer: %s", fee_payer(transaction))
        opts = TxOpts(
            skip_preflight=False,
            preflight_commitment=Confirmed,
            max_retries=self.MAX_RETRIES,
        )
        try:
            resp = await client.send_raw_transaction(bytes(transaction), opts=opts)
        except RPCException as e:
            raise BroadcastError(
                f"Transaction rejected at submission: {ledger.rpc_error_message(e)}",
                signature=expected,
            ) from e
        except SolanaRpcException as e:
            raise BroadcastError(
                f"Transaction submission failed: {ledger.rpc_error_message(e)}",
                signature=expected,
            ) from e

        logger.info("Transaction broadcast! Signature: %s", resp.value)
        return resp.value

    async def _confirm(self, client: AsyncClient, signature: Signature) -> SettlementReceipt:
        async def fetch() -> Any:
            resp = await client.get_signature_statuses([signature], search_transaction_history=True)
            return resp.value[0] if resp.value else None

        def is_done(status: Any) -> bool:
            if status is None:
                return False
            if status.err is not None:
                return True
            return ledger.status_name(status.confirmation_status) in ledger.CONFIRMED_STATUSES

        result = await poll_until(
            fetch,
            is_done,
            interval=self._poll_interval,
            timeout=self._confirm_timeout,
        )
        status = result.value
        signature_str = str(signature)
        last_status = ledger.status_name(status.confirmation_status) if status else "processed"

        if result.timed_out:
            logger.warning(
                "Transaction %s not confirmed after %.1fs (%d checks), last status: %s",
                signature_str,
                result.elapsed,
                result.attempts,
                last_status,
            )
            return SettlementReceipt(
                signature=signature_str, confirmed=False, confirmationStatus=last_status
            )

        if status.err is not None:
            raise TransactionFailedError(
                f"Transaction failed: {status.err}", signature=signature_str
            )

        slot, block_time, fees = await self._fetch_details(client, signature)
        return SettlementReceipt(
            signature=signature_str,
            confirmed=True,
            confirmationStatus=last_status,
            slot=slot if slot is not None else status.slot,
            blockTime=block_time,
            feesPaid=fees,
        )

    async def _fetch_details(
        self, client: AsyncClient, signature: Signature
    ) -> tuple[int | None, int | None, int | None]:
        try:
            info = await ledger.fetch_transaction(client, signature)
        except (RPCException, SolanaRpcException) as e:
            logger.warning(
                "Could not fetch transaction details for %s: %s",
                signature,
                ledger.rpc_error_message(e),
            )
            return None, None, None
        if info is None:
            return None, None, None
        return info.slot, info.block_time, ledger.transaction_fee(info)

    @staticmethod
    def _require_confirmed(receipt: SettlementReceipt, sponsored: bool) -> None:
        if receipt.confirmed:
            return
        subject = "Facilitator-sponsored transaction" if sponsored else "Transaction"
        raise TransactionTimeoutError(
            f"{subject} not confirmed within timeout. Status: {receipt.confirmation_status}",
            signature=receipt.signature,
            status=receipt.confirmation_status,
        )

    @staticmethod
    def _failed(
        reason: str,
        network: str | None,
        signature: str | None = None,
        status: str | None = None,
    ) -> SettleResponse:
        return SettleResponse(
            success=False,
            errorReason=f"Settlement failed: {reason}",
            transaction=signature,
            network=network,
            payer=None,
            confirmationStatus=status,
        )
