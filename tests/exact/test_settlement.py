"""
Tests for SettlementEngine.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest
from solana.rpc.core import RPCException
from solders.keypair import Keypair
from solders.transaction_status import TransactionConfirmationStatus

from helpers import (
    confirmed_status,
    encode,
    landed_transaction,
    make_transfer_message,
    rpc_error,
    sign_with,
)
from x402_solana.mechanisms.solana.exact import SettlementEngine
from x402_solana.types import PaymentPayload


@pytest.fixture
def engine(signer, registry):
    return SettlementEngine(signer, registry, poll_interval=0.01, confirm_timeout=0.05)


def _payload(inner, network="solana-devnet"):
    return PaymentPayload(x402Version=1, scheme="exact", network=network, payload=inner)


def _signed_payload(transaction, payer=None):
    inner = {"signature": str(transaction.signatures[0]), "transaction": encode(transaction)}
    if payer:
        inner["payer"] = payer
    return _payload(inner)


def _sponsored_payload(transaction, user_keypair):
    return _payload(
        {
            "userSignature": str(transaction.signatures[1]),
            "facilitatorTransaction": encode(transaction),
            "userPublicKey": str(user_keypair.pubkey()),
        }
    )


def _accept_broadcast(mock_client, transaction, status=None, details=None):
    mock_client.send_raw_transaction.return_value = MagicMock(value=transaction.signatures[0])
    mock_client.get_signature_statuses.return_value = MagicMock(
        value=[status or confirmed_status()]
    )
    mock_client.get_transaction.return_value = MagicMock(value=details or landed_transaction())


class TestBroadcast:
    @pytest.mark.anyio
    async def test_user_paid_settles(
        self, engine, devnet_requirements, user_signed_tx, user_keypair, mock_client
    ):
        _accept_broadcast(mock_client, user_signed_tx)
        payer = str(user_keypair.pubkey())

        result = await engine.settle(_signed_payload(user_signed_tx, payer), devnet_requirements)

        assert result.success is True
        assert result.error_reason is None
        assert result.transaction == str(user_signed_tx.signatures[0])
        assert result.network == "solana-devnet"
        assert result.payer == payer
        assert result.confirmation_status == "confirmed"
        assert result.slot == 321
        assert result.block_time == 1_700_000_000
        assert result.fees == 5000
        assert result.gas_sponsored_by_facilitator is False
        assert result.user_paid_gas is True

        mock_client.send_raw_transaction.assert_awaited_once()
        raw = mock_client.send_raw_transaction.await_args.args[0]
        assert raw == bytes(user_signed_tx)
        opts = mock_client.send_raw_transaction.await_args.kwargs["opts"]
        assert opts.skip_preflight is False
        assert opts.max_retries == 3

    @pytest.mark.anyio
    async def test_sponsored_settles(
        self, engine, signer, devnet_requirements, sponsored_tx, user_keypair, mock_client
    ):
        _accept_broadcast(
            mock_client,
            sponsored_tx,
            status=confirmed_status(TransactionConfirmationStatus.Finalized),
        )

        result = await engine.settle(
            _sponsored_payload(sponsored_tx, user_keypair), devnet_requirements
        )

        assert result.success is True
        assert result.payer == signer.get_address()
        assert result.confirmation_status == "finalized"
        assert result.gas_sponsored_by_facilitator is True
        assert result.user_paid_gas is False

    @pytest.mark.anyio
    async def test_sponsored_foreign_fee_payer_not_broadcast(
        self, engine, devnet_requirements, user_keypair, mint, merchant, mock_client
    ):
        other = Keypair()
        message = make_transfer_message(other.pubkey(), user_keypair.pubkey(), mint, merchant)
        transaction = sign_with(message, other, user_keypair).to_transaction()

        result = await engine.settle(
            _sponsored_payload(transaction, user_keypair), devnet_requirements
        )

        assert result.success is False
        assert result.error_reason == (
            "Settlement failed: Transaction fee payer is not the facilitator"
        )
        mock_client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.anyio
    async def test_unsigned_fee_payer_rejected(
        self, engine, devnet_requirements, user_keypair, mint, merchant, mock_client
    ):
        message = make_transfer_message(
            user_keypair.pubkey(), user_keypair.pubkey(), mint, merchant
        )
        unsigned = sign_with(message).to_transaction()

        result = await engine.settle(
            _payload({"signature": "sig", "transaction": encode(unsigned)}), devnet_requirements
        )

        assert result.success is False
        assert result.error_reason == (
            "Settlement failed: Transaction is not signed by its fee payer"
        )
        mock_client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.anyio
    async def test_rejected_at_submission(
        self, engine, devnet_requirements, user_signed_tx, mock_client
    ):
        mock_client.send_raw_transaction.side_effect = RPCException("Blockhash not found")

        result = await engine.settle(_signed_payload(user_signed_tx), devnet_requirements)

        assert result.success is False
        assert result.error_reason.startswith(
            "Settlement failed: Transaction rejected at submission:"
        )
        assert result.transaction == str(user_signed_tx.signatures[0])
        mock_client.get_signature_statuses.assert_not_awaited()

    @pytest.mark.anyio
    async def test_submission_transport_error(
        self, engine, devnet_requirements, user_signed_tx, mock_client
    ):
        mock_client.send_raw_transaction.side_effect = rpc_error("connection reset")

        result = await engine.settle(_signed_payload(user_signed_tx), devnet_requirements)

        assert result.error_reason.startswith("Settlement failed: Transaction submission failed: ")
        assert "ConnectError" in result.error_reason
        assert result.transaction == str(user_signed_tx.signatures[0])

    @pytest.mark.anyio
    async def test_execution_failure(
        self, engine, devnet_requirements, user_signed_tx, mock_client
    ):
        _accept_broadcast(
            mock_client, user_signed_tx, status=confirmed_status(err="InstructionError")
        )

        result = await engine.settle(_signed_payload(user_signed_tx), devnet_requirements)

        assert result.success is False
        assert result.error_reason == "Settlement failed: Transaction failed: InstructionError"
        assert result.transaction == str(user_signed_tx.signatures[0])

    @pytest.mark.anyio
    async def test_details_unavailable_uses_status_slot(
        self, engine, devnet_requirements, user_signed_tx, mock_client
    ):
        _accept_broadcast(mock_client, user_signed_tx, status=confirmed_status(slot=999))
        mock_client.get_transaction.side_effect = rpc_error("unreachable")

        result = await engine.settle(_signed_payload(user_signed_tx), devnet_requirements)

        assert result.success is True
        assert result.slot == 999
        assert result.fees is None


class TestConfirmation:
    @pytest.mark.anyio
    async def test_polls_until_confirmed(
        self, signer, registry, devnet_requirements, user_signed_tx, mock_client
    ):
        _accept_broadcast(mock_client, user_signed_tx)
        mock_client.get_signature_statuses.side_effect = [
            MagicMock(value=[None]),
            MagicMock(value=[confirmed_status(TransactionConfirmationStatus.Processed)]),
            MagicMock(value=[confirmed_status()]),
        ]
        engine = SettlementEngine(signer, registry, poll_interval=0, confirm_timeout=5)

        result = await engine.settle(_signed_payload(user_signed_tx), devnet_requirements)

        assert result.success is True
        assert mock_client.get_signature_statuses.await_count == 3
        call = mock_client.get_signature_statuses.await_args
        assert call.kwargs["search_transaction_history"] is True

    @pytest.mark.anyio
    async def test_timeout_reports_signature_and_status(
        self, engine, devnet_requirements, user_signed_tx, mock_client
    ):
        _accept_broadcast(
            mock_client,
            user_signed_tx,
            status=confirmed_status(TransactionConfirmationStatus.Processed),
        )

        result = await engine.settle(_signed_payload(user_signed_tx), devnet_requirements)

        assert result.success is False
        assert result.error_reason == (
            "Settlement failed: Transaction not confirmed within timeout. Status: processed"
        )
        assert result.transaction == str(user_signed_tx.signatures[0])
        assert result.confirmation_status == "processed"
        mock_client.send_raw_transaction.assert_awaited_once()

    @pytest.mark.anyio
    async def test_sponsored_timeout_message(
        self, engine, devnet_requirements, sponsored_tx, user_keypair, mock_client
    ):
        _accept_broadcast(mock_client, sponsored_tx)
        mock_client.get_signature_statuses.return_value = MagicMock(value=[None])

        result = await engine.settle(
            _sponsored_payload(sponsored_tx, user_keypair), devnet_requirements
        )

        assert result.error_reason == (
            "Settlement failed: Facilitator-sponsored transaction not confirmed within timeout. "
            "Status: processed"
        )
        assert result.transaction == str(sponsored_tx.signatures[0])

    @pytest.mark.anyio
    async def test_status_errors_keep_polling(
        self, signer, registry, devnet_requirements, user_signed_tx, mock_client
    ):
        _accept_broadcast(mock_client, user_signed_tx)
        mock_client.get_signature_statuses.side_effect = [
            rpc_error("blip"),
            MagicMock(value=[confirmed_status()]),
        ]
        engine = SettlementEngine(signer, registry, poll_interval=0, confirm_timeout=5)

        result = await engine.settle(_signed_payload(user_signed_tx), devnet_requirements)

        assert result.success is True


class TestDuplicateSettlement:
    @pytest.mark.anyio
    async def test_concurrent_settle_broadcasts_once(
        self, engine, devnet_requirements, user_signed_tx, mock_client
    ):
        _accept_broadcast(mock_client, user_signed_tx)
        entered = asyncio.Event()
        release = asyncio.Event()

        async def slow_send(*args, **kwargs):
            entered.set()
            await release.wait()
            return MagicMock(value=user_signed_tx.signatures[0])

        mock_client.send_raw_transaction = AsyncMock(side_effect=slow_send)
        payload = _signed_payload(user_signed_tx)

        first = asyncio.create_task(engine.settle(payload, devnet_requirements))
        await entered.wait()
        second = await engine.settle(payload, devnet_requirements)
        release.set()
        first_result = await first

        assert first_result.success is True
        assert second.success is False
        assert second.error_reason == (
            f"Settlement failed: Settlement already in progress for {user_signed_tx.signatures[0]}"
        )
        assert mock_client.send_raw_transaction.await_count == 1

    @pytest.mark.anyio
    async def test_in_flight_released_after_failure(
        self, engine, devnet_requirements, user_signed_tx, mock_client
    ):
        mock_client.send_raw_transaction.side_effect = RPCException("rejected")
        payload = _signed_payload(user_signed_tx)

        await engine.settle(payload, devnet_requirements)
        await engine.settle(payload, devnet_requirements)

        assert mock_client.send_raw_transaction.await_count == 2


class TestAuthorizationOnly:
    def _auth_payload(self, signature):
        return _payload(
            {
                "signature": signature,
                "authorization": {"from": "PayerAddr", "to": "MerchantAddr", "value": "1000000"},
            }
        )

    @pytest.mark.anyio
    async def test_existing_transaction(
        self, engine, devnet_requirements, user_signed_tx, mock_client
    ):
        signature = str(user_signed_tx.signatures[0])
        mock_client.get_transaction.return_value = MagicMock(
            value=landed_transaction(slot=77, fee=5000)
        )

        result = await engine.settle(self._auth_payload(signature), devnet_requirements)

        assert result.success is True
        assert result.transaction == signature
        assert result.payer == "PayerAddr"
        assert result.confirmation_status == "confirmed"
        assert result.slot == 77
        assert result.fees == 5000
        assert result.user_paid_gas is True
        mock_client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.anyio
    async def test_not_found(self, engine, devnet_requirements, user_signed_tx, mock_client):
        result = await engine.settle(
            self._auth_payload(str(user_signed_tx.signatures[0])), devnet_requirements
        )

        assert result.success is False
        assert result.error_reason == (
            "Settlement failed: Failed to verify existing transaction: "
            "Transaction not found on blockchain"
        )
        mock_client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.anyio
    async def test_failed_on_chain(self, engine, devnet_requirements, user_signed_tx, mock_client):
        signature = str(user_signed_tx.signatures[0])
        mock_client.get_transaction.return_value = MagicMock(
            value=landed_transaction(err="InstructionError")
        )

        result = await engine.settle(self._auth_payload(signature), devnet_requirements)

        assert result.error_reason == (
            "Settlement failed: Failed to verify existing transaction: "
            "Transaction failed: InstructionError"
        )
        assert result.transaction == signature


class TestPreconditions:
    @pytest.mark.anyio
    async def test_missing_requirements(self, engine, user_signed_tx):
        result = await engine.settle(_signed_payload(user_signed_tx), None)
        assert result.success is False
        assert result.error_reason == (
            "Settlement failed: Missing paymentPayload or paymentRequirements"
        )
        assert result.network == "solana-devnet"

    @pytest.mark.anyio
    async def test_non_solana_network(
        self, engine, devnet_requirements, user_signed_tx, mock_client
    ):
        payload = _signed_payload(user_signed_tx).model_copy(update={"network": "tron:nile"})
        result = await engine.settle(payload, devnet_requirements)
        assert result.success is False
        assert result.error_reason == (
            "Settlement failed: Unsupported network - only Solana networks supported"
        )
        assert result.network == "tron:nile"
        mock_client.send_raw_transaction.assert_not_awaited()

    @pytest.mark.anyio
    async def test_unsupported_network(self, engine, devnet_requirements, user_signed_tx):
        payload = _signed_payload(user_signed_tx).model_copy(update={"network": "solana-localnet"})
        result = await engine.settle(payload, devnet_requirements)
        assert result.error_reason == "Settlement failed: Unsupported network: solana-localnet"
        assert result.network == "solana-localnet"

    @pytest.mark.anyio
    async def test_invalid_payload(self, engine, devnet_requirements, mock_client):
        result = await engine.settle(_payload({"foo": "bar"}), devnet_requirements)
        assert result.error_reason.startswith(
            "Settlement failed: Invalid payload format: Unrecognized payload format."
        )
        mock_client.send_raw_transaction.assert_not_awaited()
