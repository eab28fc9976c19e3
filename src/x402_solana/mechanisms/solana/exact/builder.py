"""
SponsoredTransactionBuilder - SPL token transfers with the facilitator as fee payer
"""

import logging
from dataclasses import dataclass

from solana.exceptions import SolanaRpcException
from solana.rpc.commitment import Confirmed
from solana.rpc.core import RPCException
from solders.message import Message
from solders.pubkey import Pubkey
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import TransferParams, get_associated_token_address, transfer

from x402_solana.exceptions import ConstructionError
from x402_solana.mechanisms.solana.exact import ledger
from x402_solana.mechanisms.solana.exact.transaction import PartiallySignedTransaction
from x402_solana.networks import NetworkRegistry
from x402_solana.signers.facilitator import FacilitatorSigner
from x402_solana.types import PaymentRequirements

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SponsoredTransaction:
    """Facilitator-signed transaction awaiting the payer's signature"""

    transaction: PartiallySignedTransaction
    blockhash: str
    fee_payer: str
    payer: str

    def serialize(self) -> str:
        return self.transaction.serialize()


def _parse_pubkey(value: str | None, field_name: str) -> Pubkey:
    if not value:
        raise ConstructionError(f"Missing {field_name}")
    try:
        return Pubkey.from_string(value)
    except Exception as e:
        raise ConstructionError(f"Invalid {field_name}: {value}") from e


def _parse_amount(value: str | int | None) -> int:
    if value is None or value == "":
        raise ConstructionError("Missing maxAmountRequired")
    try:
        amount = int(value)
    except (TypeError, ValueError) as e:
        raise ConstructionError(f"Invalid maxAmountRequired: {value}") from e
    if amount <= 0:
        raise ConstructionError(f"Invalid maxAmountRequired: {value}")
    return amount


class SponsoredTransactionBuilder:
    """
    Builds token transfers in which the facilitator pays network fees.

    The payer stays the transfer authority, so the returned transaction is
    only broadcastable after the payer adds its signature.
    """

    def __init__(self, signer: FacilitatorSigner, registry: NetworkRegistry) -> None:
        self._signer = signer
        self._registry = registry

    async def build(
        self,
        user_public_key: str,
        requirements: PaymentRequirements,
    ) -> SponsoredTransaction:
        """
        Build and fee-payer-sign a transfer of ``maxAmountRequired`` to ``payTo``.

        Args:
            user_public_key: Payer wallet address (base58)
            requirements: Payment requirements of the protected resource

        Returns:
            SponsoredTransaction with the payer's signature slot left empty

        Raises:
            UnsupportedNetworkError: If the network is not registered
            ConstructionError: On malformed inputs or an unreachable RPC endpoint
        """
        client = self._registry.resolve(requirements.network)

        payer = _parse_pubkey(user_public_key, "userPublicKey")
        mint = _parse_pubkey(requirements.asset, "asset")
        recipient = _parse_pubkey(requirements.pay_to, "payTo")
        amount = _parse_amount(requirements.max_amount_required)

        source = get_associated_token_address(payer, mint)
        dest = get_associated_token_address(recipient, mint)
        instruction = transfer(
            TransferParams(
                program_id=TOKEN_PROGRAM_ID,
                source=source,
                dest=dest,
                owner=payer,
                amount=amount,
            )
        )

        try:
            resp = await client.get_latest_blockhash(commitment=Confirmed)
        except (RPCException, SolanaRpcException) as e:
            raise ConstructionError(
                f"Could not fetch recent blockhash: {ledger.rpc_error_message(e)}"
            ) from e
        blockhash = resp.value.blockhash

        message = Message.new_with_blockhash([instruction], self._signer.pubkey, blockhash)
        transaction = PartiallySignedTransaction(message)
        transaction.sign(self._signer.pubkey, self._signer.sign_message)

        logger.info(
            "Sponsored transaction built: fee_payer=%s, authority=%s, amount=%s, token=%s",
            self._signer.get_address(),
            user_public_key,
            amount,
            requirements.asset,
        )
        logger.debug(
            "Required signers: %s, pending: %s",
            [str(k) for k in transaction.required_signers],
            [str(k) for k in transaction.missing_signers()],
        )

        return SponsoredTransaction(
            transaction=transaction,
            blockhash=str(blockhash),
            fee_payer=self._signer.get_address(),
            payer=user_public_key,
        )
