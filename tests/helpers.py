"""
Shared builders for Solana transactions and RPC responses used across tests
"""

import base64
from unittest.mock import MagicMock

import httpx
from solana.exceptions import SolanaRpcException
from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import Message
from solders.pubkey import Pubkey
from solders.transaction_status import TransactionConfirmationStatus
from spl.token.constants import TOKEN_PROGRAM_ID
from spl.token.instructions import TransferParams, get_associated_token_address, transfer

from x402_solana.mechanisms.solana.exact.transaction import PartiallySignedTransaction

RPC_URL = "https://api.devnet.solana.com"


def make_transfer_message(fee_payer: Pubkey, owner: Pubkey, mint: Pubkey, recipient: Pubkey):
    instruction = transfer(
        TransferParams(
            program_id=TOKEN_PROGRAM_ID,
            source=get_associated_token_address(owner, mint),
            dest=get_associated_token_address(recipient, mint),
            owner=owner,
            amount=1_000_000,
        )
    )
    return Message.new_with_blockhash([instruction], fee_payer, Hash.new_unique())


def sign_with(message: Message, *keypairs: Keypair) -> PartiallySignedTransaction:
    transaction = PartiallySignedTransaction(message)
    for keypair in keypairs:
        transaction.sign(keypair.pubkey(), keypair.sign_message)
    return transaction


def encode(transaction) -> str:
    return base64.b64encode(bytes(transaction)).decode("ascii")


def confirmed_status(status=TransactionConfirmationStatus.Confirmed, err=None, slot=321):
    return MagicMock(err=err, confirmation_status=status, slot=slot)


def landed_transaction(slot=321, block_time=1_700_000_000, fee=5000, err=None):
    return MagicMock(
        slot=slot,
        block_time=block_time,
        transaction=MagicMock(meta=MagicMock(fee=fee, err=err)),
    )


def rpc_error(message="unreachable"):
    """Transport failure as raised by solana-py's AsyncClient"""

    def request():
        pass

    return SolanaRpcException(
        httpx.ConnectError(message), request, None, httpx.Request("POST", RPC_URL)
    )
