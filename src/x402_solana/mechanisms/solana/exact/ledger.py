"""
Read-only ledger queries shared by verification and settlement
"""

from typing import Any

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solders.signature import Signature
from solders.transaction import Transaction
from solders.transaction_status import TransactionConfirmationStatus

from x402_solana.types import FacilitatorSponsoredData, NormalizedTransactionData

_STATUS_NAMES = (
    (TransactionConfirmationStatus.Processed, "processed"),
    (TransactionConfirmationStatus.Confirmed, "confirmed"),
    (TransactionConfirmationStatus.Finalized, "finalized"),
)

CONFIRMED_STATUSES = ("confirmed", "finalized")


def status_name(status: Any) -> str:
    """Map a solders confirmation status (or None) to its wire name"""
    for value, name in _STATUS_NAMES:
        if status == value:
            return name
    return "processed"


def rpc_error_message(error: Exception) -> str:
    """Readable reason for an RPC failure; SolanaRpcException keeps it in error_msg"""
    return getattr(error, "error_msg", None) or str(error)


async def simulate(client: AsyncClient, transaction: Transaction) -> Any:
    """Dry-run the transaction; returns the execution error, or None on success"""
    resp = await client.simulate_transaction(transaction, sig_verify=False, commitment=Confirmed)
    return resp.value.err


async def fetch_transaction(client: AsyncClient, signature: Signature) -> Any:
    """Look up a landed transaction at "confirmed" commitment; None if absent"""
    resp = await client.get_transaction(
        signature,
        commitment=Confirmed,
        max_supported_transaction_version=0,
    )
    return resp.value


def execution_error(tx_info: Any) -> Any:
    meta = tx_info.transaction.meta
    return meta.err if meta is not None else None


def transaction_fee(tx_info: Any) -> int | None:
    meta = tx_info.transaction.meta
    return meta.fee if meta is not None else None


def resolve_payer(data: NormalizedTransactionData, facilitator_address: str) -> str:
    """Address reported as payer: the facilitator for sponsored payloads, else the claimed payer"""
    if isinstance(data, FacilitatorSponsoredData):
        return facilitator_address
    payer = getattr(data, "payer", None)
    return str(payer) if payer else "unknown"
