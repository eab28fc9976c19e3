"""
Wire helpers for legacy Solana transactions.

``PartiallySignedTransaction`` keeps the signers a message requires apart
from the signatures collected so far; the wire form is only produced by
``serialize``, which fills unsigned slots with the all-zero signature.
"""

import base64
import binascii

from solders.message import Message
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import Transaction

from x402_solana.exceptions import PayloadFormatError


def decode_transaction(encoded: str) -> Transaction:
    """
    Decode a base64 wire transaction.

    Raises:
        PayloadFormatError: If the string is not base64 or not a transaction
    """
    try:
        raw = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as e:
        raise PayloadFormatError(f"Transaction is not valid base64: {e}") from e
    try:
        return Transaction.from_bytes(raw)
    except Exception as e:
        raise PayloadFormatError(f"Could not deserialize transaction: {e}") from e


def encode_transaction(transaction: Transaction) -> str:
    return base64.b64encode(bytes(transaction)).decode("ascii")


def fee_payer(transaction: Transaction) -> Pubkey | None:
    """The fee payer is the first account key of the message"""
    keys = transaction.message.account_keys
    return keys[0] if keys else None


def primary_signature(transaction: Transaction) -> Signature | None:
    """The fee payer's signature, which is also the transaction id; None if unsigned"""
    if not transaction.signatures:
        return None
    signature = transaction.signatures[0]
    if signature == Signature.default():
        return None
    return signature


def parse_signature(value: str) -> Signature:
    """
    Raises:
        PayloadFormatError: If the value is not a base58 signature
    """
    try:
        return Signature.from_string(value)
    except Exception as e:
        raise PayloadFormatError(f"Invalid signature: {value}") from e


class PartiallySignedTransaction:
    """A compiled message plus the signatures gathered for it so far"""

    def __init__(self, message: Message) -> None:
        self._message = message
        count = message.header.num_required_signatures
        self._required: list[Pubkey] = list(message.account_keys[:count])
        self._signatures: dict[Pubkey, Signature] = {}

    @property
    def message(self) -> Message:
        return self._message

    @property
    def required_signers(self) -> list[Pubkey]:
        return list(self._required)

    def add_signature(self, signer: Pubkey, signature: Signature) -> None:
        if signer not in self._required:
            raise ValueError(f"{signer} is not a required signer of this transaction")
        self._signatures[signer] = signature

    def sign(self, signer: Pubkey, sign_message) -> None:
        """Sign the message with ``sign_message(bytes) -> Signature`` on behalf of ``signer``"""
        self.add_signature(signer, sign_message(bytes(self._message)))

    def missing_signers(self) -> list[Pubkey]:
        return [key for key in self._required if key not in self._signatures]

    def is_complete(self) -> bool:
        return not self.missing_signers()

    def to_transaction(self) -> Transaction:
        signatures = [self._signatures.get(key, Signature.default()) for key in self._required]
        return Transaction.populate(self._message, signatures)

    def serialize(self) -> str:
        """Base64 wire form; unsigned slots hold the all-zero signature"""
        return encode_transaction(self.to_transaction())
