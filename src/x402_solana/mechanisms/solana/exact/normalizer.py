"""
Payment payload normalization.

Classifies the caller-controlled ``payload`` document into exactly one of the
recognized encodings. Downstream code branches on the returned record's type
and never looks at the raw document again.
"""

from typing import Any, Mapping

import pydantic

from x402_solana.exceptions import PayloadFormatError
from x402_solana.types import (
    AuthorizationOnlyData,
    FacilitatorSponsoredData,
    FullTransactionData,
    MinimalTransactionData,
    NormalizedTransactionData,
    PaymentPayload,
)


def _has(document: Mapping[str, Any], *keys: str) -> bool:
    return all(document.get(key) for key in keys)


def normalize(payment_payload: PaymentPayload | Mapping[str, Any]) -> NormalizedTransactionData:
    """
    Classify a payment payload and extract its canonical record.

    Shapes are tried in a fixed order and the first match wins:
    facilitator_sponsored, minimal, full, authorization_only.

    Args:
        payment_payload: PaymentPayload model or its raw dict form

    Returns:
        One of the NormalizedTransactionData variants

    Raises:
        PayloadFormatError: If the inner payload is missing or matches no shape
    """
    if isinstance(payment_payload, PaymentPayload):
        document = payment_payload.payload
    else:
        document = payment_payload.get("payload")

    if not document or not isinstance(document, Mapping):
        raise PayloadFormatError("Missing payload in payment")

    try:
        return _classify(document)
    except pydantic.ValidationError as e:
        raise PayloadFormatError(
            f"Malformed payload fields: {e.error_count()} invalid value(s)"
        ) from e


def _classify(document: Mapping[str, Any]) -> NormalizedTransactionData:
    if _has(document, "userSignature", "facilitatorTransaction", "userPublicKey"):
        return FacilitatorSponsoredData(
            userSignature=document["userSignature"],
            facilitatorTransaction=document["facilitatorTransaction"],
            userPublicKey=document["userPublicKey"],
        )

    if _has(document, "signature", "transaction") and not document.get("payer"):
        return MinimalTransactionData(
            signature=document["signature"],
            transaction=document["transaction"],
        )

    if _has(document, "signature", "transaction", "payer"):
        return FullTransactionData(
            signature=document["signature"],
            transaction=document["transaction"],
            payer=document["payer"],
            amount=document.get("amount"),
            mint=document.get("mint"),
            recipient=document.get("recipient"),
            blockhash=document.get("blockhash"),
            memo=document.get("memo"),
        )

    authorization = document.get("authorization")
    if _has(document, "signature", "authorization") and not document.get("transaction"):
        if not isinstance(authorization, Mapping):
            raise PayloadFormatError("Authorization must be an object")
        return AuthorizationOnlyData(
            signature=document["signature"],
            payer=authorization.get("from"),
            recipient=authorization.get("to"),
            amount=authorization.get("value"),
            memo=authorization.get("nonce"),
        )

    available = ", ".join(document.keys())
    raise PayloadFormatError(
        f"Unrecognized payload format. Available fields: {available}. "
        "Expected: signature + transaction (+ optional payer, amount, etc.)"
    )
