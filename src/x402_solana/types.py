"""
Type definitions for x402 protocol on Solana
"""

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, model_validator

SCHEME_EXACT = "exact"
X402_VERSION = 1

ConfirmationStatus = Literal["processed", "confirmed", "finalized"]

PayloadFormat = Literal["facilitator_sponsored", "minimal", "full", "authorization_only"]


class PaymentRequirements(BaseModel):
    """Payment requirements declared by the protected resource"""

    scheme: str = SCHEME_EXACT
    network: str
    max_amount_required: Optional[Union[str, int]] = Field(None, alias="maxAmountRequired")
    resource: Optional[str] = None
    description: Optional[str] = None
    mime_type: Optional[str] = Field(None, alias="mimeType")
    pay_to: Optional[str] = Field(None, alias="payTo")
    max_timeout_seconds: Optional[int] = Field(None, alias="maxTimeoutSeconds")
    asset: Optional[str] = None
    extra: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True
        frozen = True


class PaymentPayload(BaseModel):
    """Payment payload sent by client; the inner payload shape is caller-controlled"""

    x402_version: int = Field(X402_VERSION, alias="x402Version")
    scheme: str = SCHEME_EXACT
    network: Optional[str] = None
    payload: Optional[dict[str, Any]] = None

    class Config:
        populate_by_name = True
        extra = "allow"


# ---------------------------------------------------------------------------
# Normalized payload variants
# ---------------------------------------------------------------------------


class FacilitatorSponsoredData(BaseModel):
    """Transaction built by the facilitator, signed by the user, fee paid by the facilitator"""

    format: Literal["facilitator_sponsored"] = "facilitator_sponsored"
    user_signature: str = Field(alias="userSignature")
    facilitator_transaction: str = Field(alias="facilitatorTransaction")
    user_public_key: str = Field(alias="userPublicKey")

    class Config:
        populate_by_name = True

    @property
    def encoded_transaction(self) -> str:
        return self.facilitator_transaction

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude={"format"})


class MinimalTransactionData(BaseModel):
    """Signed transaction with its signature and nothing else"""

    format: Literal["minimal"] = "minimal"
    signature: str
    transaction: str

    @property
    def encoded_transaction(self) -> str:
        return self.transaction

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude={"format"})


class FullTransactionData(BaseModel):
    """Signed transaction with descriptive transfer fields"""

    format: Literal["full"] = "full"
    signature: str
    transaction: str
    payer: str
    # Descriptive only; carried through unchecked
    amount: Any = None
    mint: Any = None
    recipient: Any = None
    blockhash: Any = None
    memo: Any = None

    @property
    def encoded_transaction(self) -> str:
        return self.transaction

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude={"format"}, exclude_none=True)


class AuthorizationOnlyData(BaseModel):
    """Signature of a transfer the payer already broadcast"""

    format: Literal["authorization_only"] = "authorization_only"
    signature: str
    payer: Any = None
    recipient: Any = None
    amount: Any = None
    memo: Any = None

    def to_payload(self) -> dict[str, Any]:
        authorization = {
            "from": self.payer,
            "to": self.recipient,
            "value": self.amount,
            "nonce": self.memo,
        }
        return {
            "signature": self.signature,
            "authorization": {k: v for k, v in authorization.items() if v is not None},
        }


NormalizedTransactionData = Annotated[
    Union[
        FacilitatorSponsoredData,
        MinimalTransactionData,
        FullTransactionData,
        AuthorizationOnlyData,
    ],
    Field(discriminator="format"),
]

BroadcastTransactionData = Union[
    FacilitatorSponsoredData,
    MinimalTransactionData,
    FullTransactionData,
]


# ---------------------------------------------------------------------------
# Settlement
# ---------------------------------------------------------------------------


class SettlementReceipt(BaseModel):
    """Outcome of one settlement attempt"""

    signature: Optional[str] = None
    confirmed: bool
    confirmation_status: ConfirmationStatus = Field("processed", alias="confirmationStatus")
    slot: Optional[int] = None
    block_time: Optional[int] = Field(None, alias="blockTime")
    fees_paid: Optional[int] = Field(None, alias="feesPaid")

    class Config:
        populate_by_name = True
        frozen = True

    @model_validator(mode="after")
    def _check_confirmed(self) -> "SettlementReceipt":
        if self.confirmed:
            if not self.signature:
                raise ValueError("confirmed receipt requires a signature")
            if self.confirmation_status not in ("confirmed", "finalized"):
                raise ValueError(
                    f"confirmed receipt cannot have status {self.confirmation_status}"
                )
        return self


# ---------------------------------------------------------------------------
# Wire responses
# ---------------------------------------------------------------------------


class VerifyResponse(BaseModel):
    """Verification response from facilitator"""

    is_valid: bool = Field(alias="isValid")
    invalid_reason: Optional[str] = Field(None, alias="invalidReason")
    payer: Optional[str] = None
    gas_sponsored_by_facilitator: Optional[bool] = Field(
        None, alias="gasSponsoredByFacilitator"
    )

    class Config:
        populate_by_name = True


class SettleResponse(BaseModel):
    """Settlement response from facilitator"""

    success: bool
    error_reason: Optional[str] = Field(None, alias="errorReason")
    transaction: Optional[str] = None
    network: Optional[str] = None
    payer: Optional[str] = None
    confirmation_status: Optional[ConfirmationStatus] = Field(None, alias="confirmationStatus")
    slot: Optional[int] = None
    block_time: Optional[int] = Field(None, alias="blockTime")
    fees: Optional[int] = None
    gas_sponsored_by_facilitator: Optional[bool] = Field(
        None, alias="gasSponsoredByFacilitator"
    )
    user_paid_gas: Optional[bool] = Field(None, alias="userPaidGas")

    class Config:
        populate_by_name = True


class SupportedKind(BaseModel):
    """Supported payment kind"""

    x402_version: int = Field(alias="x402Version")
    scheme: str
    network: str
    facilitator_pays_gas: bool = Field(True, alias="facilitatorPaysGas")
    facilitator_public_key: str = Field(alias="facilitatorPublicKey")

    class Config:
        populate_by_name = True


class SupportedResponse(BaseModel):
    """Supported response from facilitator"""

    kinds: list[SupportedKind]


class SponsoredTransactionResponse(BaseModel):
    """Result of building a facilitator-sponsored transaction"""

    success: bool
    transaction: Optional[str] = None
    facilitator_public_key: Optional[str] = Field(None, alias="facilitatorPublicKey")
    message: Optional[str] = None
    blockhash: Optional[str] = None
    fee_paid_by: Optional[Literal["facilitator"]] = Field(None, alias="feePaidBy")
    error: Optional[str] = None

    class Config:
        populate_by_name = True


class HealthResponse(BaseModel):
    """Facilitator process status"""

    status: str
    service: str
    timestamp: str
    supported_networks: list[str] = Field(alias="supportedNetworks")
    mode: str
    facilitator_public_key: str = Field(alias="facilitatorPublicKey")
    features: list[str] = []
    payload_formats: list[str] = Field([], alias="payloadFormats")
    endpoints: dict[str, str] = {}

    class Config:
        populate_by_name = True
