"""
FastAPI application exposing the facilitator over HTTP
"""

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Optional

import pydantic
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from x402_solana.facilitator import X402Facilitator
from x402_solana.networks import NetworkRegistry
from x402_solana.signers.facilitator import FacilitatorSigner
from x402_solana.types import (
    HealthResponse,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SponsoredTransactionResponse,
    VerifyResponse,
)

logger = logging.getLogger(__name__)

SERVICE_NAME = "x402-solana-facilitator"


class VerifyRequest(BaseModel):
    """Verify request model"""

    paymentPayload: Optional[dict[str, Any]] = None
    paymentRequirements: Optional[dict[str, Any]] = None


class SettleRequest(BaseModel):
    """Settle request model"""

    paymentPayload: Optional[dict[str, Any]] = None
    paymentRequirements: Optional[dict[str, Any]] = None


class SponsoredTransactionRequest(BaseModel):
    """Create sponsored transaction request model"""

    userPublicKey: Optional[str] = None
    paymentRequirements: Optional[dict[str, Any]] = None


def _parse(model: type[BaseModel], data: dict[str, Any] | None) -> Any:
    return model.model_validate(data) if data is not None else None


def _describe(error: pydantic.ValidationError) -> str:
    """First offending field and its message, such as: network: Field required"""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first["loc"])
    return f"{location}: {first['msg']}" if location else first["msg"]


def _verify_json(result: VerifyResponse) -> JSONResponse:
    if result.is_valid:
        return JSONResponse(result.model_dump(by_alias=True))
    return JSONResponse(
        result.model_dump(by_alias=True, include={"is_valid", "invalid_reason"}),
        status_code=400,
    )


def _settle_json(result: SettleResponse) -> JSONResponse:
    if result.success:
        return JSONResponse(result.model_dump(by_alias=True))
    return JSONResponse(
        result.model_dump(
            by_alias=True,
            include={"success", "error_reason", "transaction", "network", "payer",
                     "confirmation_status"},
            exclude_none=False,
        ),
        status_code=400,
    )


def create_facilitator_app(
    facilitator: X402Facilitator,
    registry: NetworkRegistry,
    signer: FacilitatorSigner,
) -> FastAPI:
    """
    Build the facilitator HTTP application.

    Args:
        facilitator: Facilitator with its mechanisms registered
        registry: Network registry, listed by /health and closed on shutdown
        signer: Facilitator identity reported by /health

    Returns:
        FastAPI app with /supported, /create-sponsored-transaction, /verify,
        /settle and /health
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await registry.close()

    app = FastAPI(
        title="x402 Solana Facilitator",
        description="Verifies and settles x402 payments on Solana, with fee sponsorship",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(RequestValidationError)
    async def invalid_request(request: Request, exc: RequestValidationError) -> JSONResponse:
        reason = f"Invalid request body: {exc.errors()[0].get('msg') if exc.errors() else exc}"
        path = request.url.path
        if path == "/verify":
            return _verify_json(VerifyResponse(isValid=False, invalidReason=reason))
        if path == "/settle":
            return _settle_json(SettleResponse(success=False, errorReason=reason))
        return JSONResponse({"success": False, "error": reason}, status_code=400)

    @app.get("/supported")
    async def supported() -> dict[str, Any]:
        """Get supported capabilities"""
        return facilitator.supported().model_dump(by_alias=True)

    @app.post("/create-sponsored-transaction")
    async def create_sponsored_transaction(request: SponsoredTransactionRequest) -> JSONResponse:
        """
        Create a transaction with the facilitator as fee payer.

        The payer signs it for token transfer authority and resubmits it
        through /verify and /settle.
        """
        try:
            requirements = _parse(PaymentRequirements, request.paymentRequirements)
            result = await facilitator.create_sponsored_transaction(
                request.userPublicKey, requirements
            )
        except pydantic.ValidationError as e:
            result = SponsoredTransactionResponse(
                success=False,
                error=f"Failed to create sponsored transaction: {_describe(e)}",
            )
        except Exception as e:
            logger.error("Error creating sponsored transaction: %s", e, exc_info=True)
            result = SponsoredTransactionResponse(
                success=False, error=f"Failed to create sponsored transaction: {e}"
            )

        if result.success:
            return JSONResponse(result.model_dump(by_alias=True, exclude_none=True))
        return JSONResponse({"success": False, "error": result.error}, status_code=400)

    @app.post("/verify")
    async def verify(request: VerifyRequest) -> JSONResponse:
        """
        Verify payment payload

        Returns:
            Verification result; HTTP 400 when invalid
        """
        try:
            payload = _parse(PaymentPayload, request.paymentPayload)
            requirements = _parse(PaymentRequirements, request.paymentRequirements)
            result = await facilitator.verify(payload, requirements)
        except pydantic.ValidationError as e:
            result = VerifyResponse(
                isValid=False,
                invalidReason=f"Invalid payload format: {_describe(e)}",
            )
        except Exception as e:
            logger.error("Verification error: %s", e, exc_info=True)
            result = VerifyResponse(isValid=False, invalidReason=f"Verification failed: {e}")
        return _verify_json(result)

    @app.post("/settle")
    async def settle(request: SettleRequest) -> JSONResponse:
        """
        Settle payment on-chain

        Returns:
            Settlement result with transaction signature; HTTP 400 on failure
        """
        network = (request.paymentPayload or {}).get("network")
        try:
            payload = _parse(PaymentPayload, request.paymentPayload)
            requirements = _parse(PaymentRequirements, request.paymentRequirements)
            result = await facilitator.settle(payload, requirements)
        except pydantic.ValidationError as e:
            result = SettleResponse(
                success=False,
                errorReason=f"Settlement failed: Invalid payload format: {_describe(e)}",
                network=network,
            )
        except Exception as e:
            logger.error("Settlement error: %s", e, exc_info=True)
            result = SettleResponse(
                success=False, errorReason=f"Settlement failed: {e}", network=network
            )
        return _settle_json(result)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Process status"""
        return HealthResponse(
            status="healthy",
            service=SERVICE_NAME,
            timestamp=datetime.now(timezone.utc).isoformat(),
            supportedNetworks=registry.networks,
            mode="REAL_SETTLEMENT_WITH_GAS_SPONSORSHIP",
            facilitatorPublicKey=signer.get_address(),
            features=[
                "transaction broadcasting",
                "facilitator gas sponsorship",
                "authorization format support",
                "full payload support",
            ],
            payloadFormats=[
                "minimal (signature + transaction)",
                "full (with payer, amount, etc.)",
                "authorization_only (from middleware)",
                "facilitator_sponsored (facilitator pays gas)",
            ],
            endpoints={
                "/create-sponsored-transaction": "Create transaction with facilitator as fee payer",
                "/verify": "Verify payment (supports gas sponsorship)",
                "/settle": "Settle payment (facilitator can pay gas)",
                "/supported": "Get supported payment types",
            },
        ).model_dump(by_alias=True)

    return app
