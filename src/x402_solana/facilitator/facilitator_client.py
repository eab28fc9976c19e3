"""
FacilitatorClient - Client for communicating with facilitator service
"""

from typing import Any

import httpx

from x402_solana.types import (
    HealthResponse,
    PaymentPayload,
    PaymentRequirements,
    SettleResponse,
    SponsoredTransactionResponse,
    SupportedResponse,
    VerifyResponse,
)

# The facilitator reports rejections as structured 400 bodies
_STRUCTURED_STATUSES = (200, 400)


class FacilitatorClient:
    """
    Client for communicating with facilitator service.

    Used by the paywall-hosting side to forward payloads exactly as received.
    """

    def __init__(
        self,
        base_url: str,
        headers: dict[str, str] | None = None,
        timeout: float = 60.0,
    ) -> None:
        """
        Initialize facilitator client.

        Args:
            base_url: Facilitator service base URL
            headers: Custom HTTP headers (e.g., Authorization)
            timeout: Request timeout; settle can take as long as the confirmation bound
        """
        self._base_url = base_url.rstrip("/")
        self._headers = headers or {}
        self._timeout = timeout
        self._http_client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client"""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                base_url=self._base_url,
                headers=self._headers,
                timeout=self._timeout,
            )
        return self._http_client

    async def close(self) -> None:
        """Close HTTP client"""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        client = await self._get_client()
        response = await client.post(path, json=body)
        if response.status_code not in _STRUCTURED_STATUSES:
            response.raise_for_status()
        return response.json()

    async def supported(self) -> SupportedResponse:
        """
        Query facilitator supported capabilities.

        Returns:
            SupportedResponse with supported networks/schemes
        """
        client = await self._get_client()
        response = await client.get("/supported")
        response.raise_for_status()
        return SupportedResponse(**response.json())

    async def health(self) -> HealthResponse:
        client = await self._get_client()
        response = await client.get("/health")
        response.raise_for_status()
        return HealthResponse(**response.json())

    async def create_sponsored_transaction(
        self,
        user_public_key: str,
        requirements: PaymentRequirements,
    ) -> SponsoredTransactionResponse:
        """
        Request a transaction whose fees the facilitator pays.

        Args:
            user_public_key: Payer wallet address
            requirements: Payment requirements

        Returns:
            SponsoredTransactionResponse; the transaction still needs the payer's signature
        """
        data = await self._post(
            "/create-sponsored-transaction",
            {
                "userPublicKey": user_public_key,
                "paymentRequirements": requirements.model_dump(by_alias=True, exclude_none=True),
            },
        )
        return SponsoredTransactionResponse(**data)

    async def verify(
        self,
        payload: PaymentPayload | dict[str, Any],
        requirements: PaymentRequirements,
    ) -> VerifyResponse:
        """
        Verify payment (without executing on-chain transaction).

        Args:
            payload: Payment payload from client, model or raw dict
            requirements: Payment requirements

        Returns:
            VerifyResponse
        """
        data = await self._post("/verify", self._request_body(payload, requirements))
        return VerifyResponse(**data)

    async def settle(
        self,
        payload: PaymentPayload | dict[str, Any],
        requirements: PaymentRequirements,
    ) -> SettleResponse:
        """
        Execute payment settlement (on-chain transaction).

        Args:
            payload: Payment payload from client, model or raw dict
            requirements: Payment requirements

        Returns:
            SettleResponse with transaction signature
        """
        data = await self._post("/settle", self._request_body(payload, requirements))
        return SettleResponse(**data)

    @staticmethod
    def _request_body(
        payload: PaymentPayload | dict[str, Any],
        requirements: PaymentRequirements,
    ) -> dict[str, Any]:
        if isinstance(payload, PaymentPayload):
            payload = payload.model_dump(by_alias=True, exclude_none=True)
        return {
            "paymentPayload": payload,
            "paymentRequirements": requirements.model_dump(by_alias=True, exclude_none=True),
        }
