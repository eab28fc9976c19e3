"""
Shared AsyncClient factory.

Centralizes solana-py AsyncClient initialization per network.
"""

import logging

from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed

from x402_solana.config import NetworkConfig

logger = logging.getLogger(__name__)


def create_async_solana_client(network: str, rpc_url: str | None = None) -> AsyncClient:
    """Create an AsyncClient for the given network.

    Args:
        network: Network identifier (e.g. "solana-devnet")
        rpc_url: Explicit endpoint; defaults to the configured URL for the network

    Returns:
        solana.rpc.async_api.AsyncClient with "confirmed" commitment

    Raises:
        UnsupportedNetworkError: If no endpoint is known for the network
    """
    endpoint = rpc_url or NetworkConfig.get_rpc_url(network)
    logger.info("Creating AsyncClient for network=%s (%s)", network, endpoint)
    return AsyncClient(endpoint, commitment=Confirmed)
