"""
NetworkRegistry - fixed mapping from network identifier to RPC connection
"""

import logging
from typing import Mapping

from solana.rpc.async_api import AsyncClient

from x402_solana.config import NetworkConfig
from x402_solana.exceptions import UnsupportedNetworkError
from x402_solana.utils.solana_client import create_async_solana_client

logger = logging.getLogger(__name__)


class NetworkRegistry:
    """
    Holds one AsyncClient per supported network.

    Built once at startup and never modified afterwards, so it can be shared
    by concurrent requests.
    """

    def __init__(self, clients: Mapping[str, AsyncClient]) -> None:
        self._clients: dict[str, AsyncClient] = dict(clients)

    @classmethod
    def from_rpc_urls(cls, rpc_urls: Mapping[str, str]) -> "NetworkRegistry":
        """Create a registry with a client for each configured endpoint"""
        return cls(
            {
                network: create_async_solana_client(network, rpc_url)
                for network, rpc_url in rpc_urls.items()
            }
        )

    @classmethod
    def default(cls) -> "NetworkRegistry":
        """Create a registry for every network in NetworkConfig"""
        return cls.from_rpc_urls(
            {network: NetworkConfig.get_rpc_url(network) for network in NetworkConfig.networks()}
        )

    @property
    def networks(self) -> list[str]:
        return list(self._clients)

    def is_supported(self, network: str | None) -> bool:
        return network in self._clients

    def resolve(self, network: str | None) -> AsyncClient:
        """
        Get the connection for a network.

        Args:
            network: Network identifier (e.g. "solana-devnet")

        Returns:
            AsyncClient bound to the network's RPC endpoint

        Raises:
            UnsupportedNetworkError: If the network is not registered
        """
        client = self._clients.get(network) if network else None
        if client is None:
            raise UnsupportedNetworkError(f"Unsupported network: {network}")
        return client

    async def close(self) -> None:
        """Close every underlying HTTP session"""
        for network, client in self._clients.items():
            try:
                await client.close()
            except Exception as e:
                logger.warning("Failed to close client for %s: %s", network, e)
