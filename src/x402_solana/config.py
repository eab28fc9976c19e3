"""
x402-solana configuration
Centralized network settings and environment-driven facilitator settings
"""

import os
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional

from x402_solana.exceptions import ConfigurationError, UnsupportedNetworkError


class NetworkConfig:
    """Static registry of supported Solana networks"""

    SOLANA_DEVNET = "solana-devnet"
    SOLANA_MAINNET = "solana-mainnet"
    SOLANA_TESTNET = "solana-testnet"

    NETWORK_PREFIX = "solana-"

    RPC_URLS: Dict[str, str] = {
        "solana-devnet": "https://api.devnet.solana.com",
        "solana-mainnet": "https://api.mainnet-beta.solana.com",
        "solana-testnet": "https://api.testnet.solana.com",
    }

    # Per-network override, e.g. SOLANA_DEVNET_RPC_URL
    RPC_URL_ENV_KEYS: Dict[str, str] = {
        "solana-devnet": "SOLANA_DEVNET_RPC_URL",
        "solana-mainnet": "SOLANA_MAINNET_RPC_URL",
        "solana-testnet": "SOLANA_TESTNET_RPC_URL",
    }

    @classmethod
    def networks(cls) -> list[str]:
        return list(cls.RPC_URLS)

    @classmethod
    def is_solana_network(cls, network: str | None) -> bool:
        return bool(network) and network.startswith(cls.NETWORK_PREFIX)

    @classmethod
    def get_rpc_url(cls, network: str, env: Mapping[str, str] | None = None) -> str:
        """Get RPC URL for a Solana network.

        Args:
            network: Network identifier (e.g., "solana-devnet")
            env: Environment mapping checked for an override (defaults to os.environ)

        Returns:
            RPC URL string

        Raises:
            UnsupportedNetworkError: If network is not supported
        """
        default = cls.RPC_URLS.get(network)
        if default is None:
            raise UnsupportedNetworkError(f"Unsupported network: {network}")
        env = os.environ if env is None else env
        return env.get(cls.RPC_URL_ENV_KEYS[network]) or default


def _float_env(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be a number, got {raw!r}")
    if value < 0:
        raise ConfigurationError(f"{key} must be non-negative, got {raw!r}")
    return value


def _int_env(env: Mapping[str, str], key: str, default: int) -> int:
    raw = env.get(key)
    if raw is None or raw == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{key} must be an integer, got {raw!r}")


@dataclass(frozen=True)
class FacilitatorConfig:
    """Facilitator process settings, read once at startup"""

    private_key: Optional[str] = None
    host: str = "0.0.0.0"
    port: int = 3011
    poll_interval: float = 2.0
    confirm_timeout: float = 30.0
    log_level: str = "INFO"
    rpc_urls: Dict[str, str] = field(default_factory=lambda: dict(NetworkConfig.RPC_URLS))

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "FacilitatorConfig":
        """Build configuration from environment variables.

        Raises:
            ConfigurationError: If a numeric setting cannot be parsed
        """
        env = os.environ if env is None else env
        return cls(
            private_key=env.get("FACILITATOR_PRIVATE_KEY") or None,
            host=env.get("FACILITATOR_HOST", "0.0.0.0"),
            port=_int_env(env, "FACILITATOR_PORT", 3011),
            poll_interval=_float_env(env, "SETTLEMENT_POLL_INTERVAL", 2.0),
            confirm_timeout=_float_env(env, "SETTLEMENT_TIMEOUT", 30.0),
            log_level=env.get("LOG_LEVEL", "INFO"),
            rpc_urls={
                network: NetworkConfig.get_rpc_url(network, env)
                for network in NetworkConfig.networks()
            },
        )
