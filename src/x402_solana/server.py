"""
Facilitator Main Entry Point
Starts a FastAPI server for verification, settlement and fee sponsorship.
"""

from pathlib import Path

import uvicorn
from dotenv import load_dotenv

from x402_solana.config import FacilitatorConfig
from x402_solana.facilitator import X402Facilitator
from x402_solana.fastapi import create_facilitator_app
from x402_solana.logging_config import get_logger, setup_logging
from x402_solana.mechanisms.solana.exact import ExactSolanaFacilitatorMechanism
from x402_solana.networks import NetworkRegistry
from x402_solana.signers.facilitator import SolanaFacilitatorSigner

logger = get_logger(__name__)


def main() -> None:
    """Start the facilitator server"""
    load_dotenv(Path.cwd() / ".env")

    config = FacilitatorConfig.from_env()
    setup_logging(config.log_level)

    signer = SolanaFacilitatorSigner.from_config(config.private_key)
    registry = NetworkRegistry.from_rpc_urls(config.rpc_urls)
    mechanism = ExactSolanaFacilitatorMechanism(
        signer,
        registry,
        poll_interval=config.poll_interval,
        confirm_timeout=config.confirm_timeout,
    )
    facilitator = X402Facilitator().register(mechanism)
    app = create_facilitator_app(facilitator, registry, signer)

    logger.info("Starting x402 Solana facilitator on %s:%d", config.host, config.port)
    logger.info("Facilitator public key: %s", signer.get_address())
    logger.info("Networks: %s", ", ".join(registry.networks))
    if signer.ephemeral:
        logger.warning("Sponsored fees are paid from a temporary keypair with no funds")

    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.lower(),
    )


if __name__ == "__main__":
    main()
