"""
Pytest configuration and fixtures
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from solders.hash import Hash
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from helpers import make_transfer_message, sign_with
from x402_solana.networks import NetworkRegistry
from x402_solana.signers.facilitator import SolanaFacilitatorSigner
from x402_solana.types import PaymentRequirements

DEVNET = "solana-devnet"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture
def facilitator_keypair():
    return Keypair()


@pytest.fixture
def user_keypair():
    return Keypair()


@pytest.fixture
def mint():
    return Pubkey.new_unique()


@pytest.fixture
def merchant():
    return Pubkey.new_unique()


@pytest.fixture
def signer(facilitator_keypair):
    return SolanaFacilitatorSigner(facilitator_keypair)


@pytest.fixture
def mock_client():
    """AsyncClient double whose RPC calls succeed with empty ledger state"""
    client = MagicMock()
    client.get_latest_blockhash = AsyncMock(
        return_value=MagicMock(value=MagicMock(blockhash=Hash.new_unique()))
    )
    client.simulate_transaction = AsyncMock(return_value=MagicMock(value=MagicMock(err=None)))
    client.get_transaction = AsyncMock(return_value=MagicMock(value=None))
    client.send_raw_transaction = AsyncMock()
    client.get_signature_statuses = AsyncMock(return_value=MagicMock(value=[None]))
    client.close = AsyncMock()
    return client


@pytest.fixture
def registry(mock_client):
    return NetworkRegistry({DEVNET: mock_client})


@pytest.fixture
def devnet_requirements(mint, merchant):
    return PaymentRequirements(
        scheme="exact",
        network=DEVNET,
        maxAmountRequired="1000000",
        resource="https://example.com/premium",
        description="Premium content",
        payTo=str(merchant),
        asset=str(mint),
        maxTimeoutSeconds=60,
    )


@pytest.fixture
def user_signed_tx(user_keypair, mint, merchant):
    """Transfer the payer signed and pays fees for"""
    message = make_transfer_message(user_keypair.pubkey(), user_keypair.pubkey(), mint, merchant)
    return sign_with(message, user_keypair).to_transaction()


@pytest.fixture
def sponsored_tx(facilitator_keypair, user_keypair, mint, merchant):
    """Transfer with the facilitator as fee payer, signed by both parties"""
    message = make_transfer_message(
        facilitator_keypair.pubkey(), user_keypair.pubkey(), mint, merchant
    )
    return sign_with(message, facilitator_keypair, user_keypair).to_transaction()
