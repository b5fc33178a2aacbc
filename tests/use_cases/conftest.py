"""Pytest fixtures for use case tests."""

from __future__ import annotations

import pytest

from agentmart.application.client.agent import ClientAgent
from agentmart.application.client.use_cases.payment_signer import PaymentSigner
from agentmart.application.merchant.session_store import SessionStore
from agentmart.application.merchant.use_cases.order import MerchantService, Offering
from agentmart.application.merchant.use_cases.payment_verifier import PaymentVerifier
from agentmart.application.merchant.use_cases.requirement_builder import PriceTable
from agentmart.application.shared.transfer import TransferExecutor
from agentmart.infrastructure.merchant.proof_registry_impl import ProofRegistryImpl
from tests.fixtures.constants import (
    CLIENT_EVM_ADDRESS,
    CLIENT_SOLANA_ADDRESS,
    MERCHANT_EVM_ADDRESS,
    MERCHANT_SOLANA_ADDRESS,
)
from tests.use_cases.helpers import UseCaseMerchantClient

CLIENT_SOL_FUNDS = 1_000_000_000
CLIENT_USDC_FUNDS = 10_000_000


# ============================================================================
# Merchant Fixtures
# ============================================================================


@pytest.fixture
def offerings() -> list[Offering]:
    return [
        Offering(
            network="base-sepolia",
            recipient_address=MERCHANT_EVM_ADDRESS,
            asset="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
            asset_name="USDC",
            decimals=6,
        ),
        Offering(
            network="solana-devnet",
            recipient_address=MERCHANT_SOLANA_ADDRESS,
            asset="SOL",
            asset_name="SOL",
            decimals=9,
            extra={"blockchain": "solana"},
        ),
    ]


@pytest.fixture
def verifier(ledgers) -> PaymentVerifier:
    return PaymentVerifier(ledgers, max_attempts=3, interval=0)


@pytest.fixture
def merchant_service(store, verifier, offerings) -> MerchantService:
    return MerchantService(
        SessionStore(),
        verifier,
        ProofRegistryImpl(store),
        PriceTable(),
        offerings,
        default_network="base-sepolia",
        solana_network="solana-devnet",
    )


@pytest.fixture
def merchant_client(merchant_service) -> UseCaseMerchantClient:
    return UseCaseMerchantClient(merchant_service)


# ============================================================================
# Client Fixtures
# ============================================================================


@pytest.fixture
def solana_signer(solana_ledger) -> PaymentSigner:
    solana_ledger.balances[CLIENT_SOLANA_ADDRESS] = CLIENT_SOL_FUNDS
    executor = TransferExecutor(solana_ledger, max_attempts=3, interval=0)
    return PaymentSigner(solana_ledger, CLIENT_SOLANA_ADDRESS, executor)


@pytest.fixture
def evm_signer(evm_ledger) -> PaymentSigner:
    evm_ledger.balances[CLIENT_EVM_ADDRESS] = CLIENT_USDC_FUNDS
    executor = TransferExecutor(evm_ledger, max_attempts=3, interval=0)
    return PaymentSigner(evm_ledger, CLIENT_EVM_ADDRESS, executor)


@pytest.fixture
def client_agent(merchant_client, solana_signer, evm_signer) -> ClientAgent:
    return ClientAgent(merchant_client, [solana_signer, evm_signer])
