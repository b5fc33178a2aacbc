"""Shared pytest fixtures for merchant and client payment tests."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

import pytest

from agentmart.domain.ledger import LedgerRegistry
from agentmart.domain.payments import (
    PaymentPayload,
    PaymentRequirement,
    PaymentScheme,
    ProofType,
)
from tests.fixtures import FakeLedger, InMemoryKeyValueStore
from tests.fixtures.constants import (
    CLIENT_SOLANA_ADDRESS,
    MERCHANT_SOLANA_ADDRESS,
)


@pytest.fixture
def solana_ledger() -> FakeLedger:
    return FakeLedger("solana-devnet", "SOL", 9)


@pytest.fixture
def evm_ledger() -> FakeLedger:
    return FakeLedger("base-sepolia", "USDC", 6)


@pytest.fixture
def ledgers(solana_ledger: FakeLedger, evm_ledger: FakeLedger) -> LedgerRegistry:
    return LedgerRegistry([solana_ledger, evm_ledger])


@pytest.fixture
def store() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def make_requirement() -> Callable[..., PaymentRequirement]:
    """Factory for requirements; defaults to 0.1 SOL to the merchant on devnet."""

    def _make(**overrides: Any) -> PaymentRequirement:
        fields: dict[str, Any] = {
            "scheme": PaymentScheme.EXACT,
            "network": "solana-devnet",
            "recipient_address": MERCHANT_SOLANA_ADDRESS,
            "required_amount": 100_000_000,
            "asset": "SOL",
            "description": "Payment for: banana",
            "resource": "https://example.com/product/banana",
            "issued_at": datetime.now(timezone.utc),
            "extra": {
                "name": "SOL",
                "version": "2",
                "product": {"sku": "banana_sku", "name": "banana", "version": "1"},
            },
        }
        fields.update(overrides)
        return PaymentRequirement(**fields)

    return _make


@pytest.fixture
def make_payload() -> Callable[..., PaymentPayload]:
    """Factory for payloads matching the default requirement."""

    def _make(**overrides: Any) -> PaymentPayload:
        fields: dict[str, Any] = {
            "sender_address": CLIENT_SOLANA_ADDRESS,
            "recipient_address": MERCHANT_SOLANA_ADDRESS,
            "amount": 100_000_000,
            "proof": "tx_" + "ab" * 32,
            "proof_type": ProofType.TRANSACTION,
            "network": "solana-devnet",
        }
        fields.update(overrides)
        return PaymentPayload(**fields)

    return _make
