"""Unit tests for requirement construction and the price table."""

from datetime import datetime, timezone

import pytest

from agentmart.application.merchant.use_cases.requirement_builder import (
    DEFAULT_TIMEOUT_SECONDS,
    EVM_NETWORK,
    SOLANA_NETWORK,
    PriceTable,
    build_requirement,
)
from agentmart.domain.errors import InvalidProductError
from agentmart.domain.payments import PaymentScheme


class TestPriceTable:
    def test_default_prices(self) -> None:
        table = PriceTable()
        assert table.price_for("banana", EVM_NETWORK) == 1_000_000
        assert table.price_for("banana", SOLANA_NETWORK) == 100_000_000

    def test_every_product_costs_the_same(self) -> None:
        table = PriceTable()
        assert table.price_for("banana", EVM_NETWORK) == table.price_for(
            "spaceship", EVM_NETWORK
        )

    def test_unknown_network_raises(self) -> None:
        with pytest.raises(InvalidProductError, match="net-Z"):
            PriceTable().price_for("banana", "net-Z")


class TestBuildRequirement:
    def test_solana_banana(self) -> None:
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        requirement = build_requirement(
            "banana",
            PriceTable(),
            "MerchantSol",
            SOLANA_NETWORK,
            asset="SOL",
            extra={"blockchain": "solana"},
            now=now,
        )

        assert requirement.scheme is PaymentScheme.EXACT
        assert requirement.network == SOLANA_NETWORK
        assert requirement.recipient_address == "MerchantSol"
        assert requirement.required_amount == 100_000_000
        assert requirement.asset == "SOL"
        assert requirement.description == "Payment for: banana"
        assert requirement.resource == "https://example.com/product/banana"
        assert requirement.timeout_seconds == DEFAULT_TIMEOUT_SECONDS == 1200
        assert requirement.issued_at == now
        assert requirement.extra == {
            "name": "SOL",
            "version": "2",
            "product": {"sku": "banana_sku", "name": "banana", "version": "1"},
            "blockchain": "solana",
        }
        assert requirement.product_name == "banana"

    def test_usdc_asset_name(self) -> None:
        requirement = build_requirement(
            "  apple ",
            PriceTable(),
            "0xMerchant",
            EVM_NETWORK,
            asset="0x036CbD53842c5426634e7929541eC2318f3dCF7e",
            asset_name="USDC",
        )

        assert requirement.required_amount == 1_000_000
        assert requirement.extra["name"] == "USDC"
        assert requirement.product_name == "apple"

    def test_is_deterministic(self) -> None:
        now = datetime(2026, 1, 1, tzinfo=timezone.utc)
        args = ("banana", PriceTable(), "M1", SOLANA_NETWORK)
        assert build_requirement(*args, asset="SOL", now=now) == build_requirement(
            *args, asset="SOL", now=now
        )

    @pytest.mark.parametrize("product", ["", "   "])
    def test_empty_product_raises(self, product: str) -> None:
        with pytest.raises(InvalidProductError, match="Product name cannot be empty"):
            build_requirement(product, PriceTable(), "M1", SOLANA_NETWORK, asset="SOL")

    def test_requirement_is_immutable(self) -> None:
        requirement = build_requirement(
            "banana", PriceTable(), "M1", SOLANA_NETWORK, asset="SOL"
        )
        with pytest.raises(Exception):
            requirement.required_amount = 1  # type: ignore[misc]
