"""Construction of payment requirements for product purchases."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from ....domain.errors import InvalidProductError
from ....domain.payments import PaymentRequirement, PaymentScheme

EVM_NETWORK = "base-sepolia"
SOLANA_NETWORK = "solana-devnet"

# 1 USDC (6 decimals) and 0.1 SOL (9 decimals)
DEFAULT_PRICES: dict[str, int] = {
    EVM_NETWORK: 1_000_000,
    SOLANA_NETWORK: 100_000_000,
}

DEFAULT_TIMEOUT_SECONDS = 1200


class PriceTable:
    """Fixed price per network. Every product costs the same on a network."""

    def __init__(self, prices: Optional[Mapping[str, int]] = None) -> None:
        self._prices = dict(DEFAULT_PRICES if prices is None else prices)

    def price_for(self, product: str, network: str) -> int:
        try:
            return self._prices[network]
        except KeyError:
            raise InvalidProductError(
                f"No price configured for {product!r} on network {network}"
            ) from None


def build_requirement(
    product: str,
    price_table: PriceTable,
    recipient_address: str,
    network: str,
    *,
    asset: str,
    asset_name: Optional[str] = None,
    scheme: PaymentScheme = PaymentScheme.EXACT,
    timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
    extra: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> PaymentRequirement:
    """Build the requirement a payer must satisfy to buy ``product``.

    Raises:
        InvalidProductError: If the product name is empty or has no price on
            the network.
    """
    if not isinstance(product, str) or not product.strip():
        raise InvalidProductError("Product name cannot be empty.")
    product = product.strip()

    price = price_table.price_for(product, network)

    requirement_extra: dict[str, Any] = {
        "name": asset_name or asset,
        "version": "2",
        "product": {
            "sku": f"{product}_sku",
            "name": product,
            "version": "1",
        },
    }
    if extra:
        requirement_extra.update(extra)

    return PaymentRequirement(
        scheme=scheme,
        network=network,
        recipient_address=recipient_address,
        required_amount=price,
        asset=asset,
        description=f"Payment for: {product}",
        resource=f"https://example.com/product/{product}",
        timeout_seconds=timeout_seconds,
        issued_at=now or datetime.now(timezone.utc),
        extra=requirement_extra,
    )
