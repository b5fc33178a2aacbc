"""Test helpers for use case-based testing."""

from .merchant_client_adapter import UseCaseMerchantClient

__all__ = [
    "UseCaseMerchantClient",
]
