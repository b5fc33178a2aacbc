"""Shared domain contracts used by both the merchant and the client."""

from .merchant_client_protocol import MerchantClientProtocol

__all__ = [
    "MerchantClientProtocol",
]
