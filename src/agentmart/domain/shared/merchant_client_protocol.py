"""Protocol interface for merchant client implementations.

The client agent talks to the merchant through this contract only, so it can
be driven by the HTTP client in production and by an in-process fake in tests.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from ...application.merchant.dtos import (
        ChatResponseDTO,
        SessionResponseDTO,
        SettlementResponseDTO,
    )
    from ..payments import PaymentPayload


class MerchantClientProtocol(Protocol):
    """Operations the client agent needs from a merchant."""

    async def create_session(self) -> "SessionResponseDTO":
        """Open a chat session with the merchant."""
        ...

    async def send_message(self, session_id: str, text: str) -> "ChatResponseDTO":
        """Send free text; the reply may carry a payment requirement."""
        ...

    async def submit_payment(
        self, session_id: str, payload: "PaymentPayload"
    ) -> "SettlementResponseDTO":
        """Submit a payload for the session's pending requirement.

        Returns:
            The merchant's verdict, with the order when accepted.
        """
        ...

    async def close_session(self, session_id: str) -> None:
        ...
