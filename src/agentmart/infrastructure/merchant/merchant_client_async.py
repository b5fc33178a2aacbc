from __future__ import annotations

from typing import Optional, Type
from types import TracebackType

import httpx

from ...application.merchant.dtos import (
    ChatMessageDTO,
    ChatResponseDTO,
    MerchantWalletsDTO,
    SessionResponseDTO,
    SettlePaymentDTO,
    SettlementResponseDTO,
)
from ...domain.payments import PaymentPayload
from ..http.http_client import AsyncHttpClient


class MerchantClientAsync:
    """Asynchronous client for talking to the Merchant HTTP API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        # base_url is expected to already contain the API prefix (e.g. /api/v1)
        self._http = AsyncHttpClient(base_url, timeout=timeout, transport=transport)

    async def create_session(self) -> SessionResponseDTO:
        resp = await self._http.post("/merchant/sessions")
        return SessionResponseDTO.model_validate(resp.json())

    async def send_message(self, session_id: str, text: str) -> ChatResponseDTO:
        """Send a chat message and validate the reply into ``ChatResponseDTO``.

        A ``payment_required`` reply carries the requirement to pay.
        """
        path = f"/merchant/sessions/{session_id}/messages"
        dto = ChatMessageDTO(text=text)
        resp = await self._http.post(path, json=dto.model_dump())
        return ChatResponseDTO.model_validate(resp.json())

    async def submit_payment(
        self, session_id: str, payload: PaymentPayload
    ) -> SettlementResponseDTO:
        """Submit a payment payload for the session's pending requirement.

        Rejections come back as a verdict with ``accepted=False``, not as an
        HTTP error. On-chain verification can take tens of seconds, hence the
        generous default timeout.
        """
        path = f"/merchant/sessions/{session_id}/payments"
        dto = SettlePaymentDTO(payload=payload)
        resp = await self._http.post(path, json=dto.model_dump(mode="json"))
        return SettlementResponseDTO.model_validate(resp.json())

    async def get_wallets(self) -> MerchantWalletsDTO:
        resp = await self._http.get("/merchant/wallets")
        return MerchantWalletsDTO.model_validate(resp.json())

    async def close_session(self, session_id: str) -> None:
        await self._http.delete(f"/merchant/sessions/{session_id}")

    async def aclose(self) -> None:
        await self._http.aclose()

    async def __aenter__(self) -> "MerchantClientAsync":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_value: Optional[BaseException],
        traceback: Optional[TracebackType],
    ) -> None:
        await self.aclose()
