"""Data Transfer Objects for the merchant application layer."""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ...domain.merchant import Order
from ...domain.payments import (
    PaymentPayload,
    PaymentRequirement,
    RejectionReason,
    VerificationResult,
)


class SessionResponseDTO(BaseModel):
    """DTO returned when a chat session is opened."""

    session_id: str


class ChatMessageDTO(BaseModel):
    """DTO carrying free-text intent from the client agent."""

    model_config = ConfigDict(
        json_schema_extra={"example": {"text": "I want to buy a banana with Solana"}}
    )

    text: str = Field(..., min_length=1, max_length=1000)


class ChatResponseDTO(BaseModel):
    """Either a plain text reply or a payment-required signal."""

    kind: Literal["text", "payment_required"]
    text: str
    requirement: Optional[PaymentRequirement] = None


class SettlePaymentDTO(BaseModel):
    """DTO submitting a signed payment for the session's pending requirement."""

    payload: PaymentPayload


class SettlementResponseDTO(BaseModel):
    """Verdict on a submitted payment, with the order when accepted."""

    accepted: bool
    rejection_reason: Optional[RejectionReason] = None
    detail: Optional[str] = None
    confirmed_amount: Optional[int] = None
    confirmed_sender: Optional[str] = None
    confirmed_recipient: Optional[str] = None
    order: Optional[Order] = None

    @classmethod
    def from_result(
        cls, result: VerificationResult, order: Optional[Order] = None
    ) -> "SettlementResponseDTO":
        return cls(
            accepted=result.accepted,
            rejection_reason=result.rejection_reason,
            detail=result.detail,
            confirmed_amount=result.confirmed_amount,
            confirmed_sender=result.confirmed_sender,
            confirmed_recipient=result.confirmed_recipient,
            order=order,
        )


class MerchantWalletDTO(BaseModel):
    network: str
    address: str
    asset: str


class MerchantWalletsDTO(BaseModel):
    """Receiving addresses of the merchant per network."""

    wallets: list[MerchantWalletDTO]
