"""Merchant domain entities: sessions, orders, and the consumed-proof registry."""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_serializer

from .payments import PaymentRequirement


class Order(BaseModel):
    """A fulfilled purchase."""

    id: UUID = Field(default_factory=uuid4)
    product: str
    amount: int
    asset: str
    network: str
    payer: Optional[str] = None
    reference: str
    status: str = "confirmed"
    message: str = (
        "Your order has been confirmed and is being prepared for shipment!"
    )
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @field_serializer("id")
    def serialize_id(self, value: UUID) -> str:
        return str(value)

    @field_serializer("created_at")
    def serialize_created_at(self, value: datetime) -> str:
        return value.isoformat()


class MerchantSession(BaseModel):
    """Per-conversation merchant state. Created on session start, dropped on close."""

    id: UUID = Field(default_factory=uuid4)
    pending_requirement: Optional[PaymentRequirement] = None
    orders: list[Order] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def issue(self, requirement: PaymentRequirement) -> None:
        """Replace any pending requirement with a new one."""
        self.pending_requirement = requirement

    def discard_requirement(self) -> None:
        self.pending_requirement = None

    @property
    def last_order(self) -> Optional[Order]:
        return self.orders[-1] if self.orders else None


class ProofRegistry(ABC):
    """Remembers which payment proofs have already paid for an order."""

    @abstractmethod
    async def claim(self, network: str, proof: str, session_id: str) -> bool:
        """Mark a proof as used. Returns False if it was already used."""
        pass
