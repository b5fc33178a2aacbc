"""Per-conversation state on the payer side."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel

from ...domain.payments import PaymentRequirement


class PurchaseSession(BaseModel):
    """Merchant session id and the requirement awaiting the user's decision.

    Created when a conversation starts and discarded when it ends. The ledger
    for a pending payment is the requirement's network. ``inflight_reference``
    is a transfer submitted for the pending requirement whose outcome is not
    known yet; it must be re-checked, never paid again.
    """

    merchant_session_id: Optional[str] = None
    pending_requirement: Optional[PaymentRequirement] = None
    inflight_reference: Optional[str] = None
    last_reference: Optional[str] = None

    @property
    def has_pending_payment(self) -> bool:
        return self.pending_requirement is not None

    def hold(self, requirement: PaymentRequirement) -> None:
        self.pending_requirement = requirement
        self.inflight_reference = None

    def track(self, reference: str) -> None:
        self.inflight_reference = reference
        self.last_reference = reference

    def clear_pending(self) -> None:
        self.pending_requirement = None
        self.inflight_reference = None
