"""Domain-specific exceptions."""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .payments import RejectionReason, TransferOutcome


class InvalidProductError(ValueError):
    """Raised when a purchase request names no usable product."""


class PaymentRejectedError(Exception):
    """Raised by a payment check that the payload does not satisfy."""

    def __init__(self, reason: "RejectionReason", detail: str) -> None:
        super().__init__(detail)
        self.reason = reason
        self.detail = detail


class PaymentFailedError(Exception):
    """Raised when the payer could not move funds for a requirement."""

    def __init__(self, outcome: "TransferOutcome") -> None:
        super().__init__(outcome.detail or str(outcome.error_kind))
        self.outcome = outcome


class SessionNotFoundError(Exception):
    """Raised when a chat session id is unknown."""


class NoPendingPaymentError(ValueError):
    """Raised when a payment arrives for a session with nothing to pay for."""


class LedgerError(Exception):
    """Base class for ledger adapter failures."""


class LedgerUnavailableError(LedgerError):
    """The ledger RPC endpoint could not be reached or answered with an error."""

    def __init__(self, message: str, reference: Optional[str] = None) -> None:
        super().__init__(message)
        self.reference = reference


class InsufficientFundsError(LedgerError):
    """The sender balance does not cover the transfer."""


class TransferRejectedError(LedgerError):
    """The ledger refused a submitted transaction."""

